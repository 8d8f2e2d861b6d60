import asyncio
import logging
from contextlib import asynccontextmanager
from functools import wraps
from typing import Callable, TypeVar, Any, AsyncGenerator, AsyncIterator
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import text
from sqlalchemy.exc import (
    SQLAlchemyError,
    OperationalError,
    DisconnectionError,
    TimeoutError,
)
from asyncpg.exceptions import (
    ConnectionFailureError,
    ConnectionDoesNotExistError,
)

from .config import (
    DATABASE_URL,
    DB_ISOLATION_LEVEL,
    DB_RETRY_ATTEMPTS,
    DB_RETRY_BACKOFF_FACTOR,
    DB_RETRY_DELAY,
)
from .exceptions import DatabaseConnectionError, DatabaseError, DatabaseTimeoutError

logger = logging.getLogger(__name__)


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Создать async engine.

    Pool sizing only applies to server databases; SQLite (tests, local runs)
    keeps the dialect's default pool.
    """
    options = {"echo": False, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=20,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=3600,  # Переподключение каждый час
        )
    options.update(kwargs)
    return create_async_engine(url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,  # Отключаем автофлаш для лучшего контроля
    )


engine = build_engine(DATABASE_URL)
async_session = build_session_factory(engine)

Base = declarative_base()

# Типы для retry decorator
F = TypeVar("F", bound=Callable[..., Any])


def db_retry(
    max_attempts: int = None,
    delay: float = None,
    backoff_factor: float = None,
    exceptions: tuple = None,
) -> Callable[[F], F]:
    """
    Decorator для повторных попыток операций с базой данных.

    Only for idempotent work (startup checks, read-only projections).
    Booking writes are never wrapped: a lost race is reported, not replayed.

    Args:
        max_attempts: Максимальное количество попыток (по умолчанию из config)
        delay: Начальная задержка между попытками (по умолчанию из config)
        backoff_factor: Множитель для увеличения задержки
        exceptions: Кортеж исключений для повтора
    """
    if max_attempts is None:
        max_attempts = DB_RETRY_ATTEMPTS

    if backoff_factor is None:
        backoff_factor = DB_RETRY_BACKOFF_FACTOR

    if delay is None:
        delay = DB_RETRY_DELAY

    if exceptions is None:
        exceptions = (
            OperationalError,
            DisconnectionError,
            TimeoutError,
            ConnectionFailureError,
            ConnectionDoesNotExistError,
        )

    def decorator(func: F) -> F:
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            current_delay = delay
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)

                except exceptions as e:
                    last_exception = e

                    if attempt == max_attempts - 1:
                        # Последняя попытка - выбрасываем исключение
                        break

                    logger.warning(
                        f"Database operation failed (attempt {attempt + 1}/{max_attempts}): {str(e)}",
                        extra={
                            "function": func.__name__,
                            "attempt": attempt + 1,
                            "max_attempts": max_attempts,
                            "exception_type": type(e).__name__,
                        },
                    )

                    await asyncio.sleep(current_delay)
                    current_delay *= backoff_factor

            logger.error(
                f"Database operation failed after {max_attempts} attempts: {str(last_exception)}",
                extra={
                    "function": func.__name__,
                    "max_attempts": max_attempts,
                    "final_exception": str(last_exception),
                },
            )

            # Преобразуем в наше исключение
            if isinstance(
                last_exception,
                (
                    ConnectionFailureError,
                    ConnectionDoesNotExistError,
                    DisconnectionError,
                ),
            ):
                raise DatabaseConnectionError(
                    f"Database connection failed after {max_attempts} attempts"
                )
            elif isinstance(last_exception, TimeoutError):
                raise DatabaseTimeoutError(func.__name__, 30)
            else:
                raise last_exception

        return async_wrapper

    return decorator


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency для получения сессии базы данных
    """
    session = async_session()
    try:
        yield session
    except Exception as e:
        await session.rollback()
        logger.error(f"Session error: {str(e)}")
        raise
    finally:
        await session.close()


@asynccontextmanager
async def serializable_transaction(
    session: AsyncSession, isolation_level: str = None
) -> AsyncIterator[AsyncSession]:
    """
    Run a unit of work in its own transaction at the booking isolation level.

    Commits on success, rolls back on any exception and re-raises it.
    A read-only transaction already open on the session (autobegun by a
    read) is closed first so the isolation level applies to a fresh one.
    Unflushed ORM changes are refused: they would otherwise be committed
    outside the unit of work.
    """
    level = isolation_level or DB_ISOLATION_LEVEL
    if session.new or session.dirty or session.deleted:
        raise DatabaseError(
            "Session has pending changes; commit or roll back before a booking transaction",
            details={
                "new": len(session.new),
                "dirty": len(session.dirty),
                "deleted": len(session.deleted),
            },
        )

    if session.in_transaction():
        logger.debug("Closing the read transaction already open on the session")
        await session.commit()

    if session.bind is not None and session.bind.dialect.name == "sqlite":
        # SQLite serializes writers itself
        await session.connection()
    else:
        await session.connection(execution_options={"isolation_level": level})

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise


class DatabaseManager:
    """Менеджер для управления операциями с базой данных"""

    def __init__(self, bind: AsyncEngine = None):
        self.engine = bind or engine

    @db_retry()
    async def create_tables(self):
        """Создание всех таблиц в базе данных"""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Failed to create database tables: {str(e)}")
            raise

    @db_retry()
    async def check_connection(self):
        """Проверка соединения с базой данных"""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection check successful")
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {str(e)}")
            raise DatabaseConnectionError("Database connection check failed")

    async def close_connections(self):
        """Закрытие всех соединений с базой данных"""
        try:
            await self.engine.dispose()
            logger.info("Database connections closed successfully")
        except Exception as e:
            logger.error(f"Error closing database connections: {str(e)}")


db_manager = DatabaseManager()


# Декораторы для CRUD операций
def db_operation(func: F) -> F:
    """
    Декоратор для CRUD операций с логированием
    """

    @wraps(func)
    async def wrapper(*args, **kwargs):
        operation_name = func.__name__

        try:
            logger.debug(f"Starting database operation: {operation_name}")
            result = await func(*args, **kwargs)
            logger.debug(f"Database operation completed: {operation_name}")
            return result

        except SQLAlchemyError as e:
            logger.error(
                f"SQLAlchemy error in {operation_name}: {str(e)}",
                extra={"operation": operation_name, "exception_type": type(e).__name__},
            )
            raise

    return wrapper
