import os
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Настройки PostgreSQL
POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
POSTGRES_DB = os.getenv("POSTGRES_DB", "facility")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "db")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}",
)

# Booking writes run at this isolation level
DB_ISOLATION_LEVEL = os.getenv("DB_ISOLATION_LEVEL", "SERIALIZABLE").upper()

# Настройки среды
ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()
DEBUG = ENVIRONMENT in ["development", "dev"]

# Настройки retry для базы данных
DB_RETRY_ATTEMPTS = int(os.getenv("DB_RETRY_ATTEMPTS", "3"))
DB_RETRY_DELAY = float(os.getenv("DB_RETRY_DELAY", "1.0"))
DB_RETRY_BACKOFF_FACTOR = float(os.getenv("DB_RETRY_BACKOFF_FACTOR", "2.0"))

# Facility clock and limits
FACILITY_TIMEZONE = os.getenv("FACILITY_TIMEZONE", "UTC")
NOTIFICATIONS_LIMIT = int(os.getenv("NOTIFICATIONS_LIMIT", "50"))
SEED_DEFAULT_DATA = os.getenv("SEED_DEFAULT_DATA", "true").lower() == "true"

# Rate limiting
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "120/minute")

# Настройки логирования
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json" if not DEBUG else "text")

# Настройки приложения
APP_NAME = os.getenv("APP_NAME", "Facility Booking API")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://localhost:8080"
    ).split(",")
    if origin.strip()
]

VALID_ISOLATION_LEVELS = {
    "SERIALIZABLE",
    "REPEATABLE READ",
    "READ COMMITTED",
}


# Валидация критичных настроек
def validate_config():
    """Валидация конфигурации при запуске"""
    errors = []

    if not DATABASE_URL:
        errors.append("DATABASE_URL is required")

    if DB_ISOLATION_LEVEL not in VALID_ISOLATION_LEVELS:
        errors.append(
            f"DB_ISOLATION_LEVEL must be one of {sorted(VALID_ISOLATION_LEVELS)}"
        )

    if DB_RETRY_ATTEMPTS < 1:
        errors.append("DB_RETRY_ATTEMPTS must be >= 1")

    if DB_RETRY_DELAY < 0:
        errors.append("DB_RETRY_DELAY must be >= 0")

    if NOTIFICATIONS_LIMIT < 1:
        errors.append("NOTIFICATIONS_LIMIT must be >= 1")

    try:
        ZoneInfo(FACILITY_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"FACILITY_TIMEZONE '{FACILITY_TIMEZONE}' is not a known zone")

    if errors:
        raise ValueError(f"Configuration errors: {'; '.join(errors)}")


# Автоматическая валидация при импорте (опционально)
if os.getenv("VALIDATE_CONFIG_ON_IMPORT", "true").lower() == "true":
    try:
        validate_config()
    except ValueError as e:
        logger.warning(f"Configuration warning: {e}")
