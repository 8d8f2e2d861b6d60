import asyncio
import logging
from datetime import time

from sqlalchemy import select, func, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.core.config import ENVIRONMENT, SEED_DEFAULT_DATA
from app.core.database import (
    Base,
    DatabaseManager,
    build_session_factory,
    engine as default_engine,
)
from app.core.exceptions import DatabaseError, ConfigurationError
from app.facility.models import (
    FacilityConfig,
    DEFAULT_FACILITY_ID,
    Court,
    CourtSurface,
    Coach,
    CoachAvailabilityWindow,
    EquipmentType,
    PricingRule,
    PricingAppliesTo,
    DayType,
)

# Регистрация моделей бронирования в metadata
import app.bookings.models  # noqa: F401

logger = logging.getLogger(__name__)

# PostgreSQL only: interval exclusion on reservation rows (needs btree_gist)
POSTGRES_MIGRATIONS = [
    {
        "name": "enable_btree_gist",
        "check": "SELECT 1 FROM pg_extension WHERE extname = 'btree_gist'",
        "apply": "CREATE EXTENSION IF NOT EXISTS btree_gist",
    },
    {
        "name": "booking_courts_no_overlap",
        "check": "SELECT 1 FROM pg_constraint WHERE conname = 'booking_courts_no_overlap'",
        "apply": (
            "ALTER TABLE booking_courts ADD CONSTRAINT booking_courts_no_overlap "
            "EXCLUDE USING gist (court_id WITH =, tsrange(start_at, end_at, '[)') WITH &&)"
        ),
    },
    {
        "name": "booking_coaches_no_overlap",
        "check": "SELECT 1 FROM pg_constraint WHERE conname = 'booking_coaches_no_overlap'",
        "apply": (
            "ALTER TABLE booking_coaches ADD CONSTRAINT booking_coaches_no_overlap "
            "EXCLUDE USING gist (coach_id WITH =, tsrange(start_at, end_at, '[)') WITH &&)"
        ),
    },
]


async def run_migrations(bind: AsyncEngine = None):
    """Install dialect-specific constraints that create_all cannot express"""
    bind = bind or default_engine
    if bind.dialect.name != "postgresql":
        logger.info(
            f"Skipping PostgreSQL constraint migrations on '{bind.dialect.name}', "
            "overlap is guarded by locking and re-validation only"
        )
        return

    async with bind.begin() as conn:
        for migration in POSTGRES_MIGRATIONS:
            result = await conn.execute(text(migration["check"]))
            if result.fetchone() is not None:
                logger.debug(f"Migration already applied: {migration['name']}")
                continue

            logger.info(f"Applying migration: {migration['name']}")
            await conn.execute(text(migration["apply"]))
            logger.info(f"✅ Migration applied: {migration['name']}")


def _weekly(coach_id: int, days, start: time, end: time):
    return [
        CoachAvailabilityWindow(
            coach_id=coach_id, day_of_week=day, start_time=start, end_time=end, is_active=True
        )
        for day in days
    ]


async def seed_default_data(session: AsyncSession) -> bool:
    """
    Default facility: 06:00-22:00 in 60 minute slots, four courts, rackets
    and shoes, three coaches with weekly windows and three court rules.
    Does nothing if a facility config already exists. Returns True if seeded.
    """
    existing = await session.execute(select(func.count(FacilityConfig.id)))
    if existing.scalar():
        logger.info("Facility config already present, skipping seed")
        return False

    logger.info("Seeding default facility data...")

    session.add(
        FacilityConfig(
            id=DEFAULT_FACILITY_ID,
            open_time=time(6, 0),
            close_time=time(22, 0),
            slot_minutes=60,
            timezone="local",
        )
    )

    for name, surface in [
        ("Badminton Court 1 (Indoor)", CourtSurface.INDOOR),
        ("Badminton Court 2 (Indoor)", CourtSurface.INDOOR),
        ("Badminton Court 3 (Outdoor)", CourtSurface.OUTDOOR),
        ("Badminton Court 4 (Outdoor)", CourtSurface.OUTDOOR),
    ]:
        session.add(
            Court(name=name, surface=surface, base_rate_cents_per_hour=600, is_active=True)
        )

    session.add_all(
        [
            EquipmentType(name="Racket", unit_price_cents=100, total_quantity=10, is_active=True),
            EquipmentType(name="Shoes", unit_price_cents=150, total_quantity=20, is_active=True),
        ]
    )

    coach_a = Coach(name="Coach A", hourly_rate_cents=600, is_active=True)
    coach_b = Coach(name="Coach B", hourly_rate_cents=700, is_active=True)
    coach_c = Coach(name="Coach C", hourly_rate_cents=500, is_active=True)
    session.add_all([coach_a, coach_b, coach_c])
    await session.flush()

    # day_of_week: 0 = Sunday ... 6 = Saturday
    session.add_all(_weekly(coach_a.id, [1, 2, 3, 4, 5], time(16, 0), time(21, 0)))
    session.add_all(_weekly(coach_b.id, [0, 6], time(8, 0), time(12, 0)))
    session.add_all(_weekly(coach_b.id, [0, 6], time(16, 0), time(20, 0)))
    session.add_all(_weekly(coach_c.id, range(7), time(6, 0), time(10, 0)))

    session.add_all(
        [
            PricingRule(
                name="Peak hours (6-9 PM)",
                is_active=True,
                priority=10,
                applies_to=PricingAppliesTo.COURT,
                day_type=DayType.ANY,
                start_time=time(18, 0),
                end_time=time(21, 0),
                multiplier_bps=13000,
                add_cents=0,
            ),
            PricingRule(
                name="Weekend premium",
                is_active=True,
                priority=20,
                applies_to=PricingAppliesTo.COURT,
                day_type=DayType.WEEKEND,
                multiplier_bps=12000,
                add_cents=0,
            ),
            PricingRule(
                name="Indoor court premium",
                is_active=True,
                priority=30,
                applies_to=PricingAppliesTo.COURT,
                day_type=DayType.ANY,
                court_surface=CourtSurface.INDOOR,
                multiplier_bps=12000,
                add_cents=0,
            ),
        ]
    )

    await session.commit()
    logger.info("Default facility data seeded")
    return True


async def init_database(bind: AsyncEngine = None, seed: bool = None):
    """Initialize database with tables, constraints and default data"""
    bind = bind or default_engine
    seed = SEED_DEFAULT_DATA if seed is None else seed
    db_manager = DatabaseManager(bind)

    try:
        logger.info("Starting database initialization...")

        # Проверяем соединение с базой данных
        await db_manager.check_connection()
        logger.info("✅ Database connection verified")

        await db_manager.create_tables()
        logger.info("✅ Database tables created/verified")

        await run_migrations(bind)
        logger.info("✅ Database migrations checked/applied")

        if seed:
            async with build_session_factory(bind)() as session:
                await seed_default_data(session)
            logger.info("✅ Default data created/verified")

        logger.info("🎉 Database initialization completed successfully")

    except DatabaseError:
        # Наши ошибки БД - просто перебрасываем
        raise
    except Exception as e:
        logger.error(f"Unexpected error during database initialization: {e}")
        raise DatabaseError(f"Database initialization failed: {str(e)}")


async def verify_database_setup(bind: AsyncEngine = None):
    """Verify that the facility is configured and has at least one active court"""
    bind = bind or default_engine
    try:
        logger.info("Verifying database setup...")

        async with build_session_factory(bind)() as session:
            configs = (await session.execute(select(func.count(FacilityConfig.id)))).scalar()
            if not configs:
                raise DatabaseError("Facility config is missing")

            courts = (
                await session.execute(
                    select(func.count(Court.id)).where(Court.is_active.is_(True))
                )
            ).scalar()
            if not courts:
                raise DatabaseError("No active courts configured")

            logger.info(f"✅ Database verification passed: {courts} active courts")
            return True

    except DatabaseError:
        raise
    except Exception as e:
        logger.error(f"Database verification failed: {e}")
        raise DatabaseError(f"Database verification failed: {str(e)}")


async def reset_database(bind: AsyncEngine = None):
    """Reset database (for development/testing only)"""
    if ENVIRONMENT not in ["development", "dev", "test"]:
        raise ConfigurationError(
            "ENVIRONMENT",
            "Database reset is only allowed in development or test environments",
        )

    bind = bind or default_engine
    try:
        logger.warning("🚨 RESETTING DATABASE - ALL DATA WILL BE LOST!")

        async with bind.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        logger.info("✅ All tables dropped")

        await init_database(bind)

        logger.info("✅ Database reset completed")

    except Exception as e:
        logger.error(f"Database reset failed: {e}")
        raise DatabaseError(f"Database reset failed: {str(e)}")


if __name__ == "__main__":
    import sys

    async def main():
        if len(sys.argv) > 1:
            command = sys.argv[1]

            if command == "init":
                await init_database()
            elif command == "verify":
                await verify_database_setup()
            elif command == "reset":
                await reset_database()
            else:
                print(f"Unknown command: {command}")
                print("Available commands: init, verify, reset")
                sys.exit(1)
        else:
            await init_database()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Database initialization cancelled by user")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)
