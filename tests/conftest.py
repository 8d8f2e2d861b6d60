import os

# Must be set before anything under app/ is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SEED_DEFAULT_DATA", "false")
os.environ.setdefault("FACILITY_TIMEZONE", "UTC")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FORMAT", "text")

from datetime import time

import pytest
import pytest_asyncio
from sqlalchemy.future import select

from app.core.database import Base, build_engine, build_session_factory
from app.core.init_db import seed_default_data
from app.core.locks import ResourceLockRegistry
from app.facility.models import (
    Coach,
    CoachAvailabilityWindow,
    Court,
    CourtSurface,
    EquipmentType,
    FacilityConfig,
)
import app.bookings.models  # noqa: F401


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def locks():
    return ResourceLockRegistry()


@pytest_asyncio.fixture
async def facility(session_factory):
    """Default seed data, returned as name -> id lookups"""
    async with session_factory() as session:
        await seed_default_data(session)

        courts = (await session.execute(select(Court))).scalars().all()
        coaches = (await session.execute(select(Coach))).scalars().all()
        equipment = (await session.execute(select(EquipmentType))).scalars().all()

    return {
        "courts": {c.name: c.id for c in courts},
        "coaches": {c.name: c.id for c in coaches},
        "equipment": {e.name: e.id for e in equipment},
    }


@pytest_asyncio.fixture
async def bare_facility(session_factory):
    """
    One indoor court at 1000/h, one coach available every day 06-22,
    three rackets, and no pricing rules.
    """
    async with session_factory() as session:
        session.add(
            FacilityConfig(
                id=1,
                open_time=time(6, 0),
                close_time=time(22, 0),
                slot_minutes=60,
                timezone="local",
            )
        )
        court = Court(
            name="Court 1", surface=CourtSurface.INDOOR, base_rate_cents_per_hour=1000, is_active=True
        )
        coach = Coach(name="Coach", hourly_rate_cents=600, is_active=True)
        rackets = EquipmentType(
            name="Racket", unit_price_cents=100, total_quantity=3, is_active=True
        )
        session.add_all([court, coach, rackets])
        await session.flush()

        session.add_all(
            [
                CoachAvailabilityWindow(
                    coach_id=coach.id,
                    day_of_week=day,
                    start_time=time(6, 0),
                    end_time=time(22, 0),
                    is_active=True,
                )
                for day in range(7)
            ]
        )
        await session.commit()

        return {"court_id": court.id, "coach_id": coach.id, "racket_id": rackets.id}
