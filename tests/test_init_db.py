import pytest
from sqlalchemy import func
from sqlalchemy.future import select

from app.core.database import build_engine
from app.core.init_db import init_database, seed_default_data, verify_database_setup
from app.facility.models import Coach, CoachAvailabilityWindow, Court, PricingRule


@pytest.mark.asyncio
async def test_seed_runs_once(session):
    assert await seed_default_data(session) is True
    assert await seed_default_data(session) is False

    courts = (await session.execute(select(func.count(Court.id)))).scalar()
    rules = (await session.execute(select(func.count(PricingRule.id)))).scalar()
    assert courts == 4
    assert rules == 3


@pytest.mark.asyncio
async def test_seeded_coach_windows(session):
    await seed_default_data(session)

    result = await session.execute(
        select(CoachAvailabilityWindow.day_of_week)
        .join(Coach, Coach.id == CoachAvailabilityWindow.coach_id)
        .where(Coach.name == "Coach A")
        .order_by(CoachAvailabilityWindow.day_of_week)
    )
    # Weekdays only, 0 = Sunday
    assert list(result.scalars().all()) == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_init_database_on_sqlite(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'init.db'}")
    try:
        await init_database(engine, seed=True)
        # Second run is a no-op
        await init_database(engine, seed=True)
        assert await verify_database_setup(engine) is True
    finally:
        await engine.dispose()
