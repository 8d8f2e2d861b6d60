"""
Read access to facility configuration (hours, courts, coaches, equipment,
pricing rules). The booking engine never writes these tables.
"""
from typing import Dict, List, Optional, Sequence
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.core.exceptions import ConfigurationError, NotFoundError
from app.facility.models import (
    FacilityConfig,
    Court,
    Coach,
    CoachAvailabilityWindow,
    EquipmentType,
    PricingRule,
)


@db_operation
async def get_facility_config(session: AsyncSession) -> FacilityConfig:
    result = await session.execute(
        select(FacilityConfig).order_by(FacilityConfig.id).limit(1)
    )
    config = result.scalar_one_or_none()

    if not config:
        raise ConfigurationError("FacilityConfig", "Facility configuration is missing")

    return config


@db_operation
async def get_active_court(
    session: AsyncSession, court_id: int, for_update: bool = False
) -> Court:
    query = select(Court).where(Court.id == court_id, Court.is_active.is_(True))
    if for_update:
        query = query.with_for_update()

    court = (await session.execute(query)).scalar_one_or_none()
    if not court:
        raise NotFoundError("Court", str(court_id))
    return court


@db_operation
async def get_active_coach(
    session: AsyncSession, coach_id: int, for_update: bool = False
) -> Coach:
    query = select(Coach).where(Coach.id == coach_id, Coach.is_active.is_(True))
    if for_update:
        query = query.with_for_update()

    coach = (await session.execute(query)).scalar_one_or_none()
    if not coach:
        raise NotFoundError("Coach", str(coach_id))
    return coach


@db_operation
async def get_active_equipment_type(
    session: AsyncSession, equipment_type_id: int, for_update: bool = False
) -> EquipmentType:
    query = select(EquipmentType).where(
        EquipmentType.id == equipment_type_id, EquipmentType.is_active.is_(True)
    )
    if for_update:
        query = query.with_for_update()

    equipment_type = (await session.execute(query)).scalar_one_or_none()
    if not equipment_type:
        raise NotFoundError("EquipmentType", str(equipment_type_id))
    return equipment_type


@db_operation
async def get_active_equipment_types(
    session: AsyncSession, equipment_type_ids: Sequence[int]
) -> Dict[int, EquipmentType]:
    """Active equipment types by id; every requested id must be present."""
    if not equipment_type_ids:
        return {}

    result = await session.execute(
        select(EquipmentType).where(
            EquipmentType.id.in_(list(equipment_type_ids)),
            EquipmentType.is_active.is_(True),
        )
    )
    by_id = {e.id: e for e in result.scalars().all()}

    for equipment_type_id in equipment_type_ids:
        if equipment_type_id not in by_id:
            raise NotFoundError("EquipmentType", str(equipment_type_id))

    return by_id


@db_operation
async def list_active_courts(session: AsyncSession) -> List[Court]:
    result = await session.execute(
        select(Court)
        .where(Court.is_active.is_(True))
        .order_by(Court.surface, Court.name)
    )
    return list(result.scalars().all())


@db_operation
async def list_active_coaches(session: AsyncSession) -> List[Coach]:
    result = await session.execute(
        select(Coach).where(Coach.is_active.is_(True)).order_by(Coach.name)
    )
    return list(result.scalars().all())


@db_operation
async def list_active_equipment_types(session: AsyncSession) -> List[EquipmentType]:
    result = await session.execute(
        select(EquipmentType)
        .where(EquipmentType.is_active.is_(True))
        .order_by(EquipmentType.name)
    )
    return list(result.scalars().all())


@db_operation
async def list_coach_windows(
    session: AsyncSession, day_of_week: int
) -> List[CoachAvailabilityWindow]:
    """Active weekly windows of active coaches for one weekday (0 = Sunday)."""
    result = await session.execute(
        select(CoachAvailabilityWindow)
        .join(Coach, Coach.id == CoachAvailabilityWindow.coach_id)
        .where(
            CoachAvailabilityWindow.day_of_week == day_of_week,
            CoachAvailabilityWindow.is_active.is_(True),
            Coach.is_active.is_(True),
        )
        .order_by(CoachAvailabilityWindow.coach_id, CoachAvailabilityWindow.start_time)
    )
    return list(result.scalars().all())


@db_operation
async def list_active_pricing_rules(session: AsyncSession) -> List[PricingRule]:
    result = await session.execute(
        select(PricingRule)
        .where(PricingRule.is_active.is_(True))
        .order_by(PricingRule.priority, PricingRule.id)
    )
    return list(result.scalars().all())


@db_operation
async def get_facility_overview(session: AsyncSession) -> dict:
    """Config plus every court, equipment type and coach, active or not."""
    config = await get_facility_config(session)

    courts = await session.execute(select(Court).order_by(Court.surface, Court.name))
    equipment = await session.execute(select(EquipmentType).order_by(EquipmentType.name))
    coaches = await session.execute(select(Coach).order_by(Coach.name))

    return {
        "config": config,
        "courts": list(courts.scalars().all()),
        "equipment_types": list(equipment.scalars().all()),
        "coaches": list(coaches.scalars().all()),
    }
