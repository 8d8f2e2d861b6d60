"""
Queries over reservation join rows.

Only rows whose booking is CONFIRMED count. Cancellation deletes the rows
anyway, the status join keeps a half-applied cancel from holding a resource.
"""
from datetime import datetime
from typing import List, Set
from sqlalchemy import func
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.bookings.models import (
    Booking,
    BookingStatus,
    BookingCourt,
    BookingCoach,
    BookingEquipment,
)


def _overlapping(model, start_at: datetime, end_at: datetime):
    return (
        select(model)
        .join(Booking, Booking.id == model.booking_id)
        .where(
            Booking.status == BookingStatus.CONFIRMED,
            model.start_at < end_at,
            model.end_at > start_at,
        )
    )


@db_operation
async def list_court_reservations(
    session: AsyncSession, start_at: datetime, end_at: datetime
) -> List[BookingCourt]:
    result = await session.execute(_overlapping(BookingCourt, start_at, end_at))
    return list(result.scalars().all())


@db_operation
async def list_coach_reservations(
    session: AsyncSession, start_at: datetime, end_at: datetime
) -> List[BookingCoach]:
    result = await session.execute(_overlapping(BookingCoach, start_at, end_at))
    return list(result.scalars().all())


@db_operation
async def list_equipment_reservations(
    session: AsyncSession, start_at: datetime, end_at: datetime
) -> List[BookingEquipment]:
    result = await session.execute(_overlapping(BookingEquipment, start_at, end_at))
    return list(result.scalars().all())


@db_operation
async def court_is_reserved(
    session: AsyncSession, court_id: int, start_at: datetime, end_at: datetime
) -> bool:
    query = _overlapping(BookingCourt, start_at, end_at).where(
        BookingCourt.court_id == court_id
    )
    result = await session.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


@db_operation
async def coach_is_reserved(
    session: AsyncSession, coach_id: int, start_at: datetime, end_at: datetime
) -> bool:
    query = _overlapping(BookingCoach, start_at, end_at).where(
        BookingCoach.coach_id == coach_id
    )
    result = await session.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


@db_operation
async def booked_coach_ids(
    session: AsyncSession, start_at: datetime, end_at: datetime
) -> Set[int]:
    return {r.coach_id for r in await list_coach_reservations(session, start_at, end_at)}


@db_operation
async def reserved_equipment_quantity(
    session: AsyncSession, equipment_type_id: int, start_at: datetime, end_at: datetime
) -> int:
    result = await session.execute(
        select(func.coalesce(func.sum(BookingEquipment.quantity), 0))
        .join(Booking, Booking.id == BookingEquipment.booking_id)
        .where(
            Booking.status == BookingStatus.CONFIRMED,
            BookingEquipment.equipment_type_id == equipment_type_id,
            BookingEquipment.start_at < end_at,
            BookingEquipment.end_at > start_at,
        )
    )
    return int(result.scalar_one())
