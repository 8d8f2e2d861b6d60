from typing import List
from sqlalchemy import desc
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import db_operation
from app.core.validations import normalize_email
from app.bookings.models.bookings import (
    Booking,
    BookingCourt,
    BookingCoach,
    BookingEquipment,
)


def _with_reservations(query):
    return query.options(
        selectinload(Booking.court).selectinload(BookingCourt.court),
        selectinload(Booking.coach).selectinload(BookingCoach.coach),
        selectinload(Booking.equipment).selectinload(BookingEquipment.equipment_type),
    )


@db_operation
async def list_bookings(session: AsyncSession, email: str) -> List[Booking]:
    """A customer's booking history, latest start first"""
    result = await session.execute(
        _with_reservations(select(Booking))
        .where(Booking.customer_email == normalize_email(email))
        .order_by(desc(Booking.start_at), desc(Booking.id))
        .limit(100)
    )
    return list(result.scalars().all())
