"""
Booking writes.

A create is one atomic unit: take the in-process resource locks in sorted
order, open a serializable transaction, lock the resource rows in the same
order, re-check inventory and interval overlap, price, insert, commit.
Every way of losing a race (inventory shortage, overlap, unique or
exclusion violation, serialization failure, deadlock) is reported as
``ResourceUnavailableError``. Lost races are never retried here.
"""
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import serializable_transaction
from app.core.exceptions import (
    NotFoundError,
    ResourceUnavailableError,
    ValidationError,
)
from app.core.locks import LockKey, ResourceLockRegistry, resource_locks
from app.core.logging_utils import get_logger, log_business_event
from app.core.validations import (
    clean_customer_name,
    normalize_email,
    normalize_equipment_request,
)
from app.facility.crud import config_store
from app.facility.models import Court
from app.bookings.crud import reservations
from app.bookings.models.bookings import (
    Booking,
    BookingStatus,
    BookingCourt,
    BookingCoach,
    BookingEquipment,
)
from app.bookings.schemas.bookings import (
    BookingCancelResponse,
    BookingCreateRequest,
    BookingCreateResponse,
)
from app.bookings.services.pricing_engine import (
    EquipmentSelection,
    PricingSelection,
    quote,
)
from app.bookings.services.time_grid import local_interval, now_local
from app.bookings.services.waitlist import WaitlistQueue

logger = get_logger(__name__)

# unique_violation, exclusion_violation, serialization_failure, deadlock_detected
CONFLICT_SQLSTATES = {"23505", "23P01", "40001", "40P01"}


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is None and orig is not None:
        # asyncpg errors arrive wrapped by the SQLAlchemy adapter
        code = getattr(orig.__cause__, "sqlstate", None)
    return code


def is_conflict_error(exc: DBAPIError) -> bool:
    return isinstance(exc, IntegrityError) or _sqlstate(exc) in CONFLICT_SQLSTATES


def lock_keys(
    court_id: Optional[int], coach_id: Optional[int], equipment_ids
) -> List[LockKey]:
    keys = []
    if coach_id is not None:
        keys.append(("coach", coach_id))
    if court_id is not None:
        keys.append(("court", court_id))
    keys.extend(("equipment", equipment_id) for equipment_id in equipment_ids)
    return keys


class ReservationTransactor:
    """Атомарное создание и идемпотентная отмена бронирований"""

    def __init__(self, session: AsyncSession, locks: Optional[ResourceLockRegistry] = None):
        self.session = session
        self.locks = locks or resource_locks

    async def create_booking(self, request: BookingCreateRequest) -> BookingCreateResponse:
        start_at, end_at = local_interval(request.start_at, request.end_at)
        customer_name = clean_customer_name(request.customer_name)
        customer_email = normalize_email(request.customer_email)
        equipment_requested = normalize_equipment_request(request.equipment)

        if request.court_id is None and request.coach_id is None and not equipment_requested:
            raise ValidationError("Select a court, a coach or at least one equipment item")

        keys = lock_keys(request.court_id, request.coach_id, equipment_requested)

        try:
            async with self.locks.acquire(keys) as ordered:
                async with serializable_transaction(self.session):
                    booking, breakdown = await self._reserve(
                        ordered,
                        customer_name,
                        customer_email,
                        start_at,
                        end_at,
                        equipment_requested,
                    )
        except DBAPIError as e:
            if not is_conflict_error(e):
                raise
            logger.info(
                f"Booking conflict reported by the database: {type(e).__name__}",
                extra={"sqlstate": _sqlstate(e), "lock_keys": [list(k) for k in keys]},
            )
            raise ResourceUnavailableError() from e

        log_business_event(
            "booking_created",
            "booking",
            booking.id,
            {
                "customer_email": customer_email,
                "start_at": start_at.isoformat(),
                "end_at": end_at.isoformat(),
                "total_cents": breakdown.total_cents,
            },
        )
        return BookingCreateResponse(
            booking_id=booking.id,
            price_total_cents=breakdown.total_cents,
            price_breakdown=breakdown,
        )

    async def _reserve(
        self,
        ordered: List[LockKey],
        customer_name: str,
        customer_email: str,
        start_at: datetime,
        end_at: datetime,
        equipment_requested: Dict[int, int],
    ):
        session = self.session
        court = coach = None
        equipment_types = {}

        # Row locks in the same order as the in-process locks
        for kind, resource_id in ordered:
            if kind == "coach":
                coach = await config_store.get_active_coach(session, resource_id, for_update=True)
            elif kind == "court":
                court = await config_store.get_active_court(session, resource_id, for_update=True)
            elif kind == "equipment":
                equipment_types[resource_id] = await config_store.get_active_equipment_type(
                    session, resource_id, for_update=True
                )

        for equipment_type_id, quantity in equipment_requested.items():
            equipment_type = equipment_types[equipment_type_id]
            reserved = await reservations.reserved_equipment_quantity(
                session, equipment_type_id, start_at, end_at
            )
            if reserved + quantity > equipment_type.total_quantity:
                raise ResourceUnavailableError(
                    details={
                        "equipment_type_id": equipment_type_id,
                        "remaining": max(0, equipment_type.total_quantity - reserved),
                    }
                )

        if court is not None and await reservations.court_is_reserved(
            session, court.id, start_at, end_at
        ):
            raise ResourceUnavailableError(details={"court_id": court.id})

        if coach is not None and await reservations.coach_is_reserved(
            session, coach.id, start_at, end_at
        ):
            raise ResourceUnavailableError(details={"coach_id": coach.id})

        rules = await config_store.list_active_pricing_rules(session)
        breakdown = quote(
            PricingSelection(
                start_at=start_at,
                end_at=end_at,
                court=court,
                coach=coach,
                equipment=[
                    EquipmentSelection(equipment_types[type_id], quantity)
                    for type_id, quantity in equipment_requested.items()
                ],
            ),
            rules,
        )

        booking = Booking(
            customer_name=customer_name,
            customer_email=customer_email,
            start_at=start_at,
            end_at=end_at,
            status=BookingStatus.CONFIRMED,
            price_total_cents=breakdown.total_cents,
            price_breakdown=breakdown.model_dump(mode="json"),
            created_at=now_local(),
        )
        session.add(booking)
        await session.flush()

        if court is not None:
            session.add(
                BookingCourt(
                    booking_id=booking.id, court_id=court.id, start_at=start_at, end_at=end_at
                )
            )
        if coach is not None:
            session.add(
                BookingCoach(
                    booking_id=booking.id, coach_id=coach.id, start_at=start_at, end_at=end_at
                )
            )
        for equipment_type_id, quantity in equipment_requested.items():
            session.add(
                BookingEquipment(
                    booking_id=booking.id,
                    equipment_type_id=equipment_type_id,
                    quantity=quantity,
                    start_at=start_at,
                    end_at=end_at,
                )
            )
        await session.flush()

        return booking, breakdown

    async def cancel_booking(self, booking_id: int) -> BookingCancelResponse:
        """
        Cancel and free the booking's resources. Cancelling twice is a no-op.
        A freed court is offered to the waitlist in the same transaction.
        """
        session = self.session
        promoted = None

        async with serializable_transaction(session):
            result = await session.execute(
                select(Booking).where(Booking.id == booking_id).with_for_update()
            )
            booking = result.scalar_one_or_none()

            if not booking:
                raise NotFoundError("Booking", str(booking_id))

            if booking.status == BookingStatus.CANCELLED:
                return BookingCancelResponse(ok=True)

            surface = (
                await session.execute(
                    select(Court.surface)
                    .join(BookingCourt, BookingCourt.court_id == Court.id)
                    .where(BookingCourt.booking_id == booking_id)
                )
            ).scalar_one_or_none()

            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = now_local()
            await session.flush()

            for model in (BookingCourt, BookingCoach, BookingEquipment):
                await session.execute(delete(model).where(model.booking_id == booking_id))

            if surface is not None:
                promoted = await WaitlistQueue(session, self.locks).promote(
                    booking.start_at, booking.end_at, surface
                )

        log_business_event(
            "booking_cancelled",
            "booking",
            booking_id,
            {"waitlist_entry_notified": promoted.id if promoted else None},
        )
        return BookingCancelResponse(ok=True)
