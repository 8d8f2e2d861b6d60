import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.future import select

from app.core.exceptions import (
    DatabaseError,
    NotFoundError,
    ResourceUnavailableError,
    ValidationError,
)
from app.facility.models import Court
from app.bookings.models import (
    Booking,
    BookingCoach,
    BookingCourt,
    BookingEquipment,
    BookingStatus,
    Notification,
)
from app.bookings.schemas.pricing import EquipmentRequestItem
from app.bookings.services.reservations import ReservationTransactor, is_conflict_error
from helpers import booking_request

TEN = datetime(2024, 1, 3, 10)
ELEVEN = datetime(2024, 1, 3, 11)
NOON = datetime(2024, 1, 3, 12)


def rackets(equipment_id, quantity):
    return [EquipmentRequestItem(equipment_type_id=equipment_id, quantity=quantity)]


async def attempt(session_factory, locks, request):
    async with session_factory() as session:
        return await ReservationTransactor(session, locks).create_booking(request)


@pytest.mark.asyncio
async def test_create_booking_stores_price_snapshot(session, bare_facility, locks):
    result = await ReservationTransactor(session, locks).create_booking(
        booking_request(
            TEN,
            ELEVEN,
            customer_name="  Dana  ",
            customer_email=" Dana@Example.COM ",
            court_id=bare_facility["court_id"],
            coach_id=bare_facility["coach_id"],
            equipment=rackets(bare_facility["racket_id"], 2),
        )
    )

    assert result.price_total_cents == 1000 + 600 + 200
    assert result.price_breakdown.total_cents == result.price_total_cents

    booking = await session.get(Booking, result.booking_id)
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.customer_name == "Dana"
    assert booking.customer_email == "dana@example.com"
    assert booking.price_breakdown == result.price_breakdown.model_dump(mode="json")

    court_row = (
        await session.execute(
            select(BookingCourt).where(BookingCourt.booking_id == result.booking_id)
        )
    ).scalar_one()
    assert (court_row.start_at, court_row.end_at) == (TEN, ELEVEN)


@pytest.mark.asyncio
async def test_aware_input_is_stored_as_facility_local(session, bare_facility, locks):
    result = await ReservationTransactor(session, locks).create_booking(
        booking_request(
            datetime(2024, 1, 3, 10, tzinfo=timezone.utc),
            datetime(2024, 1, 3, 11, tzinfo=timezone.utc),
            court_id=bare_facility["court_id"],
        )
    )

    booking = await session.get(Booking, result.booking_id)
    assert booking.start_at == TEN
    assert booking.start_at.tzinfo is None


@pytest.mark.asyncio
async def test_concurrent_creates_for_one_court_slot_have_a_single_winner(
    session_factory, bare_facility, locks
):
    request = booking_request(TEN, ELEVEN, court_id=bare_facility["court_id"])

    results = await asyncio.gather(
        *[attempt(session_factory, locks, request) for _ in range(5)],
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 4
    assert all(isinstance(e, ResourceUnavailableError) for e in losers)
    assert all(e.status_code == 409 for e in losers)
    assert all(e.error_code == "RESOURCE_UNAVAILABLE" for e in losers)

    async with session_factory() as session:
        rows = (await session.execute(select(BookingCourt))).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_partial_overlap_is_rejected_and_touching_intervals_are_not(
    session, bare_facility, locks
):
    transactor = ReservationTransactor(session, locks)
    court_id = bare_facility["court_id"]

    await transactor.create_booking(booking_request(TEN, ELEVEN, court_id=court_id))

    with pytest.raises(ResourceUnavailableError):
        await transactor.create_booking(
            booking_request(
                datetime(2024, 1, 3, 10, 30), datetime(2024, 1, 3, 11, 30), court_id=court_id
            )
        )

    await transactor.create_booking(booking_request(ELEVEN, NOON, court_id=court_id))


@pytest.mark.asyncio
async def test_coach_cannot_be_double_booked(session, facility, locks):
    transactor = ReservationTransactor(session, locks)
    coach_id = facility["coaches"]["Coach A"]
    courts = facility["courts"]

    await transactor.create_booking(
        booking_request(
            datetime(2024, 1, 3, 17),
            datetime(2024, 1, 3, 18),
            court_id=courts["Badminton Court 1 (Indoor)"],
            coach_id=coach_id,
        )
    )

    with pytest.raises(ResourceUnavailableError):
        await transactor.create_booking(
            booking_request(
                datetime(2024, 1, 3, 17),
                datetime(2024, 1, 3, 18),
                court_id=courts["Badminton Court 2 (Indoor)"],
                coach_id=coach_id,
            )
        )


@pytest.mark.asyncio
async def test_inventory_is_never_oversold(session_factory, bare_facility, locks):
    racket_id = bare_facility["racket_id"]  # three in stock
    request = booking_request(TEN, ELEVEN, equipment=rackets(racket_id, 2))

    results = await asyncio.gather(
        *[attempt(session_factory, locks, request) for _ in range(3)],
        return_exceptions=True,
    )

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert all(
        isinstance(r, ResourceUnavailableError) for r in results if isinstance(r, Exception)
    )

    # The last unit is still bookable, the one after is not
    await attempt(session_factory, locks, booking_request(TEN, ELEVEN, equipment=rackets(racket_id, 1)))
    with pytest.raises(ResourceUnavailableError) as exc_info:
        await attempt(
            session_factory, locks, booking_request(TEN, ELEVEN, equipment=rackets(racket_id, 1))
        )
    assert exc_info.value.details == {"equipment_type_id": racket_id, "remaining": 0}

    async with session_factory() as session:
        rows = (await session.execute(select(BookingEquipment))).scalars().all()
    assert sum(r.quantity for r in rows) == 3


@pytest.mark.asyncio
async def test_crossing_equipment_sets_do_not_deadlock(session_factory, facility, locks):
    courts = facility["courts"]
    racket_id = facility["equipment"]["Racket"]
    shoes_id = facility["equipment"]["Shoes"]

    first = booking_request(
        TEN,
        ELEVEN,
        court_id=courts["Badminton Court 1 (Indoor)"],
        equipment=[
            EquipmentRequestItem(equipment_type_id=racket_id, quantity=1),
            EquipmentRequestItem(equipment_type_id=shoes_id, quantity=1),
        ],
    )
    second = booking_request(
        TEN,
        ELEVEN,
        court_id=courts["Badminton Court 3 (Outdoor)"],
        equipment=[
            EquipmentRequestItem(equipment_type_id=shoes_id, quantity=1),
            EquipmentRequestItem(equipment_type_id=racket_id, quantity=1),
        ],
    )

    results = await asyncio.wait_for(
        asyncio.gather(
            attempt(session_factory, locks, first), attempt(session_factory, locks, second)
        ),
        timeout=10,
    )

    assert len({r.booking_id for r in results}) == 2


@pytest.mark.asyncio
async def test_duplicate_equipment_lines_are_merged(session, bare_facility, locks):
    racket_id = bare_facility["racket_id"]

    result = await ReservationTransactor(session, locks).create_booking(
        booking_request(
            TEN,
            ELEVEN,
            equipment=[
                EquipmentRequestItem(equipment_type_id=racket_id, quantity=1),
                EquipmentRequestItem(equipment_type_id=racket_id, quantity=1),
                EquipmentRequestItem(equipment_type_id=racket_id, quantity=-4),
            ],
        )
    )

    rows = (
        await session.execute(
            select(BookingEquipment).where(BookingEquipment.booking_id == result.booking_id)
        )
    ).scalars().all()
    assert [(r.equipment_type_id, r.quantity) for r in rows] == [(racket_id, 2)]
    assert result.price_total_cents == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"end_at": TEN},
        {"customer_name": "   "},
        {"customer_email": ""},
        {"court_id": None},
    ],
)
async def test_invalid_input_is_a_validation_error(session, bare_facility, locks, overrides):
    data = {"court_id": bare_facility["court_id"]}
    data.update(overrides)
    end_at = data.pop("end_at", ELEVEN)

    with pytest.raises(ValidationError):
        await ReservationTransactor(session, locks).create_booking(
            booking_request(TEN, end_at, **data)
        )


@pytest.mark.asyncio
async def test_inactive_or_unknown_resources_are_not_found(session, bare_facility, locks):
    transactor = ReservationTransactor(session, locks)

    with pytest.raises(NotFoundError):
        await transactor.create_booking(booking_request(TEN, ELEVEN, court_id=999))

    with pytest.raises(NotFoundError):
        await transactor.create_booking(
            booking_request(TEN, ELEVEN, equipment=rackets(999, 1))
        )

    await session.execute(update(Court).values(is_active=False))
    await session.commit()

    with pytest.raises(NotFoundError):
        await transactor.create_booking(
            booking_request(TEN, ELEVEN, court_id=bare_facility["court_id"])
        )


@pytest.mark.asyncio
async def test_cancel_is_idempotent_and_frees_resources(session, bare_facility, locks):
    transactor = ReservationTransactor(session, locks)
    created = await transactor.create_booking(
        booking_request(
            TEN,
            ELEVEN,
            court_id=bare_facility["court_id"],
            coach_id=bare_facility["coach_id"],
            equipment=rackets(bare_facility["racket_id"], 3),
        )
    )

    assert (await transactor.cancel_booking(created.booking_id)).ok is True

    booking = await session.get(Booking, created.booking_id)
    cancelled_at = booking.cancelled_at
    assert booking.status == BookingStatus.CANCELLED
    assert cancelled_at is not None
    assert booking.price_total_cents == created.price_total_cents

    for model in (BookingCourt, BookingCoach, BookingEquipment):
        rows = (
            await session.execute(select(model).where(model.booking_id == created.booking_id))
        ).scalars().all()
        assert rows == []

    assert (await transactor.cancel_booking(created.booking_id)).ok is True
    await session.refresh(booking)
    assert booking.cancelled_at == cancelled_at

    # Everything is bookable again
    await transactor.create_booking(
        booking_request(
            TEN,
            ELEVEN,
            court_id=bare_facility["court_id"],
            coach_id=bare_facility["coach_id"],
            equipment=rackets(bare_facility["racket_id"], 3),
        )
    )


@pytest.mark.asyncio
async def test_cancel_unknown_booking_is_not_found(session, bare_facility, locks):
    with pytest.raises(NotFoundError):
        await ReservationTransactor(session, locks).cancel_booking(12345)


@pytest.mark.asyncio
async def test_create_waits_for_held_resource_locks(session_factory, bare_facility, locks):
    court_key = ("court", bare_facility["court_id"])
    request = booking_request(TEN, ELEVEN, court_id=bare_facility["court_id"])

    async with locks.acquire([court_key]):
        task = asyncio.create_task(attempt(session_factory, locks, request))
        await asyncio.sleep(0.05)
        assert not task.done()

    result = await asyncio.wait_for(task, timeout=10)
    assert result.booking_id > 0


class _PgError(Exception):
    def __init__(self, sqlstate):
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


@pytest.mark.parametrize(
    "error, expected",
    [
        (IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")), True),
        (DBAPIError("INSERT", {}, _PgError("23P01")), True),
        (DBAPIError("COMMIT", {}, _PgError("40001")), True),
        (DBAPIError("INSERT", {}, _PgError("40P01")), True),
        (DBAPIError("SELECT", {}, _PgError("42P01")), False),
    ],
)
def test_conflict_sqlstates(error, expected):
    assert is_conflict_error(error) is expected


@pytest.mark.asyncio
async def test_unflushed_changes_are_not_committed_by_a_booking(session, bare_facility, locks):
    stray = Notification(email="x@example.com", type="NOTE", payload={}, created_at=TEN)
    session.add(stray)

    with pytest.raises(DatabaseError):
        await ReservationTransactor(session, locks).create_booking(
            booking_request(TEN, ELEVEN, court_id=bare_facility["court_id"])
        )

    assert (await session.execute(select(Booking))).scalars().all() == []

    session.expunge(stray)
    await ReservationTransactor(session, locks).create_booking(
        booking_request(TEN, ELEVEN, court_id=bare_facility["court_id"])
    )
    assert (await session.execute(select(Notification))).scalars().all() == []
