from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.bookings.crud.bookings import list_bookings
from app.bookings.schemas.bookings import (
    BookingCancelResponse,
    BookingCreateRequest,
    BookingCreateResponse,
    BookingListResponse,
    booking_to_response,
)
from app.bookings.services.reservations import ReservationTransactor

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("", response_model=BookingListResponse)
@limiter.limit("30/minute")
async def get_customer_bookings(
    request: Request,
    email: str = Query(..., description="Customer email"),
    db: AsyncSession = Depends(get_session),
):
    """Booking history of one customer, latest first"""
    bookings = await list_bookings(db, email)
    return BookingListResponse(bookings=[booking_to_response(b) for b in bookings])


@router.post("", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_booking(
    request: Request,
    booking_request: BookingCreateRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Reserve a court, a coach and/or equipment for one interval.

    - **409 RESOURCE_UNAVAILABLE**: something in the selection is taken or
      out of stock for that interval. Pick another slot or join the waitlist.
    - **404**: a selected resource does not exist or is inactive.
    """
    return await ReservationTransactor(db).create_booking(booking_request)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
@limiter.limit("20/minute")
async def cancel_booking(
    request: Request,
    booking_id: int = Path(..., gt=0, description="Booking ID"),
    db: AsyncSession = Depends(get_session),
):
    """Cancel a booking. Cancelling an already cancelled booking succeeds."""
    return await ReservationTransactor(db).cancel_booking(booking_id)
