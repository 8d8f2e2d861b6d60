from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.bookings.crud.waitlist import list_waitlist_entries
from app.bookings.schemas.waitlist import (
    WaitlistEntryResponse,
    WaitlistJoinRequest,
    WaitlistJoinResponse,
    WaitlistListResponse,
)
from app.bookings.services.waitlist import WaitlistQueue

router = APIRouter(prefix="/waitlist", tags=["Waitlist"])


@router.get("", response_model=WaitlistListResponse)
@limiter.limit("30/minute")
async def get_customer_waitlist(
    request: Request,
    email: str = Query(..., description="Customer email"),
    db: AsyncSession = Depends(get_session),
):
    entries = await list_waitlist_entries(db, email)
    return WaitlistListResponse(
        entries=[WaitlistEntryResponse.model_validate(e) for e in entries]
    )


@router.post("", response_model=WaitlistJoinResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def join_waitlist(
    request: Request,
    join_request: WaitlistJoinRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Queue for an interval that is currently full.

    Entries with the same interval, surface preference and coach wish share
    one queue; the response carries the 1-based position in it.
    """
    return await WaitlistQueue(db).join(join_request)
