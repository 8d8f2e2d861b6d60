from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.bookings.schemas.availability import AvailabilityResponse
from app.bookings.services.availability import AvailabilityProjector
from app.bookings.services.time_grid import parse_local_date

router = APIRouter(prefix="/availability", tags=["Availability"])


@router.get("", response_model=AvailabilityResponse)
@limiter.limit("60/minute")
async def get_availability(
    request: Request,
    date: str = Query(..., description="Day in YYYY-MM-DD (facility-local)"),
    db: AsyncSession = Depends(get_session),
):
    """
    Slot grid for one day.

    Each slot lists free courts, coaches working and free for the whole slot,
    and the remaining quantity of every equipment type.
    """
    day_start = parse_local_date(date)
    slots = await AvailabilityProjector(db).project(day_start)
    return AvailabilityResponse(day=day_start.date(), slots=slots)
