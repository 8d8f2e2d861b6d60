from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.facility.crud.config_store import get_facility_overview
from app.facility.schemas.config import FacilityOverviewResponse

router = APIRouter(prefix="/config", tags=["Facility"])


@router.get("", response_model=FacilityOverviewResponse)
@limiter.limit("60/minute")
async def read_facility_overview(
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    """
    Facility hours plus all courts, equipment types and coaches.

    Inactive resources are included so clients can show them greyed out.
    """
    return await get_facility_overview(db)
