from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.bookings.crud.notifications import list_notifications
from app.bookings.schemas.notifications import (
    NotificationListResponse,
    NotificationResponse,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
@limiter.limit("60/minute")
async def get_notifications(
    request: Request,
    email: str = Query(..., description="Customer email"),
    db: AsyncSession = Depends(get_session),
):
    """Newest first; clients poll this endpoint"""
    notifications = await list_notifications(db, email)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications]
    )
