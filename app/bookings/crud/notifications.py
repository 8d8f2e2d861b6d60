from typing import Any, Dict, List, Optional
from sqlalchemy import desc
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import NOTIFICATIONS_LIMIT
from app.core.database import db_operation
from app.core.validations import normalize_email
from app.bookings.models.notifications import Notification
from app.bookings.services.time_grid import now_local

WAITLIST_AVAILABLE = "WAITLIST_AVAILABLE"


@db_operation
async def create_notification(
    db: AsyncSession, email: str, type: str, payload: Dict[str, Any]
) -> Notification:
    """Adds a notification to the current transaction; the caller commits."""
    db_notification = Notification(
        email=normalize_email(email),
        type=type,
        payload=payload,
        created_at=now_local(),
    )
    db.add(db_notification)
    await db.flush()
    return db_notification


@db_operation
async def list_notifications(
    db: AsyncSession, email: str, limit: Optional[int] = None
) -> List[Notification]:
    """Newest first, capped at NOTIFICATIONS_LIMIT"""
    limit = min(limit or NOTIFICATIONS_LIMIT, NOTIFICATIONS_LIMIT)
    query = (
        select(Notification)
        .where(Notification.email == normalize_email(email))
        .order_by(desc(Notification.created_at), desc(Notification.id))
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())
