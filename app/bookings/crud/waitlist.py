from typing import List
from sqlalchemy import desc
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.core.validations import normalize_email
from app.bookings.models.waitlist import WaitlistEntry


@db_operation
async def list_waitlist_entries(db: AsyncSession, email: str) -> List[WaitlistEntry]:
    """A customer's waitlist entries, newest interval first"""
    result = await db.execute(
        select(WaitlistEntry)
        .where(WaitlistEntry.customer_email == normalize_email(email))
        .order_by(desc(WaitlistEntry.start_at), desc(WaitlistEntry.created_at))
        .limit(100)
    )
    return list(result.scalars().all())
