"""
Лист ожидания.

Entries are queued per demand signature (interval, surface preference,
coach wish). When a cancellation frees a court, ``promote`` notifies the
oldest compatible entry. Nothing is booked on the customer's behalf.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import serializable_transaction
from app.core.locks import ResourceLockRegistry, resource_locks
from app.core.logging_utils import get_logger, log_business_event
from app.core.validations import clean_customer_name, normalize_email
from app.facility.crud import config_store
from app.facility.models.courts import CourtSurface
from app.bookings.crud import reservations
from app.bookings.crud.notifications import WAITLIST_AVAILABLE, create_notification
from app.bookings.models.waitlist import WaitlistEntry, WaitlistStatus
from app.bookings.schemas.waitlist import WaitlistJoinRequest, WaitlistJoinResponse
from app.bookings.services.time_grid import (
    day_of_week,
    local_interval,
    now_local,
    time_to_minutes,
    window_contains,
)

logger = get_logger(__name__)


def build_queue_key(
    start_at: datetime,
    end_at: datetime,
    preferred_surface: Optional[CourtSurface],
    wants_coach: bool,
) -> str:
    surface = preferred_surface.value if preferred_surface else "ANY"
    coach = "COACH" if wants_coach else "NOCOACH"
    return f"{start_at.isoformat()}|{end_at.isoformat()}|{surface}|{coach}"


class WaitlistQueue:
    def __init__(self, session: AsyncSession, locks: Optional[ResourceLockRegistry] = None):
        self.session = session
        self.locks = locks or resource_locks

    async def join(self, request: WaitlistJoinRequest) -> WaitlistJoinResponse:
        """Append to the back of the queue for this signature (1-based position)."""
        start_at, end_at = local_interval(request.start_at, request.end_at)
        customer_name = clean_customer_name(request.customer_name)
        customer_email = normalize_email(request.customer_email)

        queue_key = build_queue_key(
            start_at, end_at, request.preferred_surface, request.wants_coach
        )

        async with self.locks.acquire([("waitlist", queue_key)]):
            async with serializable_transaction(self.session):
                result = await self.session.execute(
                    select(func.max(WaitlistEntry.position)).where(
                        WaitlistEntry.queue_key == queue_key,
                        WaitlistEntry.status == WaitlistStatus.QUEUED,
                    )
                )
                position = (result.scalar_one_or_none() or 0) + 1

                entry = WaitlistEntry(
                    customer_name=customer_name,
                    customer_email=customer_email,
                    start_at=start_at,
                    end_at=end_at,
                    preferred_surface=request.preferred_surface,
                    wants_coach=request.wants_coach,
                    queue_key=queue_key,
                    position=position,
                    status=WaitlistStatus.QUEUED,
                    created_at=now_local(),
                )
                self.session.add(entry)
                await self.session.flush()

        log_business_event(
            "waitlist_joined",
            "waitlist_entry",
            entry.id,
            {"queue_key": queue_key, "position": position},
        )
        return WaitlistJoinResponse(waitlist_entry_id=entry.id, position=position)

    async def coach_plausibly_free(self, start_at: datetime, end_at: datetime) -> bool:
        """
        True if some active coach has a weekly window covering the interval
        and no overlapping coach reservation. Best effort: nothing is held.
        """
        windows = await config_store.list_coach_windows(self.session, day_of_week(start_at))
        booked = await reservations.booked_coach_ids(self.session, start_at, end_at)

        return any(
            window.coach_id not in booked
            and window_contains(
                start_at,
                end_at,
                time_to_minutes(window.start_time),
                time_to_minutes(window.end_time),
            )
            for window in windows
        )

    async def promote(
        self, start_at: datetime, end_at: datetime, surface: CourtSurface
    ) -> Optional[WaitlistEntry]:
        """
        Notify the oldest QUEUED entry that fits a freed court.

        Runs inside the caller's transaction (cancellation) and does not
        commit. Returns the notified entry, or None when nobody fits.
        """
        coach_possible = await self.coach_plausibly_free(start_at, end_at)

        query = select(WaitlistEntry).where(
            WaitlistEntry.status == WaitlistStatus.QUEUED,
            WaitlistEntry.start_at == start_at,
            WaitlistEntry.end_at == end_at,
            or_(
                WaitlistEntry.preferred_surface == surface,
                WaitlistEntry.preferred_surface.is_(None),
            ),
        )
        if not coach_possible:
            query = query.where(WaitlistEntry.wants_coach.is_(False))

        query = (
            query.order_by(
                WaitlistEntry.created_at, WaitlistEntry.position, WaitlistEntry.id
            )
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        entry = (await self.session.execute(query)).scalar_one_or_none()

        if entry is None:
            logger.debug(
                f"No waitlist entry to promote for {start_at.isoformat()}-{end_at.isoformat()}"
            )
            return None

        entry.status = WaitlistStatus.NOTIFIED
        entry.notified_at = now_local()

        await create_notification(
            self.session,
            entry.customer_email,
            WAITLIST_AVAILABLE,
            {
                "waitlist_entry_id": entry.id,
                "start_at": start_at.isoformat(),
                "end_at": end_at.isoformat(),
                "preferred_surface": entry.preferred_surface.value
                if entry.preferred_surface
                else None,
                "wants_coach": entry.wants_coach,
            },
        )

        log_business_event(
            "waitlist_promoted",
            "waitlist_entry",
            entry.id,
            {"queue_key": entry.queue_key, "surface": surface.value},
        )
        return entry
