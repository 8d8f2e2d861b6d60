from collections import defaultdict
from datetime import datetime
from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_retry
from app.core.logging_utils import get_logger
from app.facility.crud import config_store
from app.facility.models import CoachAvailabilityWindow
from app.facility.schemas.config import (
    CoachResponse,
    CourtResponse,
    EquipmentTypeResponse,
)
from app.bookings.crud import reservations
from app.bookings.schemas.availability import EquipmentRemaining, SlotAvailability
from app.bookings.services.time_grid import (
    MINUTES_PER_DAY,
    add_minutes,
    day_of_week,
    ranges_overlap,
    time_to_minutes,
    window_contains,
)

logger = get_logger(__name__)


class AvailabilityProjector:
    """Проекция состояния ресурсов на сетку слотов одного дня (только чтение)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    @db_retry()
    async def project(self, day_start: datetime) -> List[SlotAvailability]:
        """
        Build the slot grid for the day starting at ``day_start`` (local midnight).

        All rows are fetched once for the whole day, then filtered per slot
        in memory. Slots that would end after closing time are not emitted.
        """
        config = await config_store.get_facility_config(self.session)

        day_end = add_minutes(day_start, MINUTES_PER_DAY)
        open_min = time_to_minutes(config.open_time)
        close_min = time_to_minutes(config.close_time)
        slot_minutes = config.slot_minutes

        courts = await config_store.list_active_courts(self.session)
        equipment_types = await config_store.list_active_equipment_types(self.session)
        coaches = await config_store.list_active_coaches(self.session)
        windows = await config_store.list_coach_windows(self.session, day_of_week(day_start))

        court_rows = await reservations.list_court_reservations(self.session, day_start, day_end)
        coach_rows = await reservations.list_coach_reservations(self.session, day_start, day_end)
        equipment_rows = await reservations.list_equipment_reservations(
            self.session, day_start, day_end
        )

        windows_by_coach: Dict[int, List[CoachAvailabilityWindow]] = defaultdict(list)
        for window in windows:
            windows_by_coach[window.coach_id].append(window)

        slots = []
        start_min = open_min
        while start_min + slot_minutes <= close_min:
            slot_start = add_minutes(day_start, start_min)
            slot_end = add_minutes(slot_start, slot_minutes)

            available_courts = [
                CourtResponse.model_validate(court)
                for court in courts
                if not any(
                    r.court_id == court.id
                    and ranges_overlap(r.start_at, r.end_at, slot_start, slot_end)
                    for r in court_rows
                )
            ]

            available_coaches = [
                CoachResponse.model_validate(coach)
                for coach in coaches
                if self._coach_works(windows_by_coach[coach.id], slot_start, slot_end)
                and not any(
                    r.coach_id == coach.id
                    and ranges_overlap(r.start_at, r.end_at, slot_start, slot_end)
                    for r in coach_rows
                )
            ]

            equipment_remaining = []
            for equipment_type in equipment_types:
                reserved = sum(
                    r.quantity
                    for r in equipment_rows
                    if r.equipment_type_id == equipment_type.id
                    and ranges_overlap(r.start_at, r.end_at, slot_start, slot_end)
                )
                equipment_remaining.append(
                    EquipmentRemaining(
                        equipment_type=EquipmentTypeResponse.model_validate(equipment_type),
                        reserved=reserved,
                        remaining=max(0, equipment_type.total_quantity - reserved),
                    )
                )

            slots.append(
                SlotAvailability(
                    start_at=slot_start,
                    end_at=slot_end,
                    available_courts=available_courts,
                    available_coaches=available_coaches,
                    equipment_remaining=equipment_remaining,
                )
            )
            start_min += slot_minutes

        logger.debug(
            f"Projected {len(slots)} slots for {day_start.date().isoformat()}",
            extra={"day": day_start.date().isoformat(), "slots": len(slots)},
        )
        return slots

    @staticmethod
    def _coach_works(
        windows: List[CoachAvailabilityWindow], slot_start: datetime, slot_end: datetime
    ) -> bool:
        return any(
            window_contains(
                slot_start,
                slot_end,
                time_to_minutes(w.start_time),
                time_to_minutes(w.end_time),
            )
            for w in windows
        )
