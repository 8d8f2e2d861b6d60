"""
Facility clock arithmetic.

Every instant handled by the booking engine is a naive ``datetime`` in
facility-local time. Aware values coming from clients are converted once at
the edge (``to_facility_local``); nothing below that point deals with zones.
All arithmetic is done in whole minutes on integers.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import FACILITY_TIMEZONE
from app.core.exceptions import ValidationError

MINUTES_PER_DAY = 24 * 60
_MS_PER_MINUTE = 60_000


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half-up (towards +inf on exact halves)."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (2 * numerator + denominator) // (2 * denominator)


def facility_zone() -> ZoneInfo:
    return ZoneInfo(FACILITY_TIMEZONE)


def to_facility_local(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant
    return instant.astimezone(facility_zone()).replace(tzinfo=None)


def now_local() -> datetime:
    return datetime.now(facility_zone()).replace(tzinfo=None)


def parse_local_date(value: str) -> datetime:
    """``YYYY-MM-DD`` -> facility-local midnight of that day."""
    invalid = ValidationError("date must be in YYYY-MM-DD format", details={"date": value})
    if not isinstance(value, str) or len(value.strip()) != 10:
        raise invalid

    try:
        parsed = date.fromisoformat(value.strip())
    except ValueError:
        raise invalid

    return datetime.combine(parsed, time.min)


def add_minutes(instant: datetime, minutes: int) -> datetime:
    return instant + timedelta(minutes=minutes)


def day_of_week(instant: datetime) -> int:
    # 0 = Sunday ... 6 = Saturday
    return (instant.weekday() + 1) % 7


def is_weekend(instant: datetime) -> bool:
    return day_of_week(instant) in (0, 6)


def minutes_of_day(instant: datetime) -> int:
    return instant.hour * 60 + instant.minute


def time_to_minutes(value: Optional[time]) -> Optional[int]:
    if value is None:
        return None
    return value.hour * 60 + value.minute


def ranges_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open intervals: touching ends do not overlap."""
    return start_a < end_b and end_a > start_b


def overlaps_time_window(
    start: datetime, end: datetime, window_start: int, window_end: int
) -> bool:
    return minutes_of_day(start) < window_end and minutes_of_day(end) > window_start


def window_contains(
    start: datetime, end: datetime, window_start: int, window_end: int
) -> bool:
    return window_start <= minutes_of_day(start) and minutes_of_day(end) <= window_end


def duration_minutes(start: datetime, end: datetime) -> int:
    elapsed_ms = (end - start) // timedelta(milliseconds=1)
    if elapsed_ms <= 0:
        return 0
    return round_half_up(elapsed_ms, _MS_PER_MINUTE)


def local_interval(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """Converts both ends to facility-local time and checks ``end > start``."""
    start_local, end_local = to_facility_local(start), to_facility_local(end)
    if end_local <= start_local:
        raise ValidationError(
            "end_at must be after start_at",
            details={"start_at": start_local.isoformat(), "end_at": end_local.isoformat()},
        )
    return start_local, end_local
