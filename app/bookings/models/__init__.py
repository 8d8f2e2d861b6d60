from app.core.database import Base
from .bookings import (
    Booking,
    BookingStatus,
    BookingCourt,
    BookingCoach,
    BookingEquipment,
)
from .waitlist import WaitlistEntry, WaitlistStatus
from .notifications import Notification

__all__ = [
    "Base",
    "Booking",
    "BookingStatus",
    "BookingCourt",
    "BookingCoach",
    "BookingEquipment",
    "WaitlistEntry",
    "WaitlistStatus",
    "Notification",
]
