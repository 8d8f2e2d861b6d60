from app.core.database import Base
from .facility import FacilityConfig, DEFAULT_FACILITY_ID
from .courts import Court, CourtSurface
from .coaches import Coach, CoachAvailabilityWindow
from .equipment import EquipmentType
from .pricing_rules import PricingRule, PricingAppliesTo, DayType

__all__ = [
    "Base",
    "FacilityConfig",
    "DEFAULT_FACILITY_ID",
    "Court",
    "CourtSurface",
    "Coach",
    "CoachAvailabilityWindow",
    "EquipmentType",
    "PricingRule",
    "PricingAppliesTo",
    "DayType",
]
