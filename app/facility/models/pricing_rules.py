from enum import Enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Time,
    DateTime,
    ForeignKey,
    Index,
    Enum as SQLEnum,
)
from sqlalchemy.sql import func
from app.core.database import Base
from app.facility.models.courts import CourtSurface


class PricingAppliesTo(str, Enum):
    COURT = "COURT"
    COACH = "COACH"
    EQUIPMENT = "EQUIPMENT"


class DayType(str, Enum):
    ANY = "ANY"
    WEEKDAY = "WEEKDAY"
    WEEKEND = "WEEKEND"


class PricingRule(Base):
    """
    One price adjustment: a filter plus ``total * multiplier_bps / 10000 + add_cents``.

    ``applies_to`` decides which optional filter is consulted: ``court_surface``
    for COURT rules, ``coach_id`` for COACH rules. ``equipment_type_id`` is
    stored for admins but EQUIPMENT rules apply to the whole equipment subtotal.
    """

    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    priority = Column(Integer, default=100, nullable=False)

    applies_to = Column(SQLEnum(PricingAppliesTo, name="pricing_applies_to"), nullable=False)
    day_type = Column(SQLEnum(DayType, name="day_type"), default=DayType.ANY, nullable=False)

    # Optional time-of-day window (both ends or none)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    # Category filters
    court_surface = Column(SQLEnum(CourtSurface, name="court_surface"), nullable=True)
    coach_id = Column(Integer, ForeignKey("coaches.id", ondelete="CASCADE"), nullable=True)
    equipment_type_id = Column(
        Integer, ForeignKey("equipment_types.id", ondelete="CASCADE"), nullable=True
    )

    multiplier_bps = Column(Integer, default=10000, nullable=False)
    add_cents = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_pricing_rules_active_applies", "is_active", "applies_to"),
    )

    def __repr__(self):
        return (
            f"<PricingRule(id={self.id}, name='{self.name}', applies_to={self.applies_to}, "
            f"priority={self.priority})>"
        )
