from datetime import datetime

from app.facility.models import Coach, Court, CourtSurface, EquipmentType, PricingRule
from app.facility.models import PricingAppliesTo, DayType
from app.bookings.schemas.bookings import BookingCreateRequest
from app.bookings.schemas.waitlist import WaitlistJoinRequest


def make_rule(
    rule_id,
    applies_to=PricingAppliesTo.COURT,
    priority=100,
    multiplier_bps=10000,
    add_cents=0,
    day_type=DayType.ANY,
    start_time=None,
    end_time=None,
    court_surface=None,
    coach_id=None,
    is_active=True,
    name=None,
):
    """Transient PricingRule with every column set (column defaults only apply on flush)"""
    return PricingRule(
        id=rule_id,
        name=name or f"rule-{rule_id}",
        is_active=is_active,
        priority=priority,
        applies_to=applies_to,
        day_type=day_type,
        start_time=start_time,
        end_time=end_time,
        court_surface=court_surface,
        coach_id=coach_id,
        equipment_type_id=None,
        multiplier_bps=multiplier_bps,
        add_cents=add_cents,
    )


def make_court(court_id=1, surface=CourtSurface.INDOOR, rate=1000):
    return Court(
        id=court_id,
        name=f"Court {court_id}",
        surface=surface,
        base_rate_cents_per_hour=rate,
        is_active=True,
    )


def make_coach(coach_id=1, rate=600):
    return Coach(id=coach_id, name=f"Coach {coach_id}", hourly_rate_cents=rate, is_active=True)


def make_equipment(equipment_id=1, name="Racket", unit_price=100, total=10):
    return EquipmentType(
        id=equipment_id,
        name=name,
        unit_price_cents=unit_price,
        total_quantity=total,
        is_active=True,
    )


def booking_request(start_at: datetime, end_at: datetime, **kwargs) -> BookingCreateRequest:
    data = {
        "customer_name": "Dana",
        "customer_email": "dana@example.com",
        "start_at": start_at,
        "end_at": end_at,
    }
    data.update(kwargs)
    return BookingCreateRequest(**data)


def waitlist_request(start_at: datetime, end_at: datetime, **kwargs) -> WaitlistJoinRequest:
    data = {
        "customer_name": "Sam",
        "customer_email": "sam@example.com",
        "start_at": start_at,
        "end_at": end_at,
    }
    data.update(kwargs)
    return WaitlistJoinRequest(**data)
