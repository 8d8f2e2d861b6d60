"""
Rule-based pricing.

``quote`` is pure: it reads only its arguments, never the database or the
clock, so the same selection and rule set always produce the same breakdown.
Each category (court, equipment, coach) is priced independently:

    base -> matching rules sorted by (priority, id) -> fold -> clamp at 0

A rule's fold step is ``total = round(total * multiplier_bps / 10000)`` when
the multiplier is not x1.00, then ``total += add_cents``. All amounts are
integer cents and every rounding is half-up on exact integers.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from app.facility.models.pricing_rules import PricingAppliesTo, DayType
from app.bookings.schemas.pricing import (
    AppliedRule,
    CoachCharge,
    CourtCharge,
    EquipmentCharge,
    EquipmentLine,
    PriceBreakdown,
)
from app.bookings.services.time_grid import (
    duration_minutes,
    is_weekend,
    overlaps_time_window,
    round_half_up,
    time_to_minutes,
)

NEUTRAL_MULTIPLIER_BPS = 10000


@dataclass
class EquipmentSelection:
    equipment_type: Any  # EquipmentType or anything with id/name/unit_price_cents
    quantity: int


@dataclass
class PricingSelection:
    start_at: datetime
    end_at: datetime
    court: Optional[Any] = None
    coach: Optional[Any] = None
    equipment: List[EquipmentSelection] = field(default_factory=list)


def _matches_day_type(rule, start_at: datetime) -> bool:
    if rule.day_type in (None, DayType.ANY):
        return True
    weekend = is_weekend(start_at)
    return weekend if rule.day_type == DayType.WEEKEND else not weekend


def _matches_time_window(rule, start_at: datetime, end_at: datetime) -> bool:
    # Half-specified windows count as no window
    if rule.start_time is None or rule.end_time is None:
        return True
    return overlaps_time_window(
        start_at, end_at, time_to_minutes(rule.start_time), time_to_minutes(rule.end_time)
    )


def matching_rules(
    rules: Iterable, applies_to: PricingAppliesTo, selection: PricingSelection
) -> List:
    """Rules of one category that apply to the selection, in application order."""
    matched = []
    for rule in rules:
        if not rule.is_active or rule.applies_to != applies_to:
            continue
        if not _matches_day_type(rule, selection.start_at):
            continue
        if not _matches_time_window(rule, selection.start_at, selection.end_at):
            continue

        if applies_to == PricingAppliesTo.COURT:
            # Court-less bookings carry no court charge at all
            if selection.court is None:
                continue
            if rule.court_surface is not None and rule.court_surface != selection.court.surface:
                continue
        elif applies_to == PricingAppliesTo.COACH:
            coach_id = selection.coach.id if selection.coach is not None else None
            if rule.coach_id is not None and rule.coach_id != coach_id:
                continue

        matched.append(rule)

    return sorted(matched, key=lambda r: (r.priority, r.id))


def apply_rules(base_cents: int, rules: Sequence) -> Tuple[int, List[AppliedRule]]:
    total = base_cents
    applied = []

    for rule in rules:
        if rule.multiplier_bps != NEUTRAL_MULTIPLIER_BPS:
            total = round_half_up(total * rule.multiplier_bps, NEUTRAL_MULTIPLIER_BPS)
        if rule.add_cents != 0:
            total += rule.add_cents

        applied.append(
            AppliedRule(
                id=rule.id,
                name=rule.name,
                applies_to=rule.applies_to,
                multiplier_bps=rule.multiplier_bps,
                add_cents=rule.add_cents,
            )
        )

    return max(0, total), applied


def hourly_cost(rate_cents_per_hour: int, minutes: int) -> int:
    return round_half_up(rate_cents_per_hour * minutes, 60)


def quote(selection: PricingSelection, rules: Sequence) -> PriceBreakdown:
    minutes = duration_minutes(selection.start_at, selection.end_at)
    rules = list(rules)

    # Court
    court = selection.court
    court_base = hourly_cost(court.base_rate_cents_per_hour, minutes) if court else 0
    court_total, court_applied = apply_rules(
        court_base, matching_rules(rules, PricingAppliesTo.COURT, selection)
    )

    # Equipment
    items = [
        EquipmentLine(
            equipment_type_id=e.equipment_type.id,
            name=e.equipment_type.name,
            unit_price_cents=e.equipment_type.unit_price_cents,
            quantity=e.quantity,
            line_total_cents=e.equipment_type.unit_price_cents * e.quantity,
        )
        for e in selection.equipment
        if e.quantity > 0
    ]
    equipment_subtotal = sum(item.line_total_cents for item in items)
    equipment_total, equipment_applied = apply_rules(
        equipment_subtotal, matching_rules(rules, PricingAppliesTo.EQUIPMENT, selection)
    )

    # Coach
    coach = selection.coach
    coach_base = hourly_cost(coach.hourly_rate_cents, minutes) if coach else 0
    coach_total, coach_applied = apply_rules(
        coach_base, matching_rules(rules, PricingAppliesTo.COACH, selection)
    )

    return PriceBreakdown(
        duration_minutes=minutes,
        court=CourtCharge(
            court_id=court.id if court else None,
            base_rate_cents_per_hour=court.base_rate_cents_per_hour if court else None,
            base_cents=court_base,
            applied_rules=court_applied,
            total_cents=court_total,
        ),
        equipment=EquipmentCharge(
            items=items,
            applied_rules=equipment_applied,
            subtotal_cents=equipment_subtotal,
            total_cents=equipment_total,
        ),
        coach=CoachCharge(
            coach_id=coach.id if coach else None,
            hourly_rate_cents=coach.hourly_rate_cents if coach else None,
            base_cents=coach_base,
            applied_rules=coach_applied,
            total_cents=coach_total,
        ),
        total_cents=court_total + equipment_total + coach_total,
    )
