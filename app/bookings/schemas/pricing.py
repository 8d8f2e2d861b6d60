from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict

from app.facility.models.pricing_rules import PricingAppliesTo


# Запросы
class EquipmentRequestItem(BaseModel):
    """Requested quantity of one equipment type"""

    equipment_type_id: int = Field(..., gt=0, description="Equipment type ID")
    quantity: int = Field(..., description="Requested units; values below 1 are ignored")


class PriceQuoteRequest(BaseModel):
    """Схема запроса расчета цены"""

    start_at: datetime = Field(..., description="Start of the booking, ISO 8601")
    end_at: datetime = Field(..., description="End of the booking (exclusive), ISO 8601")
    court_id: Optional[int] = Field(None, gt=0, description="Court ID")
    coach_id: Optional[int] = Field(None, gt=0, description="Coach ID")
    equipment: List[EquipmentRequestItem] = Field(default_factory=list)


# Разбивка цены
class AppliedRule(BaseModel):
    id: int
    name: str
    applies_to: PricingAppliesTo
    multiplier_bps: int
    add_cents: int


class CourtCharge(BaseModel):
    court_id: Optional[int] = None
    base_rate_cents_per_hour: Optional[int] = None
    base_cents: int = 0
    applied_rules: List[AppliedRule] = []
    total_cents: int = 0


class EquipmentLine(BaseModel):
    equipment_type_id: int
    name: str
    unit_price_cents: int
    quantity: int
    line_total_cents: int


class EquipmentCharge(BaseModel):
    items: List[EquipmentLine] = []
    applied_rules: List[AppliedRule] = []
    subtotal_cents: int = 0
    total_cents: int = 0


class CoachCharge(BaseModel):
    coach_id: Optional[int] = None
    hourly_rate_cents: Optional[int] = None
    base_cents: int = 0
    applied_rules: List[AppliedRule] = []
    total_cents: int = 0


class PriceBreakdown(BaseModel):
    """
    Itemized price. Stored verbatim on the booking as the price snapshot,
    so the field layout is part of the persisted history.
    """

    duration_minutes: int
    court: CourtCharge
    equipment: EquipmentCharge
    coach: CoachCharge
    total_cents: int

    model_config = ConfigDict(from_attributes=True)


class PriceQuoteResponse(BaseModel):
    price_breakdown: PriceBreakdown
