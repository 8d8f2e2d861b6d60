from datetime import time
from typing import List
from pydantic import BaseModel, ConfigDict

from app.facility.models.courts import CourtSurface


class FacilityConfigResponse(BaseModel):
    """Часы работы и шаг сетки слотов"""

    open_time: time
    close_time: time
    slot_minutes: int
    timezone: str

    model_config = ConfigDict(from_attributes=True)


class CourtResponse(BaseModel):
    id: int
    name: str
    surface: CourtSurface
    base_rate_cents_per_hour: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class CoachResponse(BaseModel):
    id: int
    name: str
    hourly_rate_cents: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class EquipmentTypeResponse(BaseModel):
    id: int
    name: str
    unit_price_cents: int
    total_quantity: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class FacilityOverviewResponse(BaseModel):
    """Everything a client needs to build a selection form"""

    config: FacilityConfigResponse
    courts: List[CourtResponse]
    equipment_types: List[EquipmentTypeResponse]
    coaches: List[CoachResponse]

    model_config = ConfigDict(from_attributes=True)
