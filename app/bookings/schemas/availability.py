from datetime import date, datetime
from typing import List
from pydantic import BaseModel, ConfigDict

from app.facility.schemas.config import (
    CoachResponse,
    CourtResponse,
    EquipmentTypeResponse,
)


class EquipmentRemaining(BaseModel):
    equipment_type: EquipmentTypeResponse
    reserved: int
    remaining: int


class SlotAvailability(BaseModel):
    """Free resources for one slot of the day grid"""

    start_at: datetime
    end_at: datetime
    available_courts: List[CourtResponse]
    available_coaches: List[CoachResponse]
    equipment_remaining: List[EquipmentRemaining]

    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    day: date
    slots: List[SlotAvailability]
