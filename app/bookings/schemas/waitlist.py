from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict

from app.facility.models.courts import CourtSurface
from app.bookings.models.waitlist import WaitlistStatus


class WaitlistJoinRequest(BaseModel):
    """Схема постановки в лист ожидания"""

    customer_name: str = Field(..., max_length=200)
    customer_email: str = Field(..., max_length=255)
    start_at: datetime
    end_at: datetime
    preferred_surface: Optional[CourtSurface] = Field(
        None, description="Leave empty to accept any surface"
    )
    wants_coach: bool = False


class WaitlistJoinResponse(BaseModel):
    waitlist_entry_id: int
    position: int


class WaitlistEntryResponse(BaseModel):
    id: int
    customer_name: str
    customer_email: str
    start_at: datetime
    end_at: datetime
    preferred_surface: Optional[CourtSurface] = None
    wants_coach: bool
    position: int
    status: WaitlistStatus
    created_at: datetime
    notified_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WaitlistListResponse(BaseModel):
    entries: List[WaitlistEntryResponse]
