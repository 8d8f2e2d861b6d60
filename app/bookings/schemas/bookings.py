from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from app.facility.models.courts import CourtSurface
from app.bookings.models.bookings import BookingStatus
from app.bookings.schemas.pricing import EquipmentRequestItem, PriceBreakdown


class BookingCreateRequest(BaseModel):
    """Схема для создания бронирования"""

    customer_name: str = Field(..., max_length=200)
    customer_email: str = Field(..., max_length=255)
    start_at: datetime = Field(..., description="Start of the booking, ISO 8601")
    end_at: datetime = Field(..., description="End of the booking (exclusive), ISO 8601")
    court_id: Optional[int] = Field(None, gt=0)
    coach_id: Optional[int] = Field(None, gt=0)
    equipment: List[EquipmentRequestItem] = Field(default_factory=list)


class BookingCreateResponse(BaseModel):
    booking_id: int
    price_total_cents: int
    price_breakdown: PriceBreakdown


class BookingCancelResponse(BaseModel):
    ok: bool = True


# История бронирований
class BookedCourt(BaseModel):
    court_id: int
    name: str
    surface: CourtSurface


class BookedCoach(BaseModel):
    coach_id: int
    name: str


class BookedEquipment(BaseModel):
    equipment_type_id: int
    name: str
    quantity: int


class BookingResponse(BaseModel):
    id: int
    customer_name: str
    customer_email: str
    start_at: datetime
    end_at: datetime
    status: BookingStatus
    price_total_cents: int
    price_breakdown: Dict[str, Any]
    created_at: datetime
    cancelled_at: Optional[datetime] = None

    # Empty once cancelled: reservation rows are removed on cancel
    court: Optional[BookedCourt] = None
    coach: Optional[BookedCoach] = None
    equipment: List[BookedEquipment] = []

    model_config = ConfigDict(from_attributes=True)


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]


def booking_to_response(booking) -> BookingResponse:
    """Flatten a Booking with its loaded reservation rows"""
    court = None
    if booking.court is not None:
        court = BookedCourt(
            court_id=booking.court.court_id,
            name=booking.court.court.name,
            surface=booking.court.court.surface,
        )

    coach = None
    if booking.coach is not None:
        coach = BookedCoach(coach_id=booking.coach.coach_id, name=booking.coach.coach.name)

    equipment = [
        BookedEquipment(
            equipment_type_id=row.equipment_type_id,
            name=row.equipment_type.name,
            quantity=row.quantity,
        )
        for row in sorted(booking.equipment, key=lambda r: r.equipment_type_id)
    ]

    return BookingResponse(
        id=booking.id,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        start_at=booking.start_at,
        end_at=booking.end_at,
        status=booking.status,
        price_total_cents=booking.price_total_cents,
        price_breakdown=booking.price_breakdown or {},
        created_at=booking.created_at,
        cancelled_at=booking.cancelled_at,
        court=court,
        coach=coach,
        equipment=equipment,
    )
