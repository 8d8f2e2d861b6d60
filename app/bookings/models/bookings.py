"""Booking Model - a customer's reservation of a court, a coach and/or equipment"""
from enum import Enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
    JSON,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.facility.models import Court, Coach, EquipmentType
from app.bookings.services.time_grid import now_local


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Booking(Base):
    """
    Bookings are never deleted. Cancelling flips the status and removes the
    reservation rows, which is what frees the resources.
    """

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)

    # Facility-local, half-open [start_at, end_at)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    status = Column(
        SQLEnum(BookingStatus, name="booking_status"),
        default=BookingStatus.CONFIRMED,
        nullable=False,
        index=True,
    )

    # Price snapshot taken at booking time
    price_total_cents = Column(Integer, nullable=False)
    price_breakdown = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=now_local)
    cancelled_at = Column(DateTime, nullable=True)

    # Relationships
    court = relationship(
        "BookingCourt", back_populates="booking", uselist=False, passive_deletes=True
    )
    coach = relationship(
        "BookingCoach", back_populates="booking", uselist=False, passive_deletes=True
    )
    equipment = relationship(
        "BookingEquipment", back_populates="booking", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_bookings_interval"),
        Index("ix_bookings_email_start", "customer_email", "start_at"),
    )

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, email='{self.customer_email}', "
            f"{self.start_at}-{self.end_at}, status={self.status})>"
        )


class BookingCourt(Base):
    """Court held by a CONFIRMED booking"""

    __tablename__ = "booking_courts"

    id = Column(Integer, primary_key=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False)

    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    booking = relationship("Booking", back_populates="court")
    court = relationship(Court)

    __table_args__ = (
        # Same-start double booking is rejected on every backend;
        # general overlap is an exclusion constraint on PostgreSQL (init_db)
        UniqueConstraint("court_id", "start_at", name="uq_booking_courts_court_start"),
        Index("ix_booking_courts_court_range", "court_id", "start_at", "end_at"),
    )

    def __repr__(self):
        return f"<BookingCourt(booking_id={self.booking_id}, court_id={self.court_id})>"


class BookingCoach(Base):
    """Coach held by a CONFIRMED booking"""

    __tablename__ = "booking_coaches"

    id = Column(Integer, primary_key=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    coach_id = Column(Integer, ForeignKey("coaches.id"), nullable=False)

    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    booking = relationship("Booking", back_populates="coach")
    coach = relationship(Coach)

    __table_args__ = (
        UniqueConstraint("coach_id", "start_at", name="uq_booking_coaches_coach_start"),
        Index("ix_booking_coaches_coach_range", "coach_id", "start_at", "end_at"),
    )

    def __repr__(self):
        return f"<BookingCoach(booking_id={self.booking_id}, coach_id={self.coach_id})>"


class BookingEquipment(Base):
    """Quantity of a pooled equipment type held by a CONFIRMED booking"""

    __tablename__ = "booking_equipment"

    id = Column(Integer, primary_key=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    equipment_type_id = Column(Integer, ForeignKey("equipment_types.id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    booking = relationship("Booking", back_populates="equipment")
    equipment_type = relationship(EquipmentType)

    __table_args__ = (
        UniqueConstraint(
            "booking_id", "equipment_type_id", name="uq_booking_equipment_booking_type"
        ),
        CheckConstraint("quantity > 0", name="ck_booking_equipment_quantity"),
        Index(
            "ix_booking_equipment_type_range", "equipment_type_id", "start_at", "end_at"
        ),
    )

    def __repr__(self):
        return (
            f"<BookingEquipment(booking_id={self.booking_id}, "
            f"equipment_type_id={self.equipment_type_id}, quantity={self.quantity})>"
        )
