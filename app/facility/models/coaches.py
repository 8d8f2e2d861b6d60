from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Time,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class Coach(Base):
    __tablename__ = "coaches"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    hourly_rate_cents = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    availability_windows = relationship(
        "CoachAvailabilityWindow",
        back_populates="coach",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Coach(id={self.id}, name='{self.name}')>"


class CoachAvailabilityWindow(Base):
    """
    Weekly template: the coach works ``start_time``..``end_time`` every
    ``day_of_week`` (0 = Sunday ... 6 = Saturday). Not tied to a date.
    """

    __tablename__ = "coach_availability_windows"

    id = Column(Integer, primary_key=True)
    coach_id = Column(
        Integer,
        ForeignKey("coaches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    coach = relationship("Coach", back_populates="availability_windows")

    __table_args__ = (
        CheckConstraint(
            "day_of_week >= 0 AND day_of_week <= 6", name="ck_coach_window_day"
        ),
        CheckConstraint("start_time < end_time", name="ck_coach_window_hours"),
        Index("ix_coach_windows_day_active", "day_of_week", "is_active"),
    )

    def __repr__(self):
        return (
            f"<CoachAvailabilityWindow(coach_id={self.coach_id}, day={self.day_of_week}, "
            f"{self.start_time}-{self.end_time})>"
        )
