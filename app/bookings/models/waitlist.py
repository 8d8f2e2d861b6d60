"""Waitlist Model - unmet demand queued per (interval, surface, coach) signature"""
from enum import Enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    Index,
    Enum as SQLEnum,
)
from app.core.database import Base
from app.facility.models.courts import CourtSurface
from app.bookings.services.time_grid import now_local


class WaitlistStatus(str, Enum):
    QUEUED = "QUEUED"
    NOTIFIED = "NOTIFIED"


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)

    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)

    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    # NULL means any surface
    preferred_surface = Column(SQLEnum(CourtSurface, name="court_surface"), nullable=True)
    wants_coach = Column(Boolean, default=False, nullable=False)

    # "<start>|<end>|<surface or ANY>|<COACH or NOCOACH>"
    queue_key = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False)

    status = Column(
        SQLEnum(WaitlistStatus, name="waitlist_status"),
        default=WaitlistStatus.QUEUED,
        nullable=False,
    )

    created_at = Column(DateTime, nullable=False, default=now_local)
    notified_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_waitlist_queue_status", "queue_key", "status"),
        Index("ix_waitlist_interval_status", "start_at", "end_at", "status"),
    )

    def __repr__(self):
        return (
            f"<WaitlistEntry(id={self.id}, queue_key='{self.queue_key}', "
            f"position={self.position}, status={self.status})>"
        )
