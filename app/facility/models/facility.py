from sqlalchemy import Column, Integer, String, Time, DateTime, CheckConstraint
from sqlalchemy.sql import func
from app.core.database import Base

DEFAULT_FACILITY_ID = 1


class FacilityConfig(Base):
    """Opening hours and slot grid of the facility (single row)"""

    __tablename__ = "facility_config"

    id = Column(Integer, primary_key=True, default=DEFAULT_FACILITY_ID)

    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)
    slot_minutes = Column(Integer, default=60, nullable=False)

    # Informational label; conversions use FACILITY_TIMEZONE
    timezone = Column(String(64), default="local", nullable=False)

    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("slot_minutes > 0", name="ck_facility_config_slot_minutes"),
        CheckConstraint("open_time < close_time", name="ck_facility_config_hours"),
    )

    def __repr__(self):
        return (
            f"<FacilityConfig(open={self.open_time}, close={self.close_time}, "
            f"slot_minutes={self.slot_minutes})>"
        )
