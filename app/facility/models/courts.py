from enum import Enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from app.core.database import Base


class CourtSurface(str, Enum):
    INDOOR = "INDOOR"
    OUTDOOR = "OUTDOOR"


class Court(Base):
    __tablename__ = "courts"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    surface = Column(SQLEnum(CourtSurface, name="court_surface"), nullable=False)

    base_rate_cents_per_hour = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Court(id={self.id}, name='{self.name}', surface={self.surface})>"
