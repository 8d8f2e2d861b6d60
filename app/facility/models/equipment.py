from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func
from app.core.database import Base


class EquipmentType(Base):
    """Pooled rentable equipment: only the owned quantity is tracked, not units"""

    __tablename__ = "equipment_types"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    unit_price_cents = Column(Integer, nullable=False)
    total_quantity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("total_quantity >= 0", name="ck_equipment_total_quantity"),
    )

    def __repr__(self):
        return f"<EquipmentType(id={self.id}, name='{self.name}', total={self.total_quantity})>"
