from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from app.core.database import Base
from app.bookings.services.time_grid import now_local


class Notification(Base):
    """Append-only customer inbox, read by polling"""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)  # e.g. WAITLIST_AVAILABLE
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=now_local)

    __table_args__ = (
        Index("ix_notifications_email_created", "email", "created_at"),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, email='{self.email}', type={self.type})>"
