# backend/fitbook/models/notification.py
"""
Notification model for FitBook.

In-app notifications delivered to trainers and clients. Booking
notifications reference the booking so they can be retracted when the
booking is cancelled.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Notification(Base):
    """In-app notification for a single user."""

    __tablename__ = "notifications"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id = Column(String(26), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    reference_id = Column(String(26), nullable=True)
    reference_type = Column(String(50), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (Index("idx_notifications_reference", "reference_type", "reference_id"),)

    def __repr__(self) -> str:
        return f"<Notification {self.id} user={self.user_id} type={self.type}>"
