# backend/fitbook/models/booking.py
"""
Booking model for FitBook.

A booking is a client's reservation of an absolute time interval with a
trainer. Bookings store the interval directly rather than referencing an
availability rule, so later availability edits never rewrite history.

Status lifecycle:
    pending -> confirmed | rejected | cancelled
    confirmed -> cancelled
    rejected, cancelled are terminal
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


ACTIVE_STATUSES: FrozenSet[str] = frozenset(
    {BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value}
)

# target status -> statuses it may be reached from
ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    BookingStatus.CONFIRMED.value: frozenset({BookingStatus.PENDING.value}),
    BookingStatus.REJECTED.value: frozenset({BookingStatus.PENDING.value}),
    BookingStatus.CANCELLED.value: frozenset(
        {BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value}
    ),
}


def can_transition(current: str, target: str) -> bool:
    """Whether ``current -> target`` is a legal lifecycle move."""
    return current in ALLOWED_TRANSITIONS.get(target, frozenset())


class Booking(Base):
    """
    Reservation of ``[start_time, end_time)`` with a trainer.

    ``version`` is bumped on every status write and backs optimistic
    concurrency for callers that hold a possibly stale copy.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    client_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    trainer_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    service_id = Column(String(26), ForeignKey("services.id"), nullable=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    location = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    version = Column(Integer, nullable=False, default=1)

    # Cancellation tracking
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancellation_date = Column(UTCDateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    client = relationship("User", foreign_keys=[client_id])
    trainer = relationship("User", foreign_keys=[trainer_id])
    service = relationship("Service")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'rejected', 'cancelled')",
            name="ck_bookings_status",
        ),
        CheckConstraint("start_time < end_time", name="check_time_order"),
        CheckConstraint("client_id <> trainer_id", name="check_not_self_booking"),
        Index("idx_bookings_trainer_start", "trainer_id", "start_time"),
        Index("idx_bookings_client_start", "client_id", "start_time"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Booking {self.id}: client={self.client_id}, trainer={self.trainer_id}, "
            f"time={self.start_time}-{self.end_time}, status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        """Pending and confirmed bookings hold their interval."""
        return self.status in ACTIVE_STATUSES

    @property
    def is_cancellable(self) -> bool:
        """Check if booking can be cancelled."""
        return can_transition(self.status, BookingStatus.CANCELLED.value)

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.client_id, self.trainer_id)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open interval overlap; touching endpoints do not overlap."""
        return start < self.end_time and end > self.start_time

    def has_ended(self, now: Optional[datetime] = None) -> bool:
        return self.end_time <= (now or datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "client_id": self.client_id,
            "trainer_id": self.trainer_id,
            "service_id": self.service_id,
            "title": self.title,
            "description": self.description,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "location": self.location,
            "notes": self.notes,
            "status": self.status,
            "version": self.version,
            "cancelled_by_id": self.cancelled_by_id,
            "cancellation_reason": self.cancellation_reason,
            "cancellation_date": (
                self.cancellation_date.isoformat() if self.cancellation_date else None
            ),
        }
