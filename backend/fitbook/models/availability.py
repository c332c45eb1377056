# backend/fitbook/models/availability.py
"""
Availability models for FitBook.

This module defines the database models for trainer availability:
weekly recurring rules, one-off dated rules, and exceptions that
suppress a single occurrence of a rule.

Classes:
    AvailabilityRule: A recurring weekly or one-off time window
    AvailabilityException: "rule X does not apply on date D"
"""

import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
)
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)

AVAILABILITY_EXCEPTIONS_TABLE = "availability_exceptions"


class AvailabilityRule(Base):
    """
    A time window during which a trainer accepts bookings.

    Recurring rules repeat weekly on ``day_of_week`` (0=Sunday..6=Saturday).
    One-off rules apply only on ``specific_date``. ``is_recurring`` is
    nullable for legacy rows, which are treated as recurring.
    """

    __tablename__ = "availability_rules"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    trainer_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_recurring = Column(Boolean, nullable=True, default=True)
    specific_date = Column(Date, nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_rules_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_rules_time_order"),
        Index("idx_availability_rules_trainer", "trainer_id"),
    )

    @property
    def recurring(self) -> bool:
        """Legacy rows without the flag are recurring."""
        return self.is_recurring is None or bool(self.is_recurring)

    def __repr__(self) -> str:
        when = f"day={self.day_of_week}" if self.recurring else f"date={self.specific_date}"
        return f"<AvailabilityRule {self.id} {when} {self.start_time}-{self.end_time}>"


class AvailabilityException(Base):
    """
    Marker suppressing one occurrence of a rule.

    ``day_of_week``/``start_time``/``end_time`` snapshot the suppressed rule
    for display; matching uses only ``exception_date`` and ``original_slot_id``.
    Rows are never mutated or deleted.
    """

    __tablename__ = AVAILABILITY_EXCEPTIONS_TABLE

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    trainer_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    exception_date = Column(Date, nullable=False)
    original_slot_id = Column(String(26), nullable=False)
    day_of_week = Column(Integer, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_availability_exceptions_trainer_date", "trainer_id", "exception_date"),
    )

    def __repr__(self) -> str:
        return f"<AvailabilityException rule={self.original_slot_id} date={self.exception_date}>"
