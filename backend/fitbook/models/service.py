# backend/fitbook/models/service.py
"""
Trainer service catalogue and per-trainer booking settings.

Classes:
    Service: A bookable offering (name, duration, price)
    ConfirmationMode: How new bookings are confirmed
    TrainerSettings: Per-trainer booking preferences
"""

from enum import Enum
import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class Service(Base):
    """A trainer's bookable offering; its duration defines the slot length."""

    __tablename__ = "services"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    trainer_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Service {self.name} ({self.duration_minutes}m)>"


class ConfirmationMode(str, Enum):
    """Manual: trainer confirms each booking. Auto: bookings confirm on creation."""

    MANUAL = "manual"
    AUTO = "auto"


class TrainerSettings(Base):
    """Per-trainer booking preferences. Missing rows mean defaults."""

    __tablename__ = "trainer_settings"

    trainer_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    confirmation_mode = Column(
        String(10), nullable=False, default=ConfirmationMode.MANUAL.value
    )
    timezone = Column(String(64), nullable=False, default="UTC")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "confirmation_mode IN ('manual', 'auto')", name="ck_trainer_settings_confirmation"
        ),
    )

    @property
    def auto_confirm(self) -> bool:
        return self.confirmation_mode == ConfirmationMode.AUTO.value
