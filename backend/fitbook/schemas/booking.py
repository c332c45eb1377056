# backend/fitbook/schemas/booking.py
"""
Booking schemas for FitBook.

Bookings carry absolute timestamps. Naive timestamps in requests are read
in the trainer's timezone; responses are always UTC.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from ..models.booking import BookingStatus
from .base import StandardizedModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """
    Request a session with a trainer.

    ``end_time`` may be omitted when ``service_id`` is given; the service
    duration then defines the session length. ``title`` defaults to the
    service name.
    """

    trainer_id: str = Field(..., description="Trainer to book")
    start_time: datetime = Field(..., description="Session start")
    end_time: Optional[datetime] = Field(None, description="Session end")
    service_id: Optional[str] = Field(None, description="Trainer service being booked")
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000, description="Note from the client")

    @field_validator("title", "description", "location", "notes")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @model_validator(mode="after")
    def require_end_or_service(self) -> "BookingCreate":
        if self.end_time is None and not self.service_id:
            raise ValueError("end_time is required when no service_id is given")
        return self


class BookingTransition(StrictRequestModel):
    """Body for confirm; carries the version the caller last saw."""

    expected_version: Optional[int] = Field(None, ge=1)


class BookingReject(BookingTransition):
    reason: Optional[str] = Field(None, max_length=500, description="Rejection reason")

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() or None if v else None


class BookingCancel(BookingTransition):
    """Schema for cancelling a booking."""

    reason: Optional[str] = Field(None, max_length=500, description="Cancellation reason")

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() or None if v else None


class BookingResponse(StandardizedModel):
    """Booking as returned to either participant."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str
    client_id: str
    trainer_id: str
    service_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    notes: Optional[str] = None
    status: BookingStatus
    version: int

    cancelled_by_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancellation_date: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Any) -> "BookingResponse":
        return cls.model_validate(booking)


class BookingListResponse(StandardizedModel):
    bookings: List[BookingResponse]
    total: int


BookingRoleFilter = Literal["client", "trainer", "all"]
