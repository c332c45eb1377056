# backend/fitbook/schemas/availability.py
"""
Availability schemas for FitBook.

Times of day are accepted as ``HH:MM`` or ``HH:MM:SS``. ``day_of_week`` uses
0 for Sunday through 6 for Saturday.
"""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from ..domain.availability import TimeWindow
from ..domain.slots import Slot
from .base import StandardizedModel, StrictRequestModel, parse_time_of_day


class AvailabilityRuleBase(StrictRequestModel):
    start_time: time
    end_time: time
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    is_recurring: bool = True
    specific_date: Optional[date] = None
    is_available: bool = True

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        return parse_time_of_day(v)


class AvailabilityRuleCreate(AvailabilityRuleBase):
    """One rule as submitted by the trainer."""

    @model_validator(mode="after")
    def validate_rule_shape(self) -> "AvailabilityRuleCreate":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        if not self.is_recurring and self.specific_date is None:
            raise ValueError("specific_date is required for one-off rules")
        if self.is_recurring and self.day_of_week is None:
            raise ValueError("day_of_week is required for recurring rules")
        return self


class AvailabilityRuleUpdate(StrictRequestModel):
    """Partial update; omitted fields keep their stored values."""

    start_time: Optional[time] = None
    end_time: Optional[time] = None
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    is_recurring: Optional[bool] = None
    specific_date: Optional[date] = None
    is_available: Optional[bool] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        return parse_time_of_day(v)


class AvailabilityRulesReplace(StrictRequestModel):
    """Full replacement of a trainer's rules."""

    rules: List[AvailabilityRuleCreate] = Field(default_factory=list)


class SkipOccurrenceRequest(StrictRequestModel):
    date: date


class AvailabilityRuleResponse(StandardizedModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    trainer_id: str
    day_of_week: int
    start_time: time
    end_time: time
    is_recurring: bool
    specific_date: Optional[date] = None
    is_available: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("is_recurring", mode="before")
    @classmethod
    def legacy_recurring(cls, v: Optional[bool]) -> bool:
        # Legacy rows stored NULL for recurring rules
        return True if v is None else v


class AvailabilityExceptionResponse(StandardizedModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    trainer_id: str
    exception_date: date
    original_slot_id: str
    day_of_week: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    created_at: Optional[datetime] = None


class TimeWindowResponse(StandardizedModel):
    start_time: time
    end_time: time
    rule_id: str

    @classmethod
    def from_window(cls, window: TimeWindow) -> "TimeWindowResponse":
        return cls(start_time=window.start, end_time=window.end, rule_id=window.rule_id)


class ResolvedAvailabilityResponse(StandardizedModel):
    trainer_id: str
    date: date
    windows: List[TimeWindowResponse]
    degraded: bool = False


class SlotResponse(StandardizedModel):
    start_time: datetime
    end_time: datetime
    rule_id: str

    @classmethod
    def from_slot(cls, slot: Slot) -> "SlotResponse":
        return cls(start_time=slot.start, end_time=slot.end, rule_id=slot.rule_id)


class SlotListResponse(StandardizedModel):
    trainer_id: str
    date: date
    duration_minutes: int
    timezone: str
    slots: List[SlotResponse]
    degraded: bool = False


class AvailableDatesResponse(StandardizedModel):
    trainer_id: str
    start: date
    end: date
    dates: List[date]
    degraded: bool = False
