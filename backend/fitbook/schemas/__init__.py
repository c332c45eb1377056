# backend/fitbook/schemas/__init__.py
"""
Pydantic schemas for the FitBook API.

Request DTOs forbid unknown fields; response DTOs are built from ORM rows
or resolver results and never expose join shapes.
"""

from .availability import (
    AvailabilityExceptionResponse,
    AvailabilityRuleCreate,
    AvailabilityRuleResponse,
    AvailabilityRulesReplace,
    AvailabilityRuleUpdate,
    AvailableDatesResponse,
    ResolvedAvailabilityResponse,
    SkipOccurrenceRequest,
    SlotListResponse,
    SlotResponse,
    TimeWindowResponse,
)
from .booking import (
    BookingCancel,
    BookingCreate,
    BookingListResponse,
    BookingReject,
    BookingResponse,
    BookingTransition,
)
from .notification import NotificationListResponse, NotificationResponse
from .trainer import (
    ServiceCreate,
    ServiceListResponse,
    ServiceResponse,
    TrainerSettingsResponse,
    TrainerSettingsUpdate,
)

__all__ = [
    "AvailabilityExceptionResponse",
    "AvailabilityRuleCreate",
    "AvailabilityRuleResponse",
    "AvailabilityRulesReplace",
    "AvailabilityRuleUpdate",
    "AvailableDatesResponse",
    "ResolvedAvailabilityResponse",
    "SkipOccurrenceRequest",
    "SlotListResponse",
    "SlotResponse",
    "TimeWindowResponse",
    "BookingCancel",
    "BookingCreate",
    "BookingListResponse",
    "BookingReject",
    "BookingResponse",
    "BookingTransition",
    "NotificationListResponse",
    "NotificationResponse",
    "ServiceCreate",
    "ServiceListResponse",
    "ServiceResponse",
    "TrainerSettingsResponse",
    "TrainerSettingsUpdate",
]
