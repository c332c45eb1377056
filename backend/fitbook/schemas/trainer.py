# backend/fitbook/schemas/trainer.py
"""
Schemas for trainer services and booking settings.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator

from ..models.service import ConfirmationMode
from .base import Money, StandardizedModel, StrictRequestModel


class ServiceCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    duration_minutes: int = Field(..., ge=1)
    price: Money = Field(..., description="Price per session")
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Service name cannot be empty")
        return v


class ServiceResponse(StandardizedModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    trainer_id: str
    name: str
    description: Optional[str] = None
    duration_minutes: int
    price: Money
    is_active: bool
    created_at: Optional[datetime] = None


class ServiceListResponse(StandardizedModel):
    services: List[ServiceResponse]


class TrainerSettingsUpdate(StrictRequestModel):
    confirmation_mode: Optional[ConfirmationMode] = None
    timezone: Optional[str] = Field(None, max_length=64)


class TrainerSettingsResponse(StandardizedModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    trainer_id: str
    confirmation_mode: ConfirmationMode
    timezone: str
