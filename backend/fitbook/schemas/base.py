# backend/fitbook/schemas/base.py
"""
Shared schema bases and field types.

Request bodies reject unknown fields so a typo such as ``stauts`` fails
loudly instead of being ignored. Responses are built from ORM rows.
"""

from datetime import time
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer


class StandardizedModel(BaseModel):
    """Base for response models."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)


class StrictRequestModel(BaseModel):
    """Base for request bodies: unknown fields are a 422."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


def _to_decimal(value: Any) -> Any:
    # Floats go through str so 35.1 stays 35.1 rather than its binary expansion
    if isinstance(value, float):
        return Decimal(str(value))
    return value


# Prices are exact decimals internally and plain JSON numbers on the wire
Money = Annotated[
    Decimal,
    BeforeValidator(_to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
]


def parse_time_of_day(value: object) -> object:
    """Accept ``HH:MM`` or ``HH:MM:SS`` strings; pass other values through."""
    if isinstance(value, str):
        try:
            parts = [int(part) for part in value.strip().split(":")]
            if len(parts) not in (2, 3):
                raise ValueError(value)
            return time(*parts)
        except ValueError:
            raise ValueError(f"Invalid time format: {value}. Expected HH:MM or HH:MM:SS.")
    return value
