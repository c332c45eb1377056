# backend/fitbook/routes/v1/trainers.py
"""
Trainer-facing read routes - API v1

What a client sees while picking a session.

Endpoints:
    GET /trainers/{trainer_id}/availability - Resolved windows for a date
    GET /trainers/{trainer_id}/slots - Bookable slots for a date
    GET /trainers/{trainer_id}/available-dates - Dates with any availability
    GET /trainers/{trainer_id}/services - Active services
    GET /trainers/{trainer_id}/settings - Confirmation mode and timezone
"""

from datetime import date
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from ...api.dependencies import (
    get_availability_resolver,
    get_current_user,
    get_slot_service,
    get_trainer_service,
)
from ...core.constants import ULID_PATH_PATTERN
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.availability import (
    AvailableDatesResponse,
    ResolvedAvailabilityResponse,
    SlotListResponse,
    SlotResponse,
    TimeWindowResponse,
)
from ...schemas.trainer import ServiceListResponse, ServiceResponse, TrainerSettingsResponse
from ...services.availability_resolver import AvailabilityResolver
from ...services.slot_service import SlotService
from ...services.trainer_service import TrainerService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["trainers-v1"])


@router.get("/{trainer_id}/availability", response_model=ResolvedAvailabilityResponse)
def get_trainer_availability(
    trainer_id: str = Path(..., description="Trainer ULID", pattern=ULID_PATH_PATTERN),
    on_date: date = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)"),
    current_user: User = Depends(get_current_user),
    trainer_service: TrainerService = Depends(get_trainer_service),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
) -> ResolvedAvailabilityResponse:
    """Availability windows of the trainer on one date, ordered by start."""
    try:
        trainer_service.get_trainer(trainer_id)
        resolved = resolver.resolve(trainer_id, on_date)
        return ResolvedAvailabilityResponse(
            trainer_id=resolved.trainer_id,
            date=resolved.date,
            windows=[TimeWindowResponse.from_window(w) for w in resolved.windows],
            degraded=resolved.degraded,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{trainer_id}/slots", response_model=SlotListResponse)
def get_trainer_slots(
    trainer_id: str = Path(..., description="Trainer ULID", pattern=ULID_PATH_PATTERN),
    on_date: date = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)"),
    duration_minutes: Optional[int] = Query(
        None, ge=1, description="Slot length; a service_id overrides it"
    ),
    service_id: Optional[str] = Query(None, pattern=ULID_PATH_PATTERN),
    current_user: User = Depends(get_current_user),
    trainer_service: TrainerService = Depends(get_trainer_service),
    slot_service: SlotService = Depends(get_slot_service),
) -> SlotListResponse:
    """Free fixed-length slots; slots already booked or in the past are left out."""
    try:
        trainer_service.get_trainer(trainer_id)
        listing = slot_service.list_available_slots(
            trainer_id,
            on_date,
            duration_minutes=duration_minutes,
            service_id=service_id,
        )
        return SlotListResponse(
            trainer_id=listing.trainer_id,
            date=listing.date,
            duration_minutes=listing.duration_minutes,
            timezone=listing.timezone,
            slots=[SlotResponse.from_slot(slot) for slot in listing.slots],
            degraded=listing.degraded,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{trainer_id}/available-dates", response_model=AvailableDatesResponse)
def get_trainer_available_dates(
    trainer_id: str = Path(..., description="Trainer ULID", pattern=ULID_PATH_PATTERN),
    start: Optional[date] = Query(None, description="First date to consider; defaults to today"),
    days: Optional[int] = Query(None, ge=1, description="Number of days to scan"),
    current_user: User = Depends(get_current_user),
    trainer_service: TrainerService = Depends(get_trainer_service),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
) -> AvailableDatesResponse:
    try:
        trainer_service.get_trainer(trainer_id)
        today = trainer_service.get_settings(trainer_id).today()
        result = resolver.get_available_dates(trainer_id, start or today, days, today=today)
        return AvailableDatesResponse(
            trainer_id=result.trainer_id,
            start=result.start,
            end=result.end,
            dates=result.dates,
            degraded=result.degraded,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{trainer_id}/services", response_model=ServiceListResponse)
def list_trainer_services(
    trainer_id: str = Path(..., description="Trainer ULID", pattern=ULID_PATH_PATTERN),
    current_user: User = Depends(get_current_user),
    trainer_service: TrainerService = Depends(get_trainer_service),
) -> ServiceListResponse:
    try:
        trainer_service.get_trainer(trainer_id)
        services = trainer_service.list_services(trainer_id)
        return ServiceListResponse(
            services=[ServiceResponse.model_validate(service) for service in services]
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{trainer_id}/settings", response_model=TrainerSettingsResponse)
def get_trainer_settings(
    trainer_id: str = Path(..., description="Trainer ULID", pattern=ULID_PATH_PATTERN),
    current_user: User = Depends(get_current_user),
    trainer_service: TrainerService = Depends(get_trainer_service),
) -> TrainerSettingsResponse:
    try:
        trainer_service.get_trainer(trainer_id)
        return TrainerSettingsResponse.model_validate(trainer_service.get_settings(trainer_id))
    except DomainException as e:
        handle_domain_exception(e)
