# backend/fitbook/routes/v1/services.py
"""
Trainer self-management routes - API v1

A trainer's own service catalogue and booking settings.

Endpoints:
    POST /services - Create a service
    DELETE /services/{service_id} - Deactivate a service
    PUT /settings - Update confirmation mode and timezone
"""

import logging

from fastapi import APIRouter, Body, Depends, Path, Response, status

from ...api.dependencies import get_trainer_service, require_trainer
from ...core.constants import ULID_PATH_PATTERN
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.trainer import (
    ServiceCreate,
    ServiceResponse,
    TrainerSettingsResponse,
    TrainerSettingsUpdate,
)
from ...services.trainer_service import TrainerService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["services-v1"])


@router.post("/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate = Body(...),
    current_user: User = Depends(require_trainer),
    trainer_service: TrainerService = Depends(get_trainer_service),
) -> ServiceResponse:
    try:
        service = trainer_service.create_service(
            current_user,
            name=payload.name,
            duration_minutes=payload.duration_minutes,
            price=payload.price,
            description=payload.description,
        )
        return ServiceResponse.model_validate(service)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_service(
    service_id: str = Path(..., description="Service ULID", pattern=ULID_PATH_PATTERN),
    current_user: User = Depends(require_trainer),
    trainer_service: TrainerService = Depends(get_trainer_service),
) -> Response:
    """Services are deactivated rather than deleted; bookings keep referencing them."""
    try:
        trainer_service.deactivate_service(current_user, service_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/settings", response_model=TrainerSettingsResponse)
def update_settings(
    payload: TrainerSettingsUpdate = Body(...),
    current_user: User = Depends(require_trainer),
    trainer_service: TrainerService = Depends(get_trainer_service),
) -> TrainerSettingsResponse:
    try:
        updated = trainer_service.update_settings(
            current_user,
            confirmation_mode=payload.confirmation_mode.value
            if payload.confirmation_mode
            else None,
            timezone=payload.timezone,
        )
        return TrainerSettingsResponse.model_validate(updated)
    except DomainException as e:
        handle_domain_exception(e)
