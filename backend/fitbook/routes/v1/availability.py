# backend/fitbook/routes/v1/availability.py
"""
Availability management routes - API v1

A trainer's own rules and exceptions. All endpoints require a trainer
account.

Endpoints:
    GET /availability/rules - List own rules
    PUT /availability/rules - Replace all rules
    POST /availability/rules - Add one rule
    PATCH /availability/rules/{rule_id} - Update one rule
    DELETE /availability/rules/{rule_id} - Delete one rule
    POST /availability/rules/{rule_id}/skip - Skip one occurrence of a recurring rule
    GET /availability/exceptions - List own exceptions
"""

import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Path, Response, status

from ...api.dependencies import get_availability_service, get_exception_manager, require_trainer
from ...core.constants import ULID_PATH_PATTERN
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.availability import (
    AvailabilityExceptionResponse,
    AvailabilityRuleCreate,
    AvailabilityRuleResponse,
    AvailabilityRulesReplace,
    AvailabilityRuleUpdate,
    SkipOccurrenceRequest,
)
from ...services.availability_service import AvailabilityService, RuleInput
from ...services.exception_manager import ExceptionManager
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


def _to_rule_input(payload: AvailabilityRuleCreate) -> RuleInput:
    return RuleInput(
        start_time=payload.start_time,
        end_time=payload.end_time,
        day_of_week=payload.day_of_week,
        is_recurring=payload.is_recurring,
        specific_date=payload.specific_date,
        is_available=payload.is_available,
    )


@router.get("/rules", response_model=List[AvailabilityRuleResponse])
def list_rules(
    current_user: User = Depends(require_trainer),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilityRuleResponse]:
    try:
        rules = availability_service.list_rules(current_user)
        return [AvailabilityRuleResponse.model_validate(rule) for rule in rules]
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/rules", response_model=List[AvailabilityRuleResponse])
def replace_rules(
    payload: AvailabilityRulesReplace = Body(...),
    current_user: User = Depends(require_trainer),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilityRuleResponse]:
    """Replace every rule of the trainer. Last writer wins."""
    try:
        rules = availability_service.replace_rules(
            current_user, [_to_rule_input(rule) for rule in payload.rules]
        )
        return [AvailabilityRuleResponse.model_validate(rule) for rule in rules]
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/rules", response_model=AvailabilityRuleResponse, status_code=status.HTTP_201_CREATED
)
def add_rule(
    payload: AvailabilityRuleCreate = Body(...),
    current_user: User = Depends(require_trainer),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityRuleResponse:
    try:
        rule = availability_service.add_rule(current_user, _to_rule_input(payload))
        return AvailabilityRuleResponse.model_validate(rule)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/rules/{rule_id}", response_model=AvailabilityRuleResponse)
def update_rule(
    rule_id: str = Path(..., description="Rule ULID", pattern=ULID_PATH_PATTERN),
    payload: AvailabilityRuleUpdate = Body(...),
    current_user: User = Depends(require_trainer),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityRuleResponse:
    """Update fields of one rule; omitted fields keep their values."""
    try:
        rule = availability_service.update_rule(
            current_user, rule_id, **payload.model_dump(exclude_unset=True, exclude_none=True)
        )
        return AvailabilityRuleResponse.model_validate(rule)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(
    rule_id: str = Path(..., description="Rule ULID", pattern=ULID_PATH_PATTERN),
    current_user: User = Depends(require_trainer),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    try:
        availability_service.delete_rule(current_user, rule_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/rules/{rule_id}/skip",
    response_model=AvailabilityExceptionResponse,
    status_code=status.HTTP_201_CREATED,
)
def skip_occurrence(
    rule_id: str = Path(..., description="Rule ULID", pattern=ULID_PATH_PATTERN),
    payload: SkipOccurrenceRequest = Body(...),
    current_user: User = Depends(require_trainer),
    exception_manager: ExceptionManager = Depends(get_exception_manager),
) -> AvailabilityExceptionResponse:
    """Remove only this occurrence of a recurring rule."""
    try:
        record = exception_manager.delete_occurrence(current_user, rule_id, payload.date)
        return AvailabilityExceptionResponse.model_validate(record)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/exceptions", response_model=List[AvailabilityExceptionResponse])
def list_exceptions(
    current_user: User = Depends(require_trainer),
    exception_manager: ExceptionManager = Depends(get_exception_manager),
) -> List[AvailabilityExceptionResponse]:
    try:
        records = exception_manager.list_exceptions(current_user.id)
        return [AvailabilityExceptionResponse.model_validate(record) for record in records]
    except DomainException as e:
        handle_domain_exception(e)
