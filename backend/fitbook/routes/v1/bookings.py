# backend/fitbook/routes/v1/bookings.py
"""
Booking routes - API v1

Mounted under /api/v1/bookings. Handlers only translate between HTTP and
BookingService; participant checks live in the service.

Endpoints:
    GET / - List own bookings (as client, trainer or both)
    POST / - Request a booking
    GET /{booking_id} - Booking details (participants only)
    POST /{booking_id}/confirm - Trainer confirms a pending booking
    POST /{booking_id}/reject - Trainer rejects a pending booking
    POST /{booking_id}/cancel - Either participant cancels
"""

from datetime import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from ...api.dependencies import get_booking_service, get_current_user
from ...core.constants import ULID_PATH_PATTERN
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingListResponse,
    BookingReject,
    BookingResponse,
    BookingRoleFilter,
    BookingTransition,
)
from ...services.booking_service import BookingService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings-v1"])


@router.get("", response_model=BookingListResponse)
def list_bookings(
    role: BookingRoleFilter = Query("all", description="client, trainer or all"),
    status_filter: Optional[str] = Query(None, alias="status"),
    start_from: Optional[datetime] = Query(None),
    end_before: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    try:
        bookings = booking_service.list_bookings(
            current_user,
            role=role,
            status=status_filter,
            start_from=start_from,
            end_before=end_before,
        )
        return BookingListResponse(
            bookings=[BookingResponse.from_booking(booking) for booking in bookings],
            total=len(bookings),
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"description": "Overlaps an existing booking"},
        422: {"description": "Outside the trainer's availability"},
        503: {"description": "Availability could not be read; retry"},
    },
)
def create_booking(
    booking_data: BookingCreate = Body(...),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Request a session.

    The booking starts as pending unless the trainer confirms automatically.
    """
    try:
        booking = booking_service.create_booking(current_user, booking_data)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
)
def get_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_booking(booking_service.get_booking(booking_id, current_user))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
def confirm_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    payload: Optional[BookingTransition] = Body(None),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = booking_service.confirm_booking(
            booking_id,
            current_user,
            expected_version=payload.expected_version if payload else None,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
def reject_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    payload: Optional[BookingReject] = Body(None),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = booking_service.reject_booking(
            booking_id,
            current_user,
            payload.reason if payload else None,
            expected_version=payload.expected_version if payload else None,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
)
def cancel_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    cancel_data: Optional[BookingCancel] = Body(None),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Cancel a booking."""
    try:
        booking = booking_service.cancel_booking(
            booking_id,
            current_user,
            cancel_data.reason if cancel_data else None,
            expected_version=cancel_data.expected_version if cancel_data else None,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)
