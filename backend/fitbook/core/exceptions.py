# backend/fitbook/core/exceptions.py
"""
Domain exceptions for FitBook.

Services raise these; routes turn them into HTTP responses through
``to_http_exception``. Each class fixes its status code, and ``code`` is
the stable machine-readable identifier clients branch on.

Repository exceptions at the bottom never cross the service boundary:
``BaseService.transaction`` translates them.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

# Renamed to UNPROCESSABLE_CONTENT in newer Starlette releases
HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)

TRANSIENT_RETRY_AFTER_SECONDS = 2


class DomainException(Exception):
    """A failure the caller can act on, carrying its HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An error occurred processing your request"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code or type(self).__name__
        self.details: Dict[str, Any] = dict(details or {})
        super().__init__(self.message)

    def _detail(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}

    def _headers(self) -> Optional[Dict[str, str]]:
        return None

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code, detail=self._detail(), headers=self._headers()
        )


class ValidationException(DomainException):
    """Input that is well-formed but violates a domain constraint (bad range, bad date)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictException(DomainException):
    """The write collides with state another request created."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """The caller is authenticated but not a participant or owner."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = "FORBIDDEN",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)


class ServiceException(DomainException):
    """Unexpected failure inside a service, reported as 500."""


class TransientStoreException(ServiceException):
    """
    The store timed out or the connection dropped.

    Retryable, so it is reported as 503 with Retry-After and never confused
    with a validation failure.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "The store is temporarily unavailable. Please retry."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code="STORE_UNAVAILABLE", details=details)

    def _headers(self) -> Optional[Dict[str, str]]:
        return {"Retry-After": str(TRANSIENT_RETRY_AFTER_SECONDS)}


class OutsideAvailabilityException(BusinessRuleException):
    """The requested window is not inside any resolved availability window."""

    default_message = "The requested time is outside the trainer's availability"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="OUTSIDE_AVAILABILITY", details=details)


class OverlapsExistingBookingException(ConflictException):
    """The requested window overlaps an active booking of the same trainer."""

    default_message = "The requested time overlaps an existing booking"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="BOOKING_OVERLAP", details=details)


class InvalidStateTransitionException(BusinessRuleException):
    """Raised when a booking status change is not allowed from its current state."""

    def __init__(self, booking_id: str, current_status: str, target_status: str):
        super().__init__(
            message=f"Cannot change booking from {current_status} to {target_status}",
            code="INVALID_STATE_TRANSITION",
            details={
                "booking_id": booking_id,
                "current_status": current_status,
                "target_status": target_status,
            },
        )


class ConcurrentModificationException(ConflictException):
    """Raised when the booking changed between read and write; the caller must refetch."""

    def __init__(self, booking_id: str, current_version: Optional[int] = None):
        details: Dict[str, Any] = {"booking_id": booking_id}
        if current_version is not None:
            details["current_version"] = current_version
        super().__init__(
            message="The booking was modified by someone else. Refresh and try again.",
            code="CONCURRENT_MODIFICATION",
            details=details,
        )


class RepositoryException(Exception):
    """A data-access call failed; raised by repositories only."""


class StoreUnavailableException(RepositoryException):
    """Raised when a backing table is missing; callers fall back to a secondary store."""


class TransientRepositoryException(RepositoryException):
    """Raised by repositories on timeouts and dropped connections."""
