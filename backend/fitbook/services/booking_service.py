# backend/fitbook/services/booking_service.py
"""
Booking Service for FitBook

Handles the booking lifecycle:
- Creation, validated against resolved availability and live bookings
- Trainer confirmation and rejection
- Cancellation by either participant
- Participant-scoped reads

Status changes are compare-and-set writes on the current status (and on
the version when the caller supplies one); a lost race is reported as a
conflict and never overwrites the winner.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional

import pytz
from sqlalchemy.orm import Session

from ..core.constants import (
    NOTIFICATION_BOOKING_CANCELLED,
    NOTIFICATION_BOOKING_CONFIRMED,
    NOTIFICATION_BOOKING_REJECTED,
    NOTIFICATION_BOOKING_REQUESTED,
)
from ..core.exceptions import (
    BusinessRuleException,
    ConcurrentModificationException,
    ForbiddenException,
    InvalidStateTransitionException,
    NotFoundException,
    OutsideAvailabilityException,
    TransientStoreException,
    ValidationException,
)
from ..domain.availability import fits_in_windows
from ..models.booking import ALLOWED_TRANSITIONS, Booking, BookingStatus, can_transition
from ..models.service import Service
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingCreate
from .availability_resolver import AvailabilityResolver
from .base import BaseService
from .notification_service import NotificationService
from .trainer_service import TrainerService

logger = logging.getLogger(__name__)


def _to_trainer_local(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Naive values are wall-clock times in the trainer's zone."""
    if value.tzinfo is None:
        return tz.localize(value)
    return value.astimezone(tz)


def _format_local(value: datetime, tz: pytz.BaseTzInfo) -> str:
    return value.astimezone(tz).strftime("%Y-%m-%d %H:%M")


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Collaborators are injected so routes and tests can share one session
    across the resolver, trainer lookups and notifications.
    """

    def __init__(
        self,
        db: Session,
        resolver: AvailabilityResolver,
        trainer_service: TrainerService,
        notification_service: NotificationService,
    ):
        super().__init__(db)
        self.resolver = resolver
        self.trainer_service = trainer_service
        self.notification_service = notification_service
        self.repository = RepositoryFactory.create_booking_repository(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _get_booking_or_404(self, booking_id: str) -> Booking:
        booking = self.repository.get_fresh(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str, user: User) -> Booking:
        """A booking is visible to its client and its trainer only."""
        booking = self._get_booking_or_404(booking_id)
        if not booking.is_participant(user.id):
            # Same answer as a missing booking so ids cannot be enumerated
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self,
        user: User,
        *,
        role: str = "all",
        status: Optional[str] = None,
        start_from: Optional[datetime] = None,
        end_before: Optional[datetime] = None,
    ) -> List[Booking]:
        """
        Bookings the user takes part in, ordered by start time.

        Args:
            user: The requesting user
            role: "client", "trainer" or "all"
            status: Optional status filter
            start_from: Only bookings ending after this instant
            end_before: Only bookings starting before this instant
        """
        if status is not None and status not in {s.value for s in BookingStatus}:
            raise ValidationException(f"Unknown booking status: {status}")

        filters: Dict[str, Any] = {
            "statuses": [status] if status else None,
            "start_from": start_from,
            "end_before": end_before,
        }
        if role == "client":
            return self.repository.list_bookings(client_id=user.id, **filters)
        if role == "trainer":
            return self.repository.list_bookings(trainer_id=user.id, **filters)
        if role == "all":
            return self.repository.list_bookings(participant_id=user.id, **filters)
        raise ValidationException(f"Unknown role filter: {role}")

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _validate_booking_prerequisites(
        self, client: User, data: BookingCreate
    ) -> tuple:
        if not client.is_active:
            raise ForbiddenException("Inactive accounts cannot book sessions")
        if not client.is_client:
            raise ForbiddenException("Only clients can book sessions")
        if client.id == data.trainer_id:
            raise ValidationException("You cannot book a session with yourself")

        trainer = self.trainer_service.get_trainer(data.trainer_id)
        service: Optional[Service] = None
        if data.service_id:
            service = self.trainer_service.get_service(trainer.id, data.service_id)
        return trainer, service

    def _resolve_booking_window(
        self,
        data: BookingCreate,
        service: Optional[Service],
        tz: pytz.BaseTzInfo,
        now: datetime,
    ) -> tuple:
        """Return the requested window as trainer-local aware datetimes."""
        start_local = _to_trainer_local(data.start_time, tz)
        if data.end_time is not None:
            end_local = _to_trainer_local(data.end_time, tz)
        else:
            assert service is not None
            end_local = tz.normalize(start_local + timedelta(minutes=service.duration_minutes))

        if start_local >= end_local:
            raise ValidationException(
                "Start time must be before end time",
                code="INVALID_TIME_RANGE",
                details={
                    "start_time": start_local.isoformat(),
                    "end_time": end_local.isoformat(),
                },
            )
        if start_local < now:
            raise ValidationException(
                "Cannot book a session in the past",
                code="BOOKING_IN_PAST",
                details={"start_time": start_local.isoformat()},
            )
        if start_local.date() != end_local.date():
            raise ValidationException(
                "A session must start and end on the same day",
                code="SPANS_MULTIPLE_DAYS",
                details={
                    "start_time": start_local.isoformat(),
                    "end_time": end_local.isoformat(),
                },
            )
        return start_local, end_local

    def _check_availability(
        self, trainer_id: str, start_local: datetime, end_local: datetime
    ) -> None:
        resolved = self.resolver.resolve(trainer_id, start_local.date())
        if resolved.degraded:
            # Refusing is safer than booking against availability we could not read
            raise TransientStoreException(
                details={"trainer_id": trainer_id, "date": start_local.date().isoformat()}
            )
        if not fits_in_windows(resolved.windows, start_local.time(), end_local.time()):
            raise OutsideAvailabilityException(
                details={
                    "trainer_id": trainer_id,
                    "date": start_local.date().isoformat(),
                    "start_time": start_local.time().isoformat(),
                    "end_time": end_local.time().isoformat(),
                }
            )

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self, client: User, data: BookingCreate, *, now: Optional[datetime] = None
    ) -> Booking:
        """
        Create a pending booking; confirm it right away for auto-confirm trainers.

        Raises:
            ForbiddenException: If the actor may not book
            NotFoundException: If the trainer or service does not exist
            ValidationException: If the window is malformed or in the past
            OutsideAvailabilityException: If no availability window holds the booking
            OverlapsExistingBookingException: If the interval is already taken
            TransientStoreException: If availability could not be read
        """
        now = now or datetime.now(timezone.utc)
        self.log_operation(
            "create_booking",
            client_id=client.id,
            trainer_id=data.trainer_id,
            start_time=data.start_time.isoformat(),
        )

        # 1. Actor, trainer and service
        trainer, service = self._validate_booking_prerequisites(client, data)
        title = data.title or (service.name if service else None)
        if not title:
            raise ValidationException("A title is required", code="MISSING_TITLE")

        # 2. Window shape in the trainer's timezone
        trainer_settings = self.trainer_service.get_settings(trainer.id)
        start_local, end_local = self._resolve_booking_window(
            data, service, trainer_settings.tz, now
        )

        # 3. Availability
        self._check_availability(trainer.id, start_local, end_local)

        # 4. Overlap check and insert under the trainer lock
        with self.transaction():
            booking = self.repository.insert_booking_checked(
                client_id=client.id,
                trainer_id=trainer.id,
                service_id=service.id if service else None,
                title=title,
                description=data.description,
                start_time=start_local.astimezone(timezone.utc),
                end_time=end_local.astimezone(timezone.utc),
                location=data.location,
                notes=data.notes,
                status=BookingStatus.PENDING.value,
                version=1,
            )

        self.notification_service.notify(
            trainer.id,
            NOTIFICATION_BOOKING_REQUESTED,
            f"New booking request from {client.full_name}: {title} on "
            f"{_format_local(booking.start_time, trainer_settings.tz)}",
            reference_id=booking.id,
            sender_id=client.id,
        )

        if trainer_settings.auto_confirm:
            booking = self._apply_transition(
                booking.id, BookingStatus.CONFIRMED.value, expected_version=booking.version
            )
            self.notification_service.notify(
                client.id,
                NOTIFICATION_BOOKING_CONFIRMED,
                f"Your booking '{title}' was confirmed automatically",
                reference_id=booking.id,
                sender_id=trainer.id,
            )

        return booking

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _apply_transition(
        self,
        booking_id: str,
        target: str,
        *,
        expected_version: Optional[int] = None,
        **extra: Any,
    ) -> Booking:
        """
        Compare-and-set the booking status and return the fresh row.

        When the conditional update matches nothing, the current row decides
        whether the move became illegal or another writer got there first.
        """
        with self.transaction():
            moved = self.repository.transition_status(
                booking_id,
                from_statuses=ALLOWED_TRANSITIONS[target],
                to_status=target,
                expected_version=expected_version,
                **extra,
            )
            if not moved:
                current = self._get_booking_or_404(booking_id)
                if not can_transition(current.status, target):
                    raise InvalidStateTransitionException(booking_id, current.status, target)
                raise ConcurrentModificationException(booking_id, current.version)

        prometheus_metrics.record_booking_transition(target)
        return self._get_booking_or_404(booking_id)

    def _require_transition(self, booking: Booking, target: str) -> None:
        if not can_transition(booking.status, target):
            raise InvalidStateTransitionException(booking.id, booking.status, target)

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(
        self,
        booking_id: str,
        trainer: User,
        *,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """Trainer accepts a pending booking that has not started yet."""
        now = now or datetime.now(timezone.utc)
        booking = self._get_booking_or_404(booking_id)
        if booking.trainer_id != trainer.id:
            raise ForbiddenException("Only the trainer can confirm this booking")
        self._require_transition(booking, BookingStatus.CONFIRMED.value)
        if booking.start_time <= now:
            raise BusinessRuleException(
                "Cannot confirm a session that has already started",
                code="SESSION_STARTED",
                details={"booking_id": booking_id},
            )

        booking = self._apply_transition(
            booking_id, BookingStatus.CONFIRMED.value, expected_version=expected_version
        )
        self.log_operation("confirm_booking", booking_id=booking_id, trainer_id=trainer.id)

        self.notification_service.notify(
            booking.client_id,
            NOTIFICATION_BOOKING_CONFIRMED,
            f"Your booking '{booking.title}' was confirmed",
            reference_id=booking.id,
            sender_id=trainer.id,
        )
        return booking

    @BaseService.measure_operation("reject_booking")
    def reject_booking(
        self,
        booking_id: str,
        trainer: User,
        reason: Optional[str] = None,
        *,
        expected_version: Optional[int] = None,
    ) -> Booking:
        """Trainer declines a pending booking; the reason is kept on the booking."""
        booking = self._get_booking_or_404(booking_id)
        if booking.trainer_id != trainer.id:
            raise ForbiddenException("Only the trainer can reject this booking")
        self._require_transition(booking, BookingStatus.REJECTED.value)

        booking = self._apply_transition(
            booking_id,
            BookingStatus.REJECTED.value,
            expected_version=expected_version,
            cancellation_reason=reason,
        )
        self.log_operation("reject_booking", booking_id=booking_id, trainer_id=trainer.id)

        content = f"Your booking '{booking.title}' was declined"
        if reason:
            content = f"{content}: {reason}"
        self.notification_service.notify(
            booking.client_id,
            NOTIFICATION_BOOKING_REJECTED,
            content,
            reference_id=booking.id,
            sender_id=trainer.id,
        )
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self,
        booking_id: str,
        user: User,
        reason: Optional[str] = None,
        *,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Either participant cancels a pending or confirmed booking before it ends.

        Earlier notifications about the booking are retracted and the other
        participant is told about the cancellation.
        """
        now = now or datetime.now(timezone.utc)
        booking = self._get_booking_or_404(booking_id)
        if not booking.is_participant(user.id):
            raise ForbiddenException("You can only cancel your own bookings")
        self._require_transition(booking, BookingStatus.CANCELLED.value)
        if booking.has_ended(now):
            raise BusinessRuleException(
                "Cannot cancel a session that has already ended",
                code="SESSION_ENDED",
                details={"booking_id": booking_id},
            )

        booking = self._apply_transition(
            booking_id,
            BookingStatus.CANCELLED.value,
            expected_version=expected_version,
            cancellation_reason=reason,
            cancellation_date=now,
            cancelled_by_id=user.id,
        )
        self.log_operation(
            "cancel_booking", booking_id=booking_id, cancelled_by_id=user.id, reason=reason
        )

        self.notification_service.retract_for_booking(booking.id)
        other_party = booking.trainer_id if user.id == booking.client_id else booking.client_id
        content = f"Booking '{booking.title}' was cancelled by {user.full_name}"
        if reason:
            content = f"{content}: {reason}"
        self.notification_service.notify(
            other_party,
            NOTIFICATION_BOOKING_CANCELLED,
            content,
            reference_id=booking.id,
            sender_id=user.id,
        )
        return booking
