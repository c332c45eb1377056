# backend/fitbook/services/slot_service.py
"""
Slot Service for FitBook

Turns resolved availability windows into bookable fixed-length slots and
removes slots already held by an active booking or starting in the past.

Listing is advisory: booking creation re-validates against live data.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
import logging
from typing import List, Optional

import pytz
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import TransientRepositoryException, ValidationException
from ..domain.slots import Slot, generate_slots, remove_taken_slots
from ..models.booking import ACTIVE_STATUSES
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .availability_resolver import AvailabilityResolver
from .base import BaseService
from .trainer_service import TrainerService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotListing:
    trainer_id: str
    date: date
    duration_minutes: int
    timezone: str
    slots: List[Slot] = field(default_factory=list)
    degraded: bool = False


def local_day_bounds(on_date: date, tz: pytz.BaseTzInfo) -> tuple:
    """UTC instants bounding the local calendar day."""
    start = tz.localize(datetime.combine(on_date, time.min))
    end = tz.localize(datetime.combine(on_date + timedelta(days=1), time.min))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


class SlotService(BaseService):
    """Bookable slots for a trainer on a date."""

    def __init__(
        self,
        db: Session,
        resolver: AvailabilityResolver,
        trainer_service: TrainerService,
    ):
        super().__init__(db)
        self.resolver = resolver
        self.trainer_service = trainer_service
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    def resolve_duration(
        self,
        trainer_id: str,
        *,
        duration_minutes: Optional[int] = None,
        service_id: Optional[str] = None,
    ) -> int:
        """
        A service's duration overrides ``duration_minutes``, which falls back to
        the configured default.

        Slots listed for a service must be bookable as that service, and a
        booking for it always lasts the service's duration.
        """
        if service_id:
            duration_minutes = self.trainer_service.get_service(
                trainer_id, service_id
            ).duration_minutes
        duration = duration_minutes or settings.default_slot_minutes
        if not settings.min_slot_minutes <= duration <= settings.max_slot_minutes:
            raise ValidationException(
                "Slot duration is out of range",
                details={
                    "duration_minutes": duration,
                    "min": settings.min_slot_minutes,
                    "max": settings.max_slot_minutes,
                },
            )
        return duration

    @BaseService.measure_operation("list_available_slots")
    def list_available_slots(
        self,
        trainer_id: str,
        on_date: date,
        *,
        duration_minutes: Optional[int] = None,
        service_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SlotListing:
        """
        Free slots for ``trainer_id`` on ``on_date`` in the trainer's timezone.

        Slots starting before ``now`` (default: the current instant) are dropped.
        """
        duration = self.resolve_duration(
            trainer_id, duration_minutes=duration_minutes, service_id=service_id
        )
        trainer_settings = self.trainer_service.get_settings(trainer_id)
        tz = trainer_settings.tz
        now = now or datetime.now(timezone.utc)

        resolved = self.resolver.resolve(trainer_id, on_date)
        listing_args = dict(
            trainer_id=trainer_id,
            date=on_date,
            duration_minutes=duration,
            timezone=trainer_settings.timezone,
        )
        if resolved.degraded:
            return SlotListing(**listing_args, degraded=True)

        slots = generate_slots(resolved.windows, on_date, duration, tz)
        if not slots:
            return SlotListing(**listing_args)

        day_start, day_end = local_day_bounds(on_date, tz)
        try:
            bookings = self.booking_repository.list_bookings(
                trainer_id=trainer_id,
                statuses=ACTIVE_STATUSES,
                start_from=day_start,
                end_before=day_end,
            )
        except TransientRepositoryException as exc:
            assert self.db is not None
            self.db.rollback()
            prometheus_metrics.record_degraded_read("list_available_slots")
            self.logger.warning(
                "Slot listing degraded",
                extra={"trainer_id": trainer_id, "date": on_date.isoformat(), "error": str(exc)},
            )
            return SlotListing(**listing_args, degraded=True)

        return SlotListing(**listing_args, slots=remove_taken_slots(slots, bookings, now))
