# backend/fitbook/services/availability_resolver.py
"""
Availability Resolver Service for FitBook

Loads a trainer's rules and exceptions and resolves them into bookable
windows for a date, or finds every date in a range that has any window.

A transient store failure yields an empty result flagged ``degraded`` so
the UI can tell "no availability" apart from "could not load".
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import logging
from typing import List, Optional, Sequence, Tuple

import pytz
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import TransientRepositoryException, ValidationException
from ..database.session_utils import is_transient_db_error
from ..domain.availability import TimeWindow, resolve_windows
from ..models.availability import AvailabilityRule
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .exception_manager import ExceptionManager, ExceptionRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedAvailability:
    """Windows for one trainer on one date."""

    trainer_id: str
    date: date
    windows: List[TimeWindow] = field(default_factory=list)
    degraded: bool = False


@dataclass(frozen=True)
class AvailableDates:
    trainer_id: str
    start: date
    end: date
    dates: List[date] = field(default_factory=list)
    degraded: bool = False


class StoreReadFailed(Exception):
    """Internal signal: inputs could not be loaded because of a transient failure."""


class AvailabilityResolver(BaseService):
    """Read side of availability: raw rows in, resolved windows out."""

    def __init__(self, db: Session, exception_manager: ExceptionManager):
        super().__init__(db)
        self.exception_manager = exception_manager
        self.rule_repository = RepositoryFactory.create_availability_rule_repository(db)

    def _load_inputs(
        self, trainer_id: str
    ) -> Tuple[Sequence[AvailabilityRule], Sequence[ExceptionRecord]]:
        try:
            rules = self.rule_repository.list_rules(trainer_id, only_available=True)
            exceptions = self.exception_manager.list_exceptions(trainer_id)
        except TransientRepositoryException as exc:
            raise StoreReadFailed(str(exc)) from exc
        except SQLAlchemyError as exc:
            if is_transient_db_error(exc):
                raise StoreReadFailed(str(exc)) from exc
            raise
        return rules, exceptions

    def _degrade(self, operation: str, trainer_id: str, exc: Exception) -> None:
        assert self.db is not None
        self.db.rollback()
        prometheus_metrics.record_degraded_read(operation)
        self.logger.warning(
            "Availability read degraded",
            extra={"operation": operation, "trainer_id": trainer_id, "error": str(exc)},
        )

    @BaseService.measure_operation("resolve_availability")
    def resolve(self, trainer_id: str, on_date: date) -> ResolvedAvailability:
        """Ordered windows valid on ``on_date``; empty means no availability."""
        try:
            rules, exceptions = self._load_inputs(trainer_id)
        except StoreReadFailed as exc:
            self._degrade("resolve_availability", trainer_id, exc)
            return ResolvedAvailability(trainer_id=trainer_id, date=on_date, degraded=True)

        return ResolvedAvailability(
            trainer_id=trainer_id,
            date=on_date,
            windows=resolve_windows(rules, exceptions, on_date),
        )

    @BaseService.measure_operation("get_available_dates")
    def get_available_dates(
        self,
        trainer_id: str,
        start: date,
        days: Optional[int] = None,
        *,
        today: Optional[date] = None,
    ) -> AvailableDates:
        """
        Dates in ``[start, start + days)`` that have at least one window.

        Dates before ``today`` are never returned. Rules and exceptions are
        loaded once for the whole range.
        """
        days = days if days is not None else settings.available_dates_default_days
        if not 1 <= days <= settings.available_dates_max_days:
            raise ValidationException(
                "Date range is out of bounds",
                details={"days": days, "max_days": settings.available_dates_max_days},
            )
        today = today or datetime.now(pytz.timezone(settings.default_timezone)).date()
        first = max(start, today)
        end = start + timedelta(days=days)

        try:
            rules, exceptions = self._load_inputs(trainer_id)
        except StoreReadFailed as exc:
            self._degrade("get_available_dates", trainer_id, exc)
            return AvailableDates(
                trainer_id=trainer_id, start=start, end=end, degraded=True
            )

        dates = []
        current = first
        while current < end:
            if resolve_windows(rules, exceptions, current):
                dates.append(current)
            current += timedelta(days=1)

        return AvailableDates(trainer_id=trainer_id, start=start, end=end, dates=dates)
