# backend/fitbook/services/exception_manager.py
"""
Exception Manager Service for FitBook

Records "skip this occurrence" markers for availability rules.

Whether the database has an exceptions table is checked once at startup
and injected here. When it is absent, or a write finds it missing, markers
go to a trainer-scoped local cache instead. Reads always merge both
stores, so callers never need to know which one served a marker.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timezone
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session
import ulid

from ..core.exceptions import (
    NotFoundException,
    StoreUnavailableException,
    TransientRepositoryException,
    TransientStoreException,
    ValidationException,
)
from ..domain.availability import is_exception_for, is_recurring_rule, weekday_index
from ..models.availability import AvailabilityException
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .cache_service import CacheService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExceptionRecord:
    """Store-independent view of an availability exception."""

    trainer_id: str
    exception_date: date
    original_slot_id: str
    day_of_week: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    id: str = field(default_factory=lambda: str(ulid.ULID()))
    created_at: Optional[datetime] = None

    @property
    def key(self) -> tuple:
        return (self.exception_date, self.original_slot_id)

    @classmethod
    def from_model(cls, row: AvailabilityException) -> "ExceptionRecord":
        return cls(
            id=row.id,
            trainer_id=row.trainer_id,
            exception_date=row.exception_date,
            original_slot_id=str(row.original_slot_id),
            day_of_week=row.day_of_week,
            start_time=row.start_time,
            end_time=row.end_time,
            created_at=row.created_at,
        )

    def to_cache(self) -> Dict[str, Any]:
        data = asdict(self)
        data["exception_date"] = self.exception_date.isoformat()
        data["start_time"] = self.start_time.isoformat() if self.start_time else None
        data["end_time"] = self.end_time.isoformat() if self.end_time else None
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data

    @classmethod
    def from_cache(cls, data: Dict[str, Any]) -> "ExceptionRecord":
        return cls(
            id=data["id"],
            trainer_id=data["trainer_id"],
            exception_date=date.fromisoformat(data["exception_date"]),
            original_slot_id=str(data["original_slot_id"]),
            day_of_week=data.get("day_of_week"),
            start_time=time.fromisoformat(data["start_time"]) if data.get("start_time") else None,
            end_time=time.fromisoformat(data["end_time"]) if data.get("end_time") else None,
            created_at=(
                datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None
            ),
        )


class LocalExceptionStore:
    """
    Trainer-scoped exception markers kept in the cache service.

    Each trainer has one append-only list under its own key, without expiry.
    A backend failure raises TransientRepositoryException from ``list`` and
    TransientStoreException from ``add_many``; neither reads as "no markers".
    """

    def __init__(self, cache: CacheService):
        self.cache = cache

    def _key(self, trainer_id: str) -> str:
        return self.cache.key_builder.build("exceptions", "local", trainer_id)

    def list(self, trainer_id: str) -> List[ExceptionRecord]:
        raw = self.cache.list_items(self._key(trainer_id))
        return [ExceptionRecord.from_cache(item) for item in raw]

    def add_many(self, trainer_id: str, records: Sequence[ExceptionRecord]) -> None:
        try:
            self.cache.append_items(
                self._key(trainer_id), [record.to_cache() for record in records]
            )
        except TransientRepositoryException as exc:
            logger.error(
                "Could not persist availability exception locally",
                extra={"trainer_id": trainer_id, "error": str(exc)},
            )
            raise TransientStoreException(details={"trainer_id": trainer_id}) from exc


def merge_exceptions(*sources: Iterable[ExceptionRecord]) -> List[ExceptionRecord]:
    """Union of exception sources, de-duplicated on (date, rule id), first seen wins."""
    seen: set = set()
    merged: List[ExceptionRecord] = []
    for source in sources:
        for record in source:
            if record.key in seen:
                continue
            seen.add(record.key)
            merged.append(record)
    merged.sort(key=lambda r: (r.exception_date, r.original_slot_id))
    return merged


class ExceptionManager(BaseService):
    """Adds and lists availability exceptions across the database and the local cache."""

    def __init__(
        self,
        db: Session,
        cache: CacheService,
        *,
        exception_store_available: bool = True,
    ):
        super().__init__(db, cache)
        self.exception_store_available = exception_store_available
        self.local_store = LocalExceptionStore(cache)
        self.exception_repository = RepositoryFactory.create_availability_exception_repository(db)
        self.rule_repository = RepositoryFactory.create_availability_rule_repository(db)

    def mark_store_unavailable(self, exc: Exception) -> None:
        if self.exception_store_available:
            self.logger.warning(
                "Exceptions table unavailable, using local cache",
                extra={"error": str(exc), "cache_backend": self.cache.backend},
            )
        self.exception_store_available = False

    @BaseService.measure_operation("list_exceptions")
    def list_exceptions(self, trainer_id: str) -> List[ExceptionRecord]:
        """
        All exceptions of a trainer from every store.

        Transient failures of either store propagate; only a missing table
        falls back silently.
        """
        primary: List[ExceptionRecord] = []
        if self.exception_store_available:
            try:
                rows = self.exception_repository.list_for_trainer(trainer_id)
                primary = [ExceptionRecord.from_model(row) for row in rows]
            except StoreUnavailableException as exc:
                self.db.rollback()
                self.mark_store_unavailable(exc)
        return merge_exceptions(primary, self.local_store.list(trainer_id))

    def is_exception(self, trainer_id: str, rule_id: str, on_date: date) -> bool:
        """True iff an exception suppresses ``rule_id`` on ``on_date``."""
        return is_exception_for(self.list_exceptions(trainer_id), rule_id, on_date)

    def _insert_rows(
        self, trainer_id: str, records: Sequence[ExceptionRecord]
    ) -> List[ExceptionRecord]:
        rows = [
            self.exception_repository.insert_exception(
                id=record.id,
                trainer_id=trainer_id,
                exception_date=record.exception_date,
                original_slot_id=record.original_slot_id,
                day_of_week=record.day_of_week,
                start_time=record.start_time,
                end_time=record.end_time,
            )
            for record in records
        ]
        return [ExceptionRecord.from_model(row) for row in rows]

    def _write_local(
        self, trainer_id: str, records: Sequence[ExceptionRecord]
    ) -> List[ExceptionRecord]:
        stamped = [
            ExceptionRecord(**{**asdict(record), "created_at": datetime.now(timezone.utc)})
            for record in records
        ]
        self.local_store.add_many(trainer_id, stamped)
        prometheus_metrics.record_exception_fallback_write()
        self.log_operation("add_exceptions_local", trainer_id=trainer_id, count=len(stamped))
        return stamped

    @BaseService.measure_operation("add_exceptions")
    def add_exceptions(
        self, trainer_id: str, records: Sequence[ExceptionRecord]
    ) -> List[ExceptionRecord]:
        """
        Persist several markers in their own transaction.

        Not idempotent: adding the same marker twice stores it twice, which
        is harmless because matching only looks for existence.
        """
        if not records:
            return []

        if self.exception_store_available:
            try:
                with self.transaction():
                    stored = self._insert_rows(trainer_id, records)
                self.log_operation("add_exceptions", trainer_id=trainer_id, count=len(stored))
                return stored
            except StoreUnavailableException as exc:
                self.mark_store_unavailable(exc)

        return self._write_local(trainer_id, records)

    def stage_exceptions(
        self, trainer_id: str, records: Sequence[ExceptionRecord]
    ) -> List[ExceptionRecord]:
        """
        Write markers inside the caller's open transaction without committing.

        Database rows commit or roll back with the caller's unit of work. A
        missing table raises StoreUnavailableException; the caller rolls back,
        calls ``mark_store_unavailable`` and retries. Local markers are written
        immediately, so a failed commit afterwards leaves them pointing at
        rules that were never stored, which resolution ignores.
        """
        if not records:
            return []
        if self.exception_store_available:
            return self._insert_rows(trainer_id, records)
        return self._write_local(trainer_id, records)

    def add_exception(
        self,
        trainer_id: str,
        exception_date: date,
        original_slot_id: str,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        day_of_week: Optional[int] = None,
    ) -> ExceptionRecord:
        """Persist one "rule does not apply on this date" marker."""
        record = ExceptionRecord(
            trainer_id=trainer_id,
            exception_date=exception_date,
            original_slot_id=str(original_slot_id),
            day_of_week=day_of_week if day_of_week is not None else weekday_index(exception_date),
            start_time=start_time,
            end_time=end_time,
        )
        return self.add_exceptions(trainer_id, [record])[0]

    @BaseService.measure_operation("delete_occurrence")
    def delete_occurrence(self, trainer: User, rule_id: str, on_date: date) -> ExceptionRecord:
        """
        Remove a single occurrence of a recurring rule.

        The rule itself is untouched; later and earlier weeks still resolve.
        """
        rule = self.rule_repository.get_for_trainer(rule_id, trainer.id)
        if rule is None:
            raise NotFoundException(
                "Availability rule not found", details={"rule_id": rule_id}
            )
        if not is_recurring_rule(rule):
            raise ValidationException(
                "Only recurring rules have occurrences; delete the one-off rule instead",
                code="NOT_RECURRING",
                details={"rule_id": rule_id},
            )
        if rule.day_of_week != weekday_index(on_date):
            raise ValidationException(
                "The rule does not occur on that date",
                code="NO_OCCURRENCE_ON_DATE",
                details={"rule_id": rule_id, "date": on_date.isoformat()},
            )

        return self.add_exception(
            trainer.id,
            on_date,
            rule.id,
            start_time=rule.start_time,
            end_time=rule.end_time,
            day_of_week=rule.day_of_week,
        )
