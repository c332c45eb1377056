# backend/fitbook/services/availability_service.py
"""
Availability Service for FitBook

Write side of trainer availability:
- Wholesale replacement of a trainer's rules (delete-all-then-insert)
- Single-rule add/update/delete keyed by the stable rule id, for editors
  that must not clobber changes made in another session
- Sibling-day exceptions for one-off rules, committed with the rule itself
"""

from dataclasses import dataclass
from datetime import date, time, timedelta
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.exceptions import (
    ForbiddenException,
    NotFoundException,
    StoreUnavailableException,
    ValidationException,
)
from ..domain.availability import weekday_index
from ..models.availability import AvailabilityRule
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .exception_manager import ExceptionManager, ExceptionRecord

logger = logging.getLogger(__name__)


@dataclass
class RuleInput:
    """Fields a trainer supplies for one availability rule."""

    start_time: time
    end_time: time
    day_of_week: Optional[int] = None
    is_recurring: Optional[bool] = True
    specific_date: Optional[date] = None
    is_available: bool = True


def _require_trainer(user: User) -> None:
    if not user.is_trainer:
        raise ForbiddenException("Only trainers can manage availability")


def validate_rule(rule: RuleInput) -> Dict[str, Any]:
    """
    Check one rule and return the column values to store.

    A one-off rule's ``day_of_week`` is derived from its date when omitted.
    A supplied value is kept even if it disagrees, because one-off rules are
    matched on their date alone.
    """
    if rule.start_time >= rule.end_time:
        raise ValidationException(
            "Start time must be before end time",
            code="INVALID_TIME_RANGE",
            details={
                "start_time": rule.start_time.isoformat(),
                "end_time": rule.end_time.isoformat(),
            },
        )

    recurring = rule.is_recurring is None or bool(rule.is_recurring)
    day_of_week = rule.day_of_week
    if recurring:
        if day_of_week is None:
            raise ValidationException(
                "Recurring rules need a day_of_week", code="MISSING_DAY_OF_WEEK"
            )
        specific_date = None
    else:
        if rule.specific_date is None:
            raise ValidationException(
                "One-off rules need a specific_date", code="MISSING_SPECIFIC_DATE"
            )
        specific_date = rule.specific_date
        if day_of_week is None:
            day_of_week = weekday_index(specific_date)

    if not 0 <= day_of_week <= 6:
        raise ValidationException(
            "day_of_week must be between 0 (Sunday) and 6 (Saturday)",
            code="INVALID_DAY_OF_WEEK",
            details={"day_of_week": day_of_week},
        )

    return {
        "day_of_week": day_of_week,
        "start_time": rule.start_time,
        "end_time": rule.end_time,
        "is_recurring": recurring,
        "specific_date": specific_date,
        "is_available": bool(rule.is_available),
    }


def sibling_exception_records(trainer_id: str, rule: AvailabilityRule) -> List[ExceptionRecord]:
    """
    Exceptions for every other day of a one-off rule's Sunday-based week.

    Keeps the rule from surfacing on those days in views that match on
    weekday alone.
    """
    assert rule.specific_date is not None
    week_start = rule.specific_date - timedelta(days=weekday_index(rule.specific_date))
    records = []
    for offset in range(7):
        day = week_start + timedelta(days=offset)
        if day == rule.specific_date:
            continue
        records.append(
            ExceptionRecord(
                trainer_id=trainer_id,
                exception_date=day,
                original_slot_id=rule.id,
                day_of_week=weekday_index(day),
                start_time=rule.start_time,
                end_time=rule.end_time,
            )
        )
    return records


class AvailabilityService(BaseService):
    """Trainer-facing management of availability rules."""

    def __init__(self, db: Session, exception_manager: ExceptionManager):
        super().__init__(db)
        self.exception_manager = exception_manager
        self.rule_repository = RepositoryFactory.create_availability_rule_repository(db)

    def list_rules(self, trainer: User) -> List[AvailabilityRule]:
        _require_trainer(trainer)
        return self.rule_repository.list_rules(trainer.id)

    def _get_own_rule(self, trainer: User, rule_id: str) -> AvailabilityRule:
        rule = self.rule_repository.get_by_id(rule_id)
        if rule is None:
            raise NotFoundException("Availability rule not found", details={"rule_id": rule_id})
        if rule.trainer_id != trainer.id:
            raise ForbiddenException("You can only change your own availability")
        return rule

    def _sibling_records(
        self, trainer_id: str, rules: Sequence[AvailabilityRule]
    ) -> List[ExceptionRecord]:
        records: List[ExceptionRecord] = []
        for rule in rules:
            if not rule.is_recurring and rule.specific_date is not None:
                records.extend(sibling_exception_records(trainer_id, rule))
        return records

    def _save_once(
        self,
        trainer_id: str,
        write: Callable[[], List[AvailabilityRule]],
        needs_siblings: Callable[[AvailabilityRule], bool],
    ) -> List[AvailabilityRule]:
        with self.transaction():
            saved = write()
            siblings = [rule for rule in saved if needs_siblings(rule)]
            self.exception_manager.stage_exceptions(
                trainer_id, self._sibling_records(trainer_id, siblings)
            )
        return saved

    def _save_with_siblings(
        self,
        trainer_id: str,
        write: Callable[[], List[AvailabilityRule]],
        needs_siblings: Callable[[AvailabilityRule], bool] = lambda rule: True,
    ) -> List[AvailabilityRule]:
        """
        Run ``write`` and store sibling exceptions in one transaction.

        A missing exceptions table rolls the whole unit back; it is retried
        once with the markers going to the local store.
        """
        try:
            return self._save_once(trainer_id, write, needs_siblings)
        except StoreUnavailableException as exc:
            self.exception_manager.mark_store_unavailable(exc)
        return self._save_once(trainer_id, write, needs_siblings)

    @BaseService.measure_operation("replace_rules")
    def replace_rules(self, trainer: User, rules: Sequence[RuleInput]) -> List[AvailabilityRule]:
        """
        Replace every rule of the trainer with ``rules``.

        All rules are validated before anything is deleted. Last writer wins
        at trainer granularity.
        """
        _require_trainer(trainer)
        values = [validate_rule(rule) for rule in rules]

        created = self._save_with_siblings(
            trainer.id, lambda: self.rule_repository.replace_rules(trainer.id, values)
        )
        self.log_operation("replace_rules", trainer_id=trainer.id, count=len(created))
        return created

    @BaseService.measure_operation("add_rule")
    def add_rule(self, trainer: User, rule: RuleInput) -> AvailabilityRule:
        _require_trainer(trainer)
        values = validate_rule(rule)

        (created,) = self._save_with_siblings(
            trainer.id, lambda: [self.rule_repository.create(trainer_id=trainer.id, **values)]
        )
        self.log_operation("add_rule", trainer_id=trainer.id, rule_id=created.id)
        return created

    @BaseService.measure_operation("update_rule")
    def update_rule(self, trainer: User, rule_id: str, **changes: Any) -> AvailabilityRule:
        """
        Patch one rule by id; unspecified fields keep their stored values.

        Switching a recurring rule to one-off writes sibling exceptions for
        its new date.
        """
        _require_trainer(trainer)
        rule = self._get_own_rule(trainer, rule_id)
        was_one_off = not rule.recurring
        previous_date = rule.specific_date

        merged = RuleInput(
            start_time=changes.get("start_time", rule.start_time),
            end_time=changes.get("end_time", rule.end_time),
            day_of_week=changes.get("day_of_week", rule.day_of_week),
            is_recurring=changes.get("is_recurring", rule.recurring),
            specific_date=changes.get("specific_date", rule.specific_date),
            is_available=changes.get("is_available", rule.is_available),
        )
        if "specific_date" in changes and "day_of_week" not in changes:
            merged.day_of_week = None
        values = validate_rule(merged)

        def write() -> List[AvailabilityRule]:
            updated = self.rule_repository.update(rule_id, **values)
            assert updated is not None
            return [updated]

        def moved_to_new_date(updated: AvailabilityRule) -> bool:
            return not updated.is_recurring and (
                not was_one_off or previous_date != updated.specific_date
            )

        (updated,) = self._save_with_siblings(trainer.id, write, moved_to_new_date)
        self.log_operation("update_rule", trainer_id=trainer.id, rule_id=rule_id)
        return updated

    @BaseService.measure_operation("delete_rule")
    def delete_rule(self, trainer: User, rule_id: str) -> None:
        """Delete a rule entirely. Exceptions pointing at it become inert."""
        _require_trainer(trainer)
        self._get_own_rule(trainer, rule_id)
        with self.transaction():
            self.rule_repository.delete(rule_id)
        self.log_operation("delete_rule", trainer_id=trainer.id, rule_id=rule_id)
