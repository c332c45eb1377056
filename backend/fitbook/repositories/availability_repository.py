# backend/fitbook/repositories/availability_repository.py
"""
Availability Repository for FitBook

Data access for availability rules and availability exceptions.

Rules support both wholesale replacement (delete-all-then-insert) and
single-row edits keyed by the stable rule id. Exceptions are append-only.
"""

from datetime import date
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.availability import AvailabilityException, AvailabilityRule
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRuleRepository(BaseRepository[AvailabilityRule]):
    """Repository for trainer availability rules."""

    def __init__(self, db: Session):
        super().__init__(db, AvailabilityRule)

    def list_rules(
        self, trainer_id: str, *, only_available: bool = False
    ) -> List[AvailabilityRule]:
        """
        All rules for a trainer, ordered for display.

        Args:
            trainer_id: Trainer whose rules to load
            only_available: Skip rules flagged as unavailable
        """
        query = self._build_query().filter(AvailabilityRule.trainer_id == trainer_id)
        if only_available:
            query = query.filter(AvailabilityRule.is_available.is_(True))
        query = query.order_by(
            AvailabilityRule.specific_date,
            AvailabilityRule.day_of_week,
            AvailabilityRule.start_time,
        )
        return self._execute_query(query)

    def get_for_trainer(self, rule_id: str, trainer_id: str) -> Optional[AvailabilityRule]:
        return self.find_one_by(id=rule_id, trainer_id=trainer_id)

    def replace_rules(self, trainer_id: str, rules: List[Dict[str, Any]]) -> List[AvailabilityRule]:
        """
        Delete every rule of the trainer and insert ``rules``.

        Last writer wins. Runs inside the caller's transaction, so a failed
        insert rolls the delete back too.
        """
        try:
            deleted = (
                self.db.query(AvailabilityRule)
                .filter(AvailabilityRule.trainer_id == trainer_id)
                .delete(synchronize_session=False)
            )
            self.logger.debug("Deleted %s rules for trainer %s", deleted, trainer_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error clearing rules for trainer {trainer_id}: {str(e)}")
            self._raise_translated(e, "delete")

        # Identity map may still hold the deleted rows
        self.db.expire_all()
        return self.bulk_create([{**rule, "trainer_id": trainer_id} for rule in rules])


class AvailabilityExceptionRepository(BaseRepository[AvailabilityException]):
    """
    Repository for availability exceptions.

    Raises StoreUnavailableException when the exceptions table is missing so
    the service layer can fall back to the local cache.
    """

    def __init__(self, db: Session):
        super().__init__(db, AvailabilityException)

    def list_for_trainer(
        self, trainer_id: str, *, on_date: Optional[date] = None
    ) -> List[AvailabilityException]:
        query = self._build_query().filter(AvailabilityException.trainer_id == trainer_id)
        if on_date is not None:
            query = query.filter(AvailabilityException.exception_date == on_date)
        query = query.order_by(AvailabilityException.exception_date)
        return self._execute_query(query)

    def insert_exception(self, **fields: Any) -> AvailabilityException:
        """Append one exception marker."""
        return self.create(**fields)
