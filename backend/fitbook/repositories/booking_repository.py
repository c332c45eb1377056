# backend/fitbook/repositories/booking_repository.py
"""
Booking Repository for FitBook

Implements all data access operations for booking management:
- Listing by trainer/client/status
- Overlap lookups against active bookings
- Overlap-checked inserts serialized per trainer
- Conditional status transitions (compare-and-set on status and version)
"""

from datetime import datetime
import logging
from typing import Any, Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import OverlapsExistingBookingException
from ..models.booking import ACTIVE_STATUSES, Booking
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_fresh(self, booking_id: str) -> Optional[Booking]:
        """Load a booking bypassing any stale copy in the identity map."""
        try:
            return self.db.get(Booking, booking_id, populate_existing=True)
        except SQLAlchemyError as e:
            self.logger.error(f"Error reloading booking {booking_id}: {str(e)}")
            self._raise_translated(e, "retrieve")

    def list_bookings(
        self,
        *,
        trainer_id: Optional[str] = None,
        client_id: Optional[str] = None,
        participant_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        start_from: Optional[datetime] = None,
        end_before: Optional[datetime] = None,
    ) -> List[Booking]:
        """
        Bookings matching the given filters, ordered by start time.

        ``participant_id`` matches bookings where the user is either side.
        ``start_from``/``end_before`` select bookings overlapping that range.
        """
        query = self._build_query()
        if trainer_id:
            query = query.filter(Booking.trainer_id == trainer_id)
        if client_id:
            query = query.filter(Booking.client_id == client_id)
        if participant_id:
            query = query.filter(
                (Booking.trainer_id == participant_id) | (Booking.client_id == participant_id)
            )
        if statuses is not None:
            query = query.filter(Booking.status.in_(list(statuses)))
        if start_from is not None:
            query = query.filter(Booking.end_time > start_from)
        if end_before is not None:
            query = query.filter(Booking.start_time < end_before)
        return self._execute_query(query.order_by(Booking.start_time))

    def find_overlapping(
        self,
        trainer_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """Active bookings of ``trainer_id`` intersecting ``[start, end)``."""
        query = self._build_query().filter(
            Booking.trainer_id == trainer_id,
            Booking.status.in_(list(ACTIVE_STATUSES)),
            Booking.start_time < end,
            Booking.end_time > start,
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return self._execute_query(query.order_by(Booking.start_time))

    def transition_status(
        self,
        booking_id: str,
        *,
        from_statuses: Iterable[str],
        to_status: str,
        expected_version: Optional[int] = None,
        **extra: Any,
    ) -> bool:
        """
        Atomically move a booking to ``to_status``.

        The UPDATE only matches while the row is still in one of
        ``from_statuses`` (and at ``expected_version`` when given), so a
        concurrent writer makes this return False instead of being overwritten.
        """
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status.in_(list(from_statuses)))
            .values(status=to_status, version=Booking.version + 1, **extra)
            .execution_options(synchronize_session=False)
        )
        if expected_version is not None:
            stmt = stmt.where(Booking.version == expected_version)
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Error transitioning booking {booking_id}: {str(e)}")
            self._raise_translated(e, "update")
        return result.rowcount == 1

    def insert_booking_checked(self, **fields: Any) -> Booking:
        """
        Insert a booking unless it overlaps an active booking of its trainer.

        Locks the trainer's user row first so concurrent inserts for the same
        trainer serialize; must run inside the caller's transaction.

        Raises:
            OverlapsExistingBookingException: if the interval is taken
        """
        trainer_id = fields["trainer_id"]
        try:
            self.db.query(User).filter(User.id == trainer_id).with_for_update().first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking trainer {trainer_id}: {str(e)}")
            self._raise_translated(e, "lock")

        conflicts = self.find_overlapping(trainer_id, fields["start_time"], fields["end_time"])
        if conflicts:
            raise OverlapsExistingBookingException(
                details={
                    "trainer_id": trainer_id,
                    "start_time": fields["start_time"].isoformat(),
                    "end_time": fields["end_time"].isoformat(),
                    "conflicting_booking_ids": [booking.id for booking in conflicts],
                }
            )
        return self.create(**fields)
