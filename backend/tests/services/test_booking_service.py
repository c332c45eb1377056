# backend/tests/services/test_booking_service.py
"""
Booking lifecycle: creation against availability, overlap prevention,
status transitions and the notifications they send.
"""

from datetime import datetime, time, timedelta, timezone

import pytest

from fitbook.core.constants import (
    BOOKING_REFERENCE_TYPE,
    NOTIFICATION_BOOKING_CANCELLED,
    NOTIFICATION_BOOKING_CONFIRMED,
    NOTIFICATION_BOOKING_REJECTED,
    NOTIFICATION_BOOKING_REQUESTED,
)
from fitbook.core.exceptions import (
    BusinessRuleException,
    ConcurrentModificationException,
    ForbiddenException,
    InvalidStateTransitionException,
    NotFoundException,
    OutsideAvailabilityException,
    OverlapsExistingBookingException,
    RepositoryException,
    TransientStoreException,
    ValidationException,
)
from fitbook.models.booking import Booking, BookingStatus
from fitbook.models.notification import Notification
from fitbook.repositories.notification_repository import NotificationRepository
from fitbook.schemas.booking import BookingCreate
from fitbook.services.availability_resolver import ResolvedAvailability


def request(trainer, day, start, end=None, **extra):
    return BookingCreate(
        trainer_id=trainer.id,
        start_time=datetime.combine(day, start),
        end_time=datetime.combine(day, end) if end else None,
        title=extra.pop("title", "Personal training"),
        **extra,
    )


def utc(day, hour, minute=0):
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


@pytest.fixture
def pending_booking(booking_service, client_user, trainer, monday_rule, monday) -> Booking:
    return booking_service.create_booking(client_user, request(trainer, monday, time(10), time(11)))


class TestCreateBooking:
    def test_creates_pending_booking_inside_availability(
        self, booking_service, client_user, trainer, monday_rule, monday
    ):
        booking = booking_service.create_booking(
            client_user, request(trainer, monday, time(10), time(11))
        )

        assert booking.status == BookingStatus.PENDING.value
        assert booking.version == 1
        assert booking.start_time == utc(monday, 10)
        assert booking.end_time == utc(monday, 11)
        assert booking.start_time.tzinfo is not None

    def test_trainer_is_notified(
        self, db, booking_service, client_user, trainer, monday_rule, monday
    ):
        booking = booking_service.create_booking(
            client_user, request(trainer, monday, time(10), time(11))
        )

        notifications = db.query(Notification).filter_by(user_id=trainer.id).all()
        assert [n.type for n in notifications] == [NOTIFICATION_BOOKING_REQUESTED]
        assert notifications[0].reference_id == booking.id
        assert notifications[0].reference_type == BOOKING_REFERENCE_TYPE
        assert notifications[0].sender_id == client_user.id

    def test_service_defines_end_and_title(
        self, booking_service, client_user, trainer, trainer_service_row, monday_rule, monday
    ):
        data = BookingCreate(
            trainer_id=trainer.id,
            start_time=datetime.combine(monday, time(9)),
            service_id=trainer_service_row.id,
        )
        booking = booking_service.create_booking(client_user, data)

        assert booking.end_time == utc(monday, 10)
        assert booking.title == "Strength Session"
        assert booking.service_id == trainer_service_row.id

    def test_title_required_without_service(
        self, booking_service, client_user, trainer, monday_rule, monday
    ):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(
                client_user, request(trainer, monday, time(10), time(11), title=None)
            )
        assert exc_info.value.code == "MISSING_TITLE"

    def test_outside_availability(
        self, db, booking_service, client_user, trainer, monday_rule, monday
    ):
        with pytest.raises(OutsideAvailabilityException):
            booking_service.create_booking(
                client_user, request(trainer, monday, time(11, 30), time(12, 30))
            )
        assert db.query(Booking).count() == 0

    def test_skipped_occurrence_is_unavailable(
        self, booking_service, exception_manager, client_user, trainer, monday_rule, monday
    ):
        exception_manager.delete_occurrence(trainer, monday_rule.id, monday)

        with pytest.raises(OutsideAvailabilityException):
            booking_service.create_booking(
                client_user, request(trainer, monday, time(10), time(11))
            )

    def test_overlap_rejected_without_mutation(
        self, db, booking_service, client_user, second_client, trainer, monday_rule, monday
    ):
        first = booking_service.create_booking(
            client_user, request(trainer, monday, time(10), time(11))
        )

        with pytest.raises(OverlapsExistingBookingException) as exc_info:
            booking_service.create_booking(
                second_client, request(trainer, monday, time(10, 30), time(11, 30))
            )

        assert exc_info.value.details["conflicting_booking_ids"] == [first.id]
        assert db.query(Booking).count() == 1
        assert booking_service.get_booking(first.id, client_user).status == "pending"

    def test_adjacent_bookings_do_not_overlap(
        self, booking_service, client_user, second_client, trainer, monday_rule, monday
    ):
        booking_service.create_booking(client_user, request(trainer, monday, time(10), time(11)))
        second = booking_service.create_booking(
            second_client, request(trainer, monday, time(11), time(12))
        )
        assert second.status == "pending"

    def test_cancelled_booking_frees_interval(
        self, booking_service, client_user, second_client, trainer, monday_rule, monday
    ):
        first = booking_service.create_booking(
            client_user, request(trainer, monday, time(10), time(11))
        )
        booking_service.cancel_booking(first.id, client_user)

        again = booking_service.create_booking(
            second_client, request(trainer, monday, time(10), time(11))
        )
        assert again.status == "pending"

    def test_booking_in_past_rejected(
        self, booking_service, client_user, trainer, monday_rule, monday
    ):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(
                client_user,
                request(trainer, monday, time(10), time(11)),
                now=utc(monday, 10, 30),
            )
        assert exc_info.value.code == "BOOKING_IN_PAST"

    def test_end_before_start_rejected(self, booking_service, client_user, trainer, monday):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(
                client_user, request(trainer, monday, time(11), time(10))
            )
        assert exc_info.value.code == "INVALID_TIME_RANGE"

    def test_spanning_midnight_rejected(self, booking_service, client_user, trainer, monday):
        data = BookingCreate(
            trainer_id=trainer.id,
            start_time=datetime.combine(monday, time(23)),
            end_time=datetime.combine(monday + timedelta(days=1), time(1)),
            title="Late session",
        )
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(client_user, data)
        assert exc_info.value.code == "SPANS_MULTIPLE_DAYS"

    def test_trainers_cannot_book(
        self, booking_service, other_trainer, trainer, monday_rule, monday
    ):
        with pytest.raises(ForbiddenException):
            booking_service.create_booking(
                other_trainer, request(trainer, monday, time(10), time(11))
            )

    def test_inactive_client_cannot_book(
        self, db, booking_service, client_user, trainer, monday_rule, monday
    ):
        client_user.is_active = False
        db.commit()

        with pytest.raises(ForbiddenException):
            booking_service.create_booking(
                client_user, request(trainer, monday, time(10), time(11))
            )

    def test_unknown_trainer(self, booking_service, client_user, second_client, monday):
        with pytest.raises(NotFoundException):
            booking_service.create_booking(
                client_user, request(second_client, monday, time(10), time(11))
            )

    def test_degraded_availability_refuses_booking(
        self, booking_service, client_user, trainer, monday_rule, monday, monkeypatch
    ):
        monkeypatch.setattr(
            booking_service.resolver,
            "resolve",
            lambda trainer_id, on_date: ResolvedAvailability(
                trainer_id=trainer_id, date=on_date, degraded=True
            ),
        )

        with pytest.raises(TransientStoreException):
            booking_service.create_booking(
                client_user, request(trainer, monday, time(10), time(11))
            )

    def test_notification_failure_does_not_fail_booking(
        self, db, booking_service, client_user, trainer, monday_rule, monday, monkeypatch
    ):
        def broken_create(**kwargs):
            raise RepositoryException("notifications unavailable")

        monkeypatch.setattr(
            booking_service.notification_service.repository, "create", broken_create
        )

        booking = booking_service.create_booking(
            client_user, request(trainer, monday, time(10), time(11))
        )
        assert db.query(Booking).filter_by(id=booking.id).count() == 1
        assert db.query(Notification).count() == 0

    def test_auto_confirm_trainer(
        self, db, booking_service, client_user, auto_confirm_trainer, monday_rule, monday
    ):
        booking = booking_service.create_booking(
            client_user, request(auto_confirm_trainer, monday, time(10), time(11))
        )

        assert booking.status == BookingStatus.CONFIRMED.value
        assert booking.version == 2
        client_notifications = db.query(Notification).filter_by(user_id=client_user.id).all()
        assert [n.type for n in client_notifications] == [NOTIFICATION_BOOKING_CONFIRMED]


class TestReadBookings:
    def test_participants_can_read(self, booking_service, pending_booking, client_user, trainer):
        assert booking_service.get_booking(pending_booking.id, client_user).id == pending_booking.id
        assert booking_service.get_booking(pending_booking.id, trainer).id == pending_booking.id

    def test_others_get_not_found(self, booking_service, pending_booking, second_client):
        with pytest.raises(NotFoundException):
            booking_service.get_booking(pending_booking.id, second_client)

    def test_list_by_role(self, booking_service, pending_booking, client_user, trainer):
        assert [b.id for b in booking_service.list_bookings(client_user)] == [pending_booking.id]
        assert booking_service.list_bookings(client_user, role="trainer") == []
        assert [b.id for b in booking_service.list_bookings(trainer, role="trainer")] == [
            pending_booking.id
        ]

    def test_list_by_status(self, booking_service, pending_booking, client_user):
        assert booking_service.list_bookings(client_user, status="confirmed") == []
        assert len(booking_service.list_bookings(client_user, status="pending")) == 1

    def test_list_sorted_by_start(
        self, booking_service, pending_booking, client_user, trainer, monday
    ):
        earlier = booking_service.create_booking(
            client_user, request(trainer, monday, time(9), time(10))
        )
        ids = [b.id for b in booking_service.list_bookings(client_user)]
        assert ids == [earlier.id, pending_booking.id]

    def test_unknown_filters_rejected(self, booking_service, client_user):
        with pytest.raises(ValidationException):
            booking_service.list_bookings(client_user, status="archived")
        with pytest.raises(ValidationException):
            booking_service.list_bookings(client_user, role="admin")


class TestConfirmAndReject:
    def test_trainer_confirms(self, db, booking_service, pending_booking, trainer, client_user):
        booking = booking_service.confirm_booking(pending_booking.id, trainer)

        assert booking.status == BookingStatus.CONFIRMED.value
        assert booking.version == 2
        types = [n.type for n in db.query(Notification).filter_by(user_id=client_user.id)]
        assert types == [NOTIFICATION_BOOKING_CONFIRMED]

    def test_client_cannot_confirm(self, booking_service, pending_booking, client_user):
        with pytest.raises(ForbiddenException):
            booking_service.confirm_booking(pending_booking.id, client_user)

    def test_other_trainer_cannot_confirm(self, booking_service, pending_booking, other_trainer):
        with pytest.raises(ForbiddenException):
            booking_service.confirm_booking(pending_booking.id, other_trainer)

    def test_cannot_confirm_started_session(
        self, booking_service, pending_booking, trainer, monday
    ):
        with pytest.raises(BusinessRuleException) as exc_info:
            booking_service.confirm_booking(pending_booking.id, trainer, now=utc(monday, 10, 5))
        assert exc_info.value.code == "SESSION_STARTED"

    def test_trainer_rejects_with_reason(
        self, db, booking_service, pending_booking, trainer, client_user
    ):
        booking = booking_service.reject_booking(pending_booking.id, trainer, "Fully booked")

        assert booking.status == BookingStatus.REJECTED.value
        assert booking.cancellation_reason == "Fully booked"
        notification = db.query(Notification).filter_by(user_id=client_user.id).one()
        assert notification.type == NOTIFICATION_BOOKING_REJECTED
        assert "Fully booked" in notification.content

    def test_stale_version_is_a_conflict(self, booking_service, pending_booking, trainer):
        booking_service.confirm_booking(pending_booking.id, trainer, expected_version=1)

        with pytest.raises(ConcurrentModificationException) as exc_info:
            booking_service.cancel_booking(pending_booking.id, trainer, expected_version=1)
        assert exc_info.value.details["current_version"] == 2

    def test_matching_version_succeeds(self, booking_service, pending_booking, trainer):
        booking = booking_service.confirm_booking(pending_booking.id, trainer, expected_version=1)
        cancelled = booking_service.cancel_booking(booking.id, trainer, expected_version=2)
        assert cancelled.version == 3


class TestLifecycleLegality:
    def test_confirmed_cannot_be_rejected(self, booking_service, pending_booking, trainer):
        booking_service.confirm_booking(pending_booking.id, trainer)

        with pytest.raises(InvalidStateTransitionException):
            booking_service.reject_booking(pending_booking.id, trainer)

    @pytest.mark.parametrize("terminal", ["rejected", "cancelled"])
    def test_no_transition_from_terminal_state(
        self, booking_service, pending_booking, trainer, client_user, terminal
    ):
        if terminal == "rejected":
            booking_service.reject_booking(pending_booking.id, trainer)
        else:
            booking_service.cancel_booking(pending_booking.id, client_user)

        with pytest.raises(InvalidStateTransitionException):
            booking_service.confirm_booking(pending_booking.id, trainer)
        with pytest.raises(InvalidStateTransitionException):
            booking_service.reject_booking(pending_booking.id, trainer)
        with pytest.raises(InvalidStateTransitionException):
            booking_service.cancel_booking(pending_booking.id, client_user)

        assert booking_service.get_booking(pending_booking.id, trainer).status == terminal

    def test_lost_race_reported_as_invalid_transition(
        self, db, booking_service, pending_booking, trainer
    ):
        # Another writer rejected the booking after we loaded it
        booking_service.repository.transition_status(
            pending_booking.id,
            from_statuses=["pending"],
            to_status="rejected",
        )
        db.commit()

        with pytest.raises(InvalidStateTransitionException):
            booking_service._apply_transition(pending_booking.id, "confirmed")


class TestCancelBooking:
    def test_client_cancels_and_trainer_is_told(
        self, db, booking_service, pending_booking, client_user, trainer, monday
    ):
        now = utc(monday, 8)
        booking = booking_service.cancel_booking(
            pending_booking.id, client_user, "schedule conflict", now=now
        )

        assert booking.status == BookingStatus.CANCELLED.value
        assert booking.cancellation_reason == "schedule conflict"
        assert booking.cancelled_by_id == client_user.id
        assert booking.cancellation_date == now

        notifications = NotificationRepository(db).list_by_reference(
            BOOKING_REFERENCE_TYPE, pending_booking.id
        )
        # The original request notification is retracted
        assert [(n.user_id, n.type) for n in notifications] == [
            (trainer.id, NOTIFICATION_BOOKING_CANCELLED)
        ]

    def test_trainer_cancels_confirmed_booking(
        self, db, booking_service, pending_booking, trainer, client_user
    ):
        booking_service.confirm_booking(pending_booking.id, trainer)
        booking = booking_service.cancel_booking(pending_booking.id, trainer)

        assert booking.status == BookingStatus.CANCELLED.value
        notifications = NotificationRepository(db).list_by_reference(
            BOOKING_REFERENCE_TYPE, pending_booking.id
        )
        assert [(n.user_id, n.type) for n in notifications] == [
            (client_user.id, NOTIFICATION_BOOKING_CANCELLED)
        ]

    def test_outsiders_cannot_cancel(self, booking_service, pending_booking, second_client):
        with pytest.raises(ForbiddenException):
            booking_service.cancel_booking(pending_booking.id, second_client)

    def test_cannot_cancel_ended_session(
        self, booking_service, pending_booking, client_user, monday
    ):
        with pytest.raises(BusinessRuleException) as exc_info:
            booking_service.cancel_booking(pending_booking.id, client_user, now=utc(monday, 11))
        assert exc_info.value.code == "SESSION_ENDED"


class TestEndToEnd:
    def test_book_confirm_cancel_rebook(
        self,
        slot_service,
        booking_service,
        client_user,
        second_client,
        trainer,
        monday_rule,
        monday,
    ):
        listing = slot_service.list_available_slots(trainer.id, monday)
        assert [(s.start.hour, s.end.hour) for s in listing.slots] == [(9, 10), (10, 11), (11, 12)]

        booking = booking_service.create_booking(
            client_user, request(trainer, monday, time(10), time(11))
        )
        assert booking.status == "pending"
        listing = slot_service.list_available_slots(trainer.id, monday)
        assert [s.start.hour for s in listing.slots] == [9, 11]

        with pytest.raises(OverlapsExistingBookingException):
            booking_service.create_booking(
                second_client, request(trainer, monday, time(10, 30), time(11, 30))
            )

        assert booking_service.confirm_booking(booking.id, trainer).status == "confirmed"
        cancelled = booking_service.cancel_booking(booking.id, client_user, "schedule conflict")
        assert cancelled.status == "cancelled"

        free = [s.start.hour for s in slot_service.list_available_slots(trainer.id, monday).slots]
        assert free == [9, 10, 11]


class TestServiceMetrics:
    def test_measured_operations_are_recorded(self, booking_service, pending_booking, client_user):
        booking_service.get_booking(pending_booking.id, client_user)

        metrics = booking_service.get_metrics()
        assert metrics["get_booking"]["count"] >= 1
        assert metrics["create_booking"]["success_rate"] > 0
