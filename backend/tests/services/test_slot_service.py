# backend/tests/services/test_slot_service.py
"""Slot listing over stored availability and bookings."""

from datetime import datetime, time, timedelta, timezone

import pytest

from fitbook.core.exceptions import NotFoundException, ValidationException
from fitbook.models.booking import Booking, BookingStatus
from fitbook.models.service import TrainerSettings
from fitbook.services.availability_resolver import ResolvedAvailability


def at(day, hour, minute=0):
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


def store_booking(db, trainer, client, day, start_hour, end_hour, status=BookingStatus.PENDING):
    booking = Booking(
        client_id=client.id,
        trainer_id=trainer.id,
        title="Session",
        start_time=at(day, start_hour),
        end_time=at(day, end_hour),
        status=status.value,
        version=1,
    )
    db.add(booking)
    db.commit()
    return booking


class TestListAvailableSlots:
    def test_tiles_window_into_hour_slots(self, slot_service, trainer, monday_rule, monday):
        listing = slot_service.list_available_slots(trainer.id, monday)

        assert listing.duration_minutes == 60
        assert listing.timezone == "UTC"
        assert [s.start for s in listing.slots] == [at(monday, 9), at(monday, 10), at(monday, 11)]

    def test_active_bookings_remove_slots(
        self, db, slot_service, trainer, client_user, monday_rule, monday
    ):
        store_booking(db, trainer, client_user, monday, 10, 11)

        listing = slot_service.list_available_slots(trainer.id, monday)
        assert [s.start.hour for s in listing.slots] == [9, 11]

    def test_cancelled_bookings_free_their_slot(
        self, db, slot_service, trainer, client_user, monday_rule, monday
    ):
        store_booking(db, trainer, client_user, monday, 10, 11, status=BookingStatus.CANCELLED)

        listing = slot_service.list_available_slots(trainer.id, monday)
        assert [s.start.hour for s in listing.slots] == [9, 10, 11]

    def test_past_slots_removed(self, slot_service, trainer, monday_rule, monday):
        listing = slot_service.list_available_slots(trainer.id, monday, now=at(monday, 9, 30))
        assert [s.start.hour for s in listing.slots] == [10, 11]

    def test_service_duration_is_used(
        self, db, slot_service, trainer, trainer_service_row, make_rule, monday
    ):
        trainer_service_row.duration_minutes = 90
        db.commit()
        make_rule(1, time(14), time(17))

        listing = slot_service.list_available_slots(
            trainer.id, monday, service_id=trainer_service_row.id
        )
        # 09:00-12:00 and 14:00-17:00 each hold two 90 minute slots
        assert listing.duration_minutes == 90
        assert len(listing.slots) == 4

    def test_service_duration_overrides_explicit_duration(
        self, slot_service, trainer, trainer_service_row, monday_rule, monday
    ):
        listing = slot_service.list_available_slots(
            trainer.id, monday, duration_minutes=30, service_id=trainer_service_row.id
        )
        # Every listed slot must be bookable as the 60 minute service
        assert listing.duration_minutes == 60
        assert len(listing.slots) == 3
        assert all(slot.end - slot.start == timedelta(minutes=60) for slot in listing.slots)

    def test_explicit_duration_without_service(self, slot_service, trainer, monday_rule, monday):
        listing = slot_service.list_available_slots(trainer.id, monday, duration_minutes=30)
        assert len(listing.slots) == 6

    def test_duration_out_of_range(self, slot_service, trainer, monday):
        with pytest.raises(ValidationException):
            slot_service.list_available_slots(trainer.id, monday, duration_minutes=5)

    def test_unknown_service(self, slot_service, trainer, monday):
        with pytest.raises(NotFoundException):
            slot_service.list_available_slots(
                trainer.id, monday, service_id="01J00000000000000000000000"
            )

    def test_slots_follow_trainer_timezone(self, db, slot_service, trainer, monday_rule, monday):
        db.add(TrainerSettings(trainer_id=trainer.id, timezone="Europe/Berlin"))
        db.commit()

        listing = slot_service.list_available_slots(trainer.id, monday, now=at(monday, 0))

        assert listing.timezone == "Europe/Berlin"
        assert listing.slots[0].start.astimezone(timezone.utc).hour in (7, 8)
        assert listing.slots[0].start.hour == 9

    def test_degraded_resolution_is_reported(
        self, slot_service, trainer, monday_rule, monday, monkeypatch
    ):
        monkeypatch.setattr(
            slot_service.resolver,
            "resolve",
            lambda trainer_id, on_date: ResolvedAvailability(
                trainer_id=trainer_id, date=on_date, degraded=True
            ),
        )

        listing = slot_service.list_available_slots(trainer.id, monday)
        assert listing.degraded is True
        assert listing.slots == []
