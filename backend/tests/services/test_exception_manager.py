# backend/tests/services/test_exception_manager.py
"""
Exception markers across the database and the local cache fallback.
"""

from datetime import time, timedelta

import pytest

from fitbook.core.exceptions import (
    NotFoundException,
    TransientRepositoryException,
    TransientStoreException,
    ValidationException,
)
from fitbook.models.availability import AvailabilityException
from fitbook.services.exception_manager import (
    ExceptionManager,
    ExceptionRecord,
    merge_exceptions,
)


class TestDatabaseStore:
    def test_add_exception_persists_row(self, db, exception_manager, trainer, monday_rule, monday):
        record = exception_manager.add_exception(
            trainer.id, monday, monday_rule.id, time(9), time(12)
        )

        row = db.query(AvailabilityException).filter_by(id=record.id).one()
        assert row.original_slot_id == monday_rule.id
        assert row.exception_date == monday
        assert row.day_of_week == 1

    def test_is_exception(self, exception_manager, trainer, monday_rule, monday):
        exception_manager.add_exception(trainer.id, monday, monday_rule.id)

        assert exception_manager.is_exception(trainer.id, monday_rule.id, monday)
        assert not exception_manager.is_exception(
            trainer.id, monday_rule.id, monday + timedelta(days=7)
        )

    def test_duplicates_are_stored_but_listed_once(
        self, db, exception_manager, trainer, monday_rule, monday
    ):
        exception_manager.add_exception(trainer.id, monday, monday_rule.id)
        exception_manager.add_exception(trainer.id, monday, monday_rule.id)

        assert db.query(AvailabilityException).count() == 2
        assert len(exception_manager.list_exceptions(trainer.id)) == 1

    def test_list_is_scoped_to_trainer(
        self, exception_manager, trainer, other_trainer, monday_rule, monday
    ):
        exception_manager.add_exception(trainer.id, monday, monday_rule.id)

        assert exception_manager.list_exceptions(other_trainer.id) == []

    def test_add_exceptions_with_no_records_is_a_no_op(self, exception_manager, trainer):
        assert exception_manager.add_exceptions(trainer.id, []) == []


class TestLocalFallback:
    def test_capability_absent_writes_to_local_cache(self, db, cache, trainer, monday_rule, monday):
        manager = ExceptionManager(db, cache, exception_store_available=False)

        record = manager.add_exception(trainer.id, monday, monday_rule.id)

        assert db.query(AvailabilityException).count() == 0
        assert record.created_at is not None
        assert [r.key for r in manager.list_exceptions(trainer.id)] == [(monday, monday_rule.id)]

    def test_local_markers_survive_a_new_manager(self, db, cache, trainer, monday_rule, monday):
        ExceptionManager(db, cache, exception_store_available=False).add_exception(
            trainer.id, monday, monday_rule.id
        )

        fresh = ExceptionManager(db, cache, exception_store_available=False)
        assert fresh.is_exception(trainer.id, monday_rule.id, monday)

    def test_missing_table_falls_back_on_write(
        self, db, engine, cache, trainer, monday_rule, monday
    ):
        db.commit()
        AvailabilityException.__table__.drop(bind=engine)
        manager = ExceptionManager(db, cache, exception_store_available=True)

        manager.add_exception(trainer.id, monday, monday_rule.id)

        assert manager.exception_store_available is False
        assert manager.is_exception(trainer.id, monday_rule.id, monday)

    def test_missing_table_falls_back_on_read(
        self, db, engine, cache, trainer, monday_rule, monday
    ):
        ExceptionManager(db, cache, exception_store_available=False).add_exception(
            trainer.id, monday, monday_rule.id
        )
        db.commit()
        AvailabilityException.__table__.drop(bind=engine)

        manager = ExceptionManager(db, cache, exception_store_available=True)
        records = manager.list_exceptions(trainer.id)

        assert [r.original_slot_id for r in records] == [monday_rule.id]
        assert manager.exception_store_available is False

    def test_reads_merge_both_stores(self, db, cache, trainer, monday_rule, monday):
        database_manager = ExceptionManager(db, cache, exception_store_available=True)
        local_manager = ExceptionManager(db, cache, exception_store_available=False)
        next_week = monday + timedelta(days=7)

        database_manager.add_exception(trainer.id, monday, monday_rule.id)
        local_manager.add_exception(trainer.id, monday, monday_rule.id)
        local_manager.add_exception(trainer.id, next_week, monday_rule.id)

        keys = [r.key for r in database_manager.list_exceptions(trainer.id)]
        assert keys == [(monday, monday_rule.id), (next_week, monday_rule.id)]


class TestLocalStoreFailures:
    @pytest.fixture
    def redis_manager(self, db, redis_cache):
        return ExceptionManager(db, redis_cache, exception_store_available=False)

    def test_failed_read_does_not_drop_earlier_markers(
        self, redis_manager, flaky_redis, trainer, make_rule, monday_rule, monday
    ):
        evening_rule = make_rule(1, time(17), time(19))
        redis_manager.add_exception(trainer.id, monday, monday_rule.id)

        flaky_redis.fail_next()
        with pytest.raises(TransientRepositoryException):
            redis_manager.list_exceptions(trainer.id)
        redis_manager.add_exception(trainer.id, monday, evening_rule.id)

        assert redis_manager.is_exception(trainer.id, monday_rule.id, monday)
        assert redis_manager.is_exception(trainer.id, evening_rule.id, monday)

    def test_failed_write_raises_and_keeps_existing_markers(
        self, redis_manager, flaky_redis, trainer, monday_rule, monday
    ):
        next_week = monday + timedelta(days=7)
        redis_manager.add_exception(trainer.id, monday, monday_rule.id)

        flaky_redis.fail_next()
        with pytest.raises(TransientStoreException):
            redis_manager.add_exception(trainer.id, next_week, monday_rule.id)

        keys = [r.key for r in redis_manager.list_exceptions(trainer.id)]
        assert keys == [(monday, monday_rule.id)]

    def test_staged_markers_follow_the_store(self, db, cache, trainer, monday_rule, monday):
        manager = ExceptionManager(db, cache, exception_store_available=True)
        record = ExceptionRecord(
            trainer_id=trainer.id, exception_date=monday, original_slot_id=monday_rule.id
        )

        manager.stage_exceptions(trainer.id, [record])
        db.rollback()

        assert db.query(AvailabilityException).count() == 0
        assert manager.list_exceptions(trainer.id) == []


class TestMergeExceptions:
    def test_first_source_wins_on_duplicate_key(self, monday):
        first = ExceptionRecord(trainer_id="T", exception_date=monday, original_slot_id="R")
        second = ExceptionRecord(trainer_id="T", exception_date=monday, original_slot_id="R")

        merged = merge_exceptions([first], [second])
        assert [r.id for r in merged] == [first.id]

    def test_cache_round_trip_keeps_times(self, monday):
        record = ExceptionRecord(
            trainer_id="T",
            exception_date=monday,
            original_slot_id="R",
            start_time=time(9, 30),
            end_time=time(10, 30),
        )
        assert ExceptionRecord.from_cache(record.to_cache()) == record


class TestDeleteOccurrence:
    def test_skips_only_that_occurrence(self, exception_manager, trainer, monday_rule, monday):
        record = exception_manager.delete_occurrence(trainer, monday_rule.id, monday)

        assert record.exception_date == monday
        assert record.start_time == time(9)
        assert exception_manager.is_exception(trainer.id, monday_rule.id, monday)
        assert not exception_manager.is_exception(
            trainer.id, monday_rule.id, monday + timedelta(days=7)
        )

    def test_rule_of_another_trainer_is_not_found(
        self, exception_manager, other_trainer, monday_rule, monday
    ):
        with pytest.raises(NotFoundException):
            exception_manager.delete_occurrence(other_trainer, monday_rule.id, monday)

    def test_wrong_weekday_rejected(self, exception_manager, trainer, monday_rule, monday):
        with pytest.raises(ValidationException) as exc_info:
            exception_manager.delete_occurrence(trainer, monday_rule.id, monday + timedelta(days=1))
        assert exc_info.value.code == "NO_OCCURRENCE_ON_DATE"

    def test_one_off_rule_rejected(self, exception_manager, trainer, make_rule, monday):
        rule = make_rule(1, time(9), time(10), is_recurring=False, specific_date=monday)

        with pytest.raises(ValidationException) as exc_info:
            exception_manager.delete_occurrence(trainer, rule.id, monday)
        assert exc_info.value.code == "NOT_RECURRING"
