# backend/tests/conftest.py
"""
Pytest configuration for FitBook.

Every test gets a fresh in-memory SQLite database. The application engine
is pointed at SQLite too, before any fitbook import, so nothing can reach a
real database by accident.
"""

import os

# Set the environment BEFORE any fitbook import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("TEST_DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)
os.environ["EXCEPTION_STORE_MODE"] = "database"
os.environ["DEFAULT_TIMEZONE"] = "UTC"

from datetime import date, time, timedelta

from fastapi.testclient import TestClient
import pytest
from redis.exceptions import RedisError
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fitbook.database import get_db
from fitbook.api.dependencies.services import (
    get_cache_service_dep,
    get_exception_store_available,
)
from fitbook.auth import create_access_token
from fitbook.database import Base
from fitbook.domain.availability import weekday_index
from fitbook.main import app
from fitbook.models.availability import AvailabilityRule
from fitbook.models.service import Service, TrainerSettings
from fitbook.models.user import User, UserRole
from fitbook.services.availability_resolver import AvailabilityResolver
from fitbook.services.availability_service import AvailabilityService
from fitbook.services.booking_service import BookingService
from fitbook.services.cache_service import CacheService
from fitbook.services.exception_manager import ExceptionManager
from fitbook.services.notification_service import NotificationService
from fitbook.services.slot_service import SlotService
from fitbook.services.trainer_service import TrainerService


@pytest.fixture(scope="function")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine):
    """Create a new database session for each test."""
    TestSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestSessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def cache() -> CacheService:
    """In-memory cache, never Redis."""
    return CacheService(use_redis=False)


class FlakyRedis:
    """
    Dict-backed stand-in for the Redis list commands the cache uses.

    ``fail_next(n)`` makes the next ``n`` calls raise RedisError.
    """

    def __init__(self):
        self.lists = {}
        self._failures = 0

    def fail_next(self, count: int = 1) -> None:
        self._failures = count

    def _maybe_fail(self):
        if self._failures:
            self._failures -= 1
            raise RedisError("connection reset by peer")

    def rpush(self, key, *values):
        self._maybe_fail()
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    def lrange(self, key, start, end):
        self._maybe_fail()
        items = self.lists.get(key, [])
        return list(items[start:] if end == -1 else items[start : end + 1])

    def llen(self, key):
        self._maybe_fail()
        return len(self.lists.get(key, []))


@pytest.fixture
def flaky_redis() -> FlakyRedis:
    return FlakyRedis()


@pytest.fixture
def redis_cache(flaky_redis: FlakyRedis) -> CacheService:
    """Cache on the Redis code path, backed by ``flaky_redis``."""
    return CacheService(flaky_redis)


def _make_user(db: Session, email: str, full_name: str, role: UserRole, **extra) -> User:
    user = User(email=email, full_name=full_name, role=role.value, is_active=True, **extra)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def trainer(db: Session) -> User:
    return _make_user(db, "trainer@example.com", "Tara Trainer", UserRole.TRAINER)


@pytest.fixture
def other_trainer(db: Session) -> User:
    return _make_user(db, "trainer.two@example.com", "Theo Trainer", UserRole.TRAINER)


@pytest.fixture
def client_user(db: Session) -> User:
    return _make_user(db, "client@example.com", "Cora Client", UserRole.CLIENT)


@pytest.fixture
def second_client(db: Session) -> User:
    return _make_user(db, "client.two@example.com", "Cal Client", UserRole.CLIENT)


@pytest.fixture
def future_weekday():
    """Return a future date on ``day_of_week`` (0=Sunday), at least a week out."""

    def _future_weekday(day_of_week: int, weeks_ahead: int = 1) -> date:
        start = date.today() + timedelta(days=7 * weeks_ahead)
        return start + timedelta(days=(day_of_week - weekday_index(start)) % 7)

    return _future_weekday


@pytest.fixture
def monday(future_weekday) -> date:
    return future_weekday(1)


@pytest.fixture
def make_rule(db: Session, trainer: User):
    """Insert an availability rule for ``trainer`` directly."""

    def _make_rule(
        day_of_week: int, start: time, end: time, *, owner: User = trainer, **extra
    ) -> AvailabilityRule:
        rule = AvailabilityRule(
            trainer_id=owner.id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            is_recurring=extra.pop("is_recurring", True),
            **extra,
        )
        db.add(rule)
        db.commit()
        return rule

    return _make_rule


@pytest.fixture
def monday_rule(make_rule) -> AvailabilityRule:
    """Trainer works Mondays 09:00-12:00."""
    return make_rule(1, time(9, 0), time(12, 0))


@pytest.fixture
def trainer_service_row(db: Session, trainer: User) -> Service:
    service = Service(trainer_id=trainer.id, name="Strength Session", duration_minutes=60, price=50)
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def auto_confirm_trainer(db: Session, trainer: User) -> User:
    db.add(TrainerSettings(trainer_id=trainer.id, confirmation_mode="auto", timezone="UTC"))
    db.commit()
    return trainer


# ============================================================================
# Services wired the way the API wires them
# ============================================================================


@pytest.fixture
def exception_manager(db: Session, cache: CacheService) -> ExceptionManager:
    return ExceptionManager(db, cache, exception_store_available=True)


@pytest.fixture
def trainer_service(db: Session) -> TrainerService:
    return TrainerService(db)


@pytest.fixture
def notification_service(db: Session) -> NotificationService:
    return NotificationService(db)


@pytest.fixture
def resolver(db: Session, exception_manager: ExceptionManager) -> AvailabilityResolver:
    return AvailabilityResolver(db, exception_manager)


@pytest.fixture
def availability_service(db: Session, exception_manager: ExceptionManager) -> AvailabilityService:
    return AvailabilityService(db, exception_manager)


@pytest.fixture
def slot_service(db: Session, resolver, trainer_service) -> SlotService:
    return SlotService(db, resolver, trainer_service)


@pytest.fixture
def booking_service(db: Session, resolver, trainer_service, notification_service) -> BookingService:
    return BookingService(db, resolver, trainer_service, notification_service)


# ============================================================================
# HTTP client
# ============================================================================


@pytest.fixture
def client(db: Session, cache: CacheService):
    """Create a test client sharing the test session."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_service_dep] = lambda: cache
    app.dependency_overrides[get_exception_store_available] = lambda: True

    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def auth_headers_for():
    def _auth_headers_for(user: User) -> dict:
        token = create_access_token(data={"sub": user.id})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers_for


@pytest.fixture
def trainer_headers(trainer: User, auth_headers_for) -> dict:
    return auth_headers_for(trainer)


@pytest.fixture
def client_headers(client_user: User, auth_headers_for) -> dict:
    return auth_headers_for(client_user)


@pytest.fixture
def second_client_headers(second_client: User, auth_headers_for) -> dict:
    return auth_headers_for(second_client)
