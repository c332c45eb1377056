# backend/fitbook/services/cache_service.py
"""
Cache Service for FitBook

Key/value and append-only list store behind the trainer-scoped local
fallback for availability exceptions. Uses Redis when REDIS_URL is set
and reachable, otherwise a process-local dictionary. Values are stored as
JSON on both backends, so dates and times come back as ISO strings.

A circuit breaker sits in front of Redis: after repeated failures calls are
skipped for a while instead of waiting on socket timeouts. ``get`` and
``set`` degrade to a miss; the list operations raise instead, so an
unreadable list is never mistaken for an empty one.
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
import json
import logging
import threading
import time as clock
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar, Union

import redis
from redis import Redis
from redis.exceptions import RedisError

from ..core.config import settings
from ..core.exceptions import TransientRepositoryException
from .base import BaseService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheUnavailableError(RedisError):
    """The circuit is open, so a strict cache operation cannot be answered."""


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Skip calls to a failing backend until ``recovery_timeout`` has passed.

    While closed, failures are re-raised to the caller. Once
    ``failure_threshold`` consecutive failures accumulate the circuit opens
    and ``call`` returns None without touching the backend. After the
    timeout one trial call is let through (half open); success closes the
    circuit again.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        expected_exception: type[BaseException] = RedisError,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception

        self._failures = 0
        self._opened_at: Optional[float] = None
        self._state = CircuitState.CLOSED
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            if (
                self._state is CircuitState.OPEN
                and self._opened_at is not None
                and clock.monotonic() - self._opened_at >= self.recovery_timeout
            ):
                self._state = CircuitState.HALF_OPEN
            return self._state

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> Optional[T]:
        if self.state is CircuitState.OPEN:
            logger.warning(f"Circuit open, skipping {func.__name__}")
            return None

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._record_failure()
            if self.state is CircuitState.CLOSED:
                raise
            return None

        self._record_success()
        return result

    def call_or_raise(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Like ``call``, but an open circuit or a failure always raises."""
        if self.state is CircuitState.OPEN:
            raise CacheUnavailableError(f"Circuit open, refusing {func.__name__}")

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def _record_success(self) -> None:
        with self._lock:
            self._failures = 0
            if self._state is CircuitState.HALF_OPEN:
                logger.info("Cache backend recovered, circuit closed")
            self._state = CircuitState.CLOSED
            self._opened_at = None

    def _record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._failures >= self.failure_threshold:
                if self._state is not CircuitState.OPEN:
                    logger.warning(f"Circuit opened after {self._failures} cache failures")
                self._state = CircuitState.OPEN
                self._opened_at = clock.monotonic()


class CacheKeyBuilder:
    """Colon-separated cache keys with short prefixes for known namespaces."""

    PREFIXES = {
        "availability": "avail",
        "exceptions": "exc",
        "trainer": "trn",
    }

    @staticmethod
    def build(*parts: Union[str, int, date, time]) -> str:
        """
        ``build("exceptions", "local", trainer_id)`` -> ``"exc:local:<trainer_id>"``
        """
        rendered = [
            part.isoformat() if isinstance(part, (date, datetime, time)) else str(part)
            for part in parts
        ]
        if rendered and rendered[0] in CacheKeyBuilder.PREFIXES:
            rendered[0] = CacheKeyBuilder.PREFIXES[rendered[0]]
        return ":".join(rendered)


class CacheService(BaseService):
    """
    JSON key/value cache over Redis or process memory.

    ``tier`` picks a TTL when none is given; the ``persistent`` tier never
    expires, which is what the exception fallback uses.
    """

    TTL_TIERS: Dict[str, Optional[int]] = {
        "hot": 300,
        "warm": 3600,
        "static": 604800,
        "persistent": None,
    }

    def __init__(self, redis_client: Optional[Redis] = None, *, use_redis: bool = True):
        super().__init__(None)
        self.logger = logging.getLogger(__name__)
        self.circuit_breaker = CircuitBreaker(expected_exception=RedisError)
        self.key_builder = CacheKeyBuilder()

        self._memory_cache: Dict[str, Any] = {}
        self._memory_expiry: Dict[str, Optional[datetime]] = {}
        self._memory_lists: Dict[str, List[Any]] = {}
        self._memory_lock = threading.Lock()
        self._stats: Dict[str, int] = {"hits": 0, "misses": 0, "sets": 0, "errors": 0}

        self.redis: Optional[Redis] = redis_client
        if self.redis is None and use_redis:
            self.redis = self._connect_redis()

    @staticmethod
    def _connect_redis() -> Optional[Redis]:
        if not settings.redis_url:
            logger.info("REDIS_URL not set, using in-memory cache")
            return None
        try:
            client = redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            client.ping()
        except (RedisError, ConnectionError) as e:
            logger.warning(f"Redis unavailable ({e}), using in-memory cache")
            return None
        logger.info("Connected to Redis")
        return client

    @property
    def backend(self) -> str:
        return "redis" if self.redis is not None else "memory"

    def _record_error(self, action: str, key: str, exc: RedisError) -> None:
        logger.error(f"Cache {action} failed for key {key}: {exc}")
        self._stats["errors"] += 1

    @BaseService.measure_operation("cache_get")
    def get(self, key: str) -> Optional[Any]:
        client = self.redis
        if client is None:
            value = self._memory_get(key)
        else:
            try:
                raw = self.circuit_breaker.call(client.get, key)
            except RedisError as e:
                self._record_error("get", key, e)
                return None
            value = json.loads(raw) if raw is not None else None

        self._stats["hits" if value is not None else "misses"] += 1
        return value

    @BaseService.measure_operation("cache_set")
    def set(self, key: str, value: Any, ttl: Optional[int] = None, tier: str = "warm") -> bool:
        if ttl is None:
            ttl = self.TTL_TIERS.get(tier, self.TTL_TIERS["warm"])
        serialized = json.dumps(value, default=str)

        client = self.redis
        if client is None:
            self._memory_set(key, serialized, ttl)
            stored = True
        else:

            def _write() -> bool:
                if ttl is None:
                    client.set(key, serialized)
                else:
                    client.setex(key, ttl, serialized)
                return True

            try:
                stored = bool(self.circuit_breaker.call(_write))
            except RedisError as e:
                self._record_error("set", key, e)
                stored = False

        if stored:
            self._stats["sets"] += 1
        return stored

    def _strict(self, action: str, key: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return self.circuit_breaker.call_or_raise(func, *args)
        except RedisError as e:
            self._record_error(action, key, e)
            raise TransientRepositoryException(f"Cache {action} failed for key {key}: {e}") from e

    @BaseService.measure_operation("cache_list_items")
    def list_items(self, key: str) -> List[Any]:
        """
        Every item appended under ``key``, oldest first.

        Unlike ``get`` a backend failure is never reported as a missing key:
        it raises TransientRepositoryException.
        """
        client = self.redis
        if client is None:
            with self._memory_lock:
                return list(self._memory_lists.get(key, []))
        raw = self._strict("read", key, client.lrange, key, 0, -1)
        return [json.loads(item) for item in raw]

    @BaseService.measure_operation("cache_append_items")
    def append_items(self, key: str, items: Sequence[Any]) -> int:
        """
        Append ``items`` under ``key`` without expiry and return the new length.

        Redis appends with RPUSH, so concurrent writers never overwrite each
        other. Failures raise TransientRepositoryException.
        """
        serialized = [json.dumps(item, default=str) for item in items]
        client = self.redis
        if client is None:
            with self._memory_lock:
                bucket = self._memory_lists.setdefault(key, [])
                bucket.extend(json.loads(item) for item in serialized)
                length = len(bucket)
        elif not serialized:
            length = int(self._strict("read", key, client.llen, key))
        else:
            length = int(self._strict("append", key, client.rpush, key, *serialized))
        self._stats["sets"] += 1
        return length

    def _memory_set(self, key: str, serialized: str, ttl: Optional[int]) -> None:
        with self._memory_lock:
            # Keep the JSON round-tripped value so both backends return the same shapes
            self._memory_cache[key] = json.loads(serialized)
            self._memory_expiry[key] = (
                datetime.now() + timedelta(seconds=ttl) if ttl is not None else None
            )

    def _memory_get(self, key: str) -> Optional[Any]:
        with self._memory_lock:
            if key not in self._memory_cache:
                return None
            expires_at = self._memory_expiry.get(key)
            if expires_at is not None and datetime.now() >= expires_at:
                del self._memory_cache[key]
                del self._memory_expiry[key]
                return None
            return self._memory_cache[key]

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)


def get_cache_service() -> CacheService:
    """
    Build a cache service for the configured backend.

    Callers that need shared state across requests hold on to one instance
    (see ``api.dependencies.services.get_cache_service_singleton``).
    """
    return CacheService()
