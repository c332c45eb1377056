# backend/fitbook/services/base.py
"""
Service layer foundation for FitBook.

Every service owns its transaction boundaries through ``transaction()``;
repositories below only flush. Store failures are translated here so the
routes see domain exceptions only:

    StoreUnavailableException   -> re-raised unchanged (callers fall back)
    TransientRepositoryException -> TransientStoreException (503, retryable)
    RepositoryException          -> ServiceException (500)
"""

from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    RepositoryException,
    ServiceException,
    StoreUnavailableException,
    TransientRepositoryException,
    TransientStoreException,
)
from ..database.session_utils import is_transient_db_error
from ..monitoring.prometheus_metrics import prometheus_metrics

if TYPE_CHECKING:
    from .cache_service import CacheService

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


@dataclass
class OperationStats:
    """In-process timing for one measured operation of one service class."""

    count: int = 0
    failures: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0

    def add(self, elapsed: float, success: bool) -> None:
        self.count += 1
        self.total_time += elapsed
        self.min_time = min(self.min_time, elapsed)
        self.max_time = max(self.max_time, elapsed)
        if not success:
            self.failures += 1

    def summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_time": self.total_time / self.count,
            "min_time": self.min_time,
            "max_time": self.max_time,
            "success_rate": (self.count - self.failures) / self.count,
            "failure_count": self.failures,
        }


class BaseService:
    """
    Common base for FitBook services.

    Subclasses get a session, an optional cache, a class-named logger and
    the ``measure_operation`` decorator feeding both Prometheus and the
    in-process stats returned by ``get_metrics``.
    """

    # service class name -> operation name -> stats
    _class_metrics: Dict[str, Dict[str, OperationStats]] = {}

    def __init__(self, db: Optional[Session], cache: Optional["CacheService"] = None):
        self.db = db
        self.cache = cache
        self.logger = logging.getLogger(self.__class__.__name__)

    def _rollback_and_translate(self, exc: Exception) -> Exception:
        """Roll back, then return the exception the caller should see."""
        assert self.db is not None
        self.db.rollback()

        if isinstance(exc, StoreUnavailableException):
            return exc
        if isinstance(exc, TransientRepositoryException) or (
            isinstance(exc, SQLAlchemyError) and is_transient_db_error(exc)
        ):
            self.logger.warning(f"Transient store failure, rolled back: {exc}")
            return TransientStoreException()
        if isinstance(exc, (RepositoryException, SQLAlchemyError)):
            self.logger.error(f"Transaction rolled back: {exc}")
            return ServiceException(f"Database operation failed: {exc}")
        self.logger.error(f"Transaction rolled back after unexpected error: {exc}")
        return exc

    @contextmanager
    def transaction(self) -> Iterator[Optional[Session]]:
        """
        Commit on clean exit, roll back and translate on error.

            with self.transaction():
                self.repository.create(...)
        """
        assert self.db is not None
        try:
            yield self.db
            self.db.commit()
        except Exception as exc:
            translated = self._rollback_and_translate(exc)
            if translated is exc:
                raise
            raise translated from exc

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method and record the outcome.

            @BaseService.measure_operation("create_booking")
            def create_booking(self, client, data): ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                error_type: Optional[str] = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as exc:
                    error_type = type(exc).__name__
                    raise
                finally:
                    elapsed = time.perf_counter() - started
                    self._record_metric(operation_name, elapsed, error_type is None)
                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning(
                            f"Slow operation: {operation_name} took {elapsed:.2f}s"
                        )
                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="error" if error_type else "success",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        per_class = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
        per_class.setdefault(operation, OperationStats()).add(elapsed, success)

    def get_metrics(self) -> Dict[str, Any]:
        """Per-operation count, timings and success rate for this service class."""
        per_class = BaseService._class_metrics.get(self.__class__.__name__, {})
        return {name: stats.summary() for name, stats in per_class.items() if stats.count}
