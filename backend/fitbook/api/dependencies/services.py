# backend/fitbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Services that
collaborate share the request's session.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.config import settings
from ...database import engine, get_db, has_table
from ...models.availability import AVAILABILITY_EXCEPTIONS_TABLE
from ...services.availability_resolver import AvailabilityResolver
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.cache_service import CacheService, get_cache_service
from ...services.exception_manager import ExceptionManager
from ...services.notification_service import NotificationService
from ...services.slot_service import SlotService
from ...services.trainer_service import TrainerService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_cache_service_singleton() -> CacheService:
    """Get singleton cache service instance."""
    return get_cache_service()


def get_cache_service_dep() -> CacheService:
    """Get cache service instance for dependency injection."""
    return get_cache_service_singleton()


@lru_cache(maxsize=1)
def get_exception_store_capability() -> bool:
    """
    Whether availability exceptions are stored in the database.

    Decided once per process: forced by ``exception_store_mode`` or checked
    against the database. ``False`` routes exception writes to the local cache.
    """
    mode = settings.exception_store_mode
    if mode == "database":
        available = True
    elif mode == "local":
        available = False
    else:
        available = has_table(engine, AVAILABILITY_EXCEPTIONS_TABLE)

    logger.info(
        "Exception store capability resolved",
        extra={"event": "capability_check", "mode": mode, "database": available},
    )
    return available


def get_exception_store_available() -> bool:
    return get_exception_store_capability()


def get_exception_manager(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service_dep),
    exception_store_available: bool = Depends(get_exception_store_available),
) -> ExceptionManager:
    return ExceptionManager(db, cache, exception_store_available=exception_store_available)


def get_trainer_service(db: Session = Depends(get_db)) -> TrainerService:
    return TrainerService(db)


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def get_availability_resolver(
    db: Session = Depends(get_db),
    exception_manager: ExceptionManager = Depends(get_exception_manager),
) -> AvailabilityResolver:
    return AvailabilityResolver(db, exception_manager)


def get_availability_service(
    db: Session = Depends(get_db),
    exception_manager: ExceptionManager = Depends(get_exception_manager),
) -> AvailabilityService:
    return AvailabilityService(db, exception_manager)


def get_slot_service(
    db: Session = Depends(get_db),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
    trainer_service: TrainerService = Depends(get_trainer_service),
) -> SlotService:
    return SlotService(db, resolver, trainer_service)


def get_booking_service(
    db: Session = Depends(get_db),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
    trainer_service: TrainerService = Depends(get_trainer_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session
        resolver: Availability resolver used to validate requested windows
        trainer_service: Trainer, service and settings lookups
        notification_service: Booking notifications

    Returns:
        BookingService instance
    """
    return BookingService(db, resolver, trainer_service, notification_service)
