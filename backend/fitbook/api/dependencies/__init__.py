# backend/fitbook/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_user, require_trainer
from ...database import get_db
from .services import (
    get_availability_resolver,
    get_availability_service,
    get_booking_service,
    get_exception_manager,
    get_notification_service,
    get_slot_service,
    get_trainer_service,
)

__all__ = [
    # Auth
    "get_current_user",
    "require_trainer",
    # Database
    "get_db",
    # Services
    "get_availability_resolver",
    "get_availability_service",
    "get_booking_service",
    "get_exception_manager",
    "get_notification_service",
    "get_slot_service",
    "get_trainer_service",
]
