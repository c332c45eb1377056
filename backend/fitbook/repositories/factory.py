# backend/fitbook/repositories/factory.py
"""
Repository Factory for FitBook

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import (
        AvailabilityExceptionRepository,
        AvailabilityRuleRepository,
    )
    from .booking_repository import BookingRepository
    from .notification_repository import NotificationRepository
    from .trainer_repository import (
        ServiceRepository,
        TrainerSettingsRepository,
        UserRepository,
    )


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_availability_rule_repository(db: Session) -> "AvailabilityRuleRepository":
        """Create repository for availability rules."""
        from .availability_repository import AvailabilityRuleRepository

        return AvailabilityRuleRepository(db)

    @staticmethod
    def create_availability_exception_repository(
        db: Session,
    ) -> "AvailabilityExceptionRepository":
        """Create repository for availability exceptions."""
        from .availability_repository import AvailabilityExceptionRepository

        return AvailabilityExceptionRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_notification_repository(db: Session) -> "NotificationRepository":
        """Create repository for in-app notifications."""
        from .notification_repository import NotificationRepository

        return NotificationRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        """Create repository for user lookups."""
        from .trainer_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_service_repository(db: Session) -> "ServiceRepository":
        """Create repository for the trainer service catalogue."""
        from .trainer_repository import ServiceRepository

        return ServiceRepository(db)

    @staticmethod
    def create_trainer_settings_repository(db: Session) -> "TrainerSettingsRepository":
        """Create repository for trainer booking settings."""
        from .trainer_repository import TrainerSettingsRepository

        return TrainerSettingsRepository(db)
