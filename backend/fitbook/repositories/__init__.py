"""
Repository layer for FitBook.

Repositories own all SQLAlchemy queries; services own transactions.
"""

from .availability_repository import AvailabilityExceptionRepository, AvailabilityRuleRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .notification_repository import NotificationRepository
from .trainer_repository import ServiceRepository, TrainerSettingsRepository, UserRepository

__all__ = [
    "AvailabilityExceptionRepository",
    "AvailabilityRuleRepository",
    "BaseRepository",
    "BookingRepository",
    "NotificationRepository",
    "RepositoryFactory",
    "ServiceRepository",
    "TrainerSettingsRepository",
    "UserRepository",
]
