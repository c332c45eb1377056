"""
Database models for FitBook.

This module exports all SQLAlchemy models used in the application:
- Users (trainers and clients)
- Availability rules and exceptions
- Bookings
- Trainer services and settings
- Notifications
"""

from .availability import AvailabilityException, AvailabilityRule
from .booking import Booking, BookingStatus
from .notification import Notification
from .service import ConfirmationMode, Service, TrainerSettings
from .user import User, UserRole

__all__ = [
    "AvailabilityException",
    "AvailabilityRule",
    "Booking",
    "BookingStatus",
    "ConfirmationMode",
    "Notification",
    "Service",
    "TrainerSettings",
    "User",
    "UserRole",
]
