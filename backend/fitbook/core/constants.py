# backend/fitbook/core/constants.py
"""
Application-wide constants for FitBook.
"""

BRAND_NAME = "FitBook"

API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Trainer availability, slot resolution and booking lifecycle for FitBook."
API_VERSION = "1.0.0"

# Weekday indexing used across the API and the store: 0=Sunday .. 6=Saturday
DAYS_OF_WEEK = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")

# Notification reference type for booking notifications
BOOKING_REFERENCE_TYPE = "booking"

# Notification types
NOTIFICATION_BOOKING_REQUESTED = "booking_requested"
NOTIFICATION_BOOKING_CONFIRMED = "booking_confirmed"
NOTIFICATION_BOOKING_REJECTED = "booking_rejected"
NOTIFICATION_BOOKING_CANCELLED = "booking_cancelled"

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"
