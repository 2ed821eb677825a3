# backend/marketplace/errors.py
"""
Domain errors.

Routers translate these into HTTP responses:
  ValidationError      → 400
  PermissionDeniedError → 403
  NotFoundError        → 404
  ConflictError        → 409
"""

from enum import Enum


class BookingEngineError(Exception):
    """Base class for availability/booking errors."""


class ValidationError(BookingEngineError):
    """Malformed input. Never retried."""


class InvalidScheduleError(ValidationError):
    """Schedule template fails validation."""


class InvalidTransitionError(ValidationError):
    """Booking status change not allowed by the state machine."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move booking from '{current}' to '{requested}'")


class NotFoundError(BookingEngineError):
    """Provider or booking does not exist."""


class PermissionDeniedError(BookingEngineError):
    """Caller does not own the booking it tries to change."""


class ConflictReason(str, Enum):
    SLOT_TAKEN = "slot_taken"
    CONTENTION_TIMEOUT = "contention_timeout"


class ConflictError(BookingEngineError):
    """
    Booking creation lost a race or could not serialize in time.

    slot_taken         → pick another slot
    contention_timeout → caller may retry once with a fresh availability read
    """

    def __init__(self, reason: ConflictReason, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason.value)
