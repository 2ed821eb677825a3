# backend/marketplace/services/slots/config.py
"""
Booking configuration for slots calculation and the booking guard.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the availability/booking engine.

    Attributes:
        slot_duration_minutes: Default slot length for availability queries
        horizon_days: How many days ahead next-available lookups scan
        max_horizon_days: Largest horizon a caller may request
        weekly_days: Length of the weekly overview
        lock_ttl_ms: Lifetime of a slot lock (guards against crashed holders)
        max_attempts: Lock acquisition attempts before contention_timeout
        backoff_base_seconds: First retry delay, doubled per attempt
        backoff_max_seconds: Upper bound for a single retry delay
    """
    slot_duration_minutes: int = 60
    horizon_days: int = 14
    max_horizon_days: int = 366
    weekly_days: int = 7
    lock_ttl_ms: int = 5000
    max_attempts: int = 4
    backoff_base_seconds: float = 0.05
    backoff_max_seconds: float = 0.5

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_duration_minutes <= 0:
            raise ValueError(f"slot_duration_minutes must be positive, got {self.slot_duration_minutes}")
        if self.horizon_days <= 0:
            raise ValueError(f"horizon_days must be positive, got {self.horizon_days}")
        if self.max_horizon_days < self.horizon_days:
            raise ValueError(
                f"max_horizon_days ({self.max_horizon_days}) must be at least horizon_days ({self.horizon_days})"
            )
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based)."""
        return min(self.backoff_base_seconds * (2 ** (attempt - 1)), self.backoff_max_seconds)


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minute of day."""
    hour, minute = value.strip().split(":")
    return int(hour) * 60 + int(minute)


def minutes_to_time_str(minutes: int) -> str:
    """Convert minute of day to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@lru_cache
def get_booking_config() -> BookingConfig:
    """
    Get booking configuration (singleton).

    Reads BOOKING_* overrides from the environment.
    """
    return BookingConfig(
        slot_duration_minutes=int(os.getenv("BOOKING_SLOT_DURATION_MINUTES", "60")),
        horizon_days=int(os.getenv("BOOKING_HORIZON_DAYS", "14")),
        max_attempts=int(os.getenv("BOOKING_MAX_ATTEMPTS", "4")),
    )
