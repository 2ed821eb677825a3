# backend/marketplace/services/slots/__init__.py
"""
Slots calculation module.

Schedule template → candidate slots → conflict filter → availability reports.
Slot locks serialize booking creation per (provider, date, minute).
"""

from .config import BookingConfig, get_booking_config
from .schedule import DayRule, ScheduleTemplate, parse_template, validate_template
from .calculator import generate_slots
from .conflicts import filter_available
from .availability import (
    AvailabilityStatus,
    NextSlot,
    StatusTag,
    available_slots,
    next_available,
    status_for_date,
    weekly_overview,
)
from .locks import LocalSlotLocks, RedisSlotLocks, build_slot_locks

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "DayRule",
    "ScheduleTemplate",
    "parse_template",
    "validate_template",
    "generate_slots",
    "filter_available",
    "AvailabilityStatus",
    "NextSlot",
    "StatusTag",
    "available_slots",
    "next_available",
    "status_for_date",
    "weekly_overview",
    "LocalSlotLocks",
    "RedisSlotLocks",
    "build_slot_locks",
]
