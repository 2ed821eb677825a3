# backend/marketplace/services/slots/calculator.py
"""
Candidate slot generation.

A day's working window [start, end) is cut into fixed-duration slots
starting at `start`. A slot is emitted only if it fits entirely inside
the window, so the last start is the largest `t` with `t + duration <= end`.

Contains:
✓ weekly schedule template of the provider

Does NOT contain:
✗ Bookings (see conflicts.py)
✗ Past-time exclusion (see conflicts.py)
"""

from ...errors import ValidationError
from .schedule import DayRule


def generate_slots(day_rule: DayRule, slot_duration_minutes: int) -> list[int]:
    """
    Ordered slot start minutes for one day.

    Returns:
        Ascending list of minutes of day. Empty list = closed day.
    """
    if slot_duration_minutes <= 0:
        raise ValidationError(f"Slot duration must be positive, got {slot_duration_minutes}")

    if not day_rule.is_open:
        return []

    slots: list[int] = []
    t = day_rule.start_minute
    while t + slot_duration_minutes <= day_rule.end_minute:
        slots.append(t)
        t += slot_duration_minutes

    return slots


def total_possible_slots(day_rule: DayRule, slot_duration_minutes: int) -> int:
    """Number of slots a day offers before bookings and pastness are applied."""
    return len(generate_slots(day_rule, slot_duration_minutes))
