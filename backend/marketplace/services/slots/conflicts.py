# backend/marketplace/services/slots/conflicts.py
"""
Conflict filter: removes candidate slots that are taken or already past.

A slot is taken when any active (pending/confirmed) booking exists on the
same date at the same start minute. Several such bookings count as one
conflict. Past-slot exclusion applies to today only.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Sequence

from ..records import ACTIVE_STATUSES, BookingRecord


def active_bookings(bookings: Iterable[BookingRecord], target_date: date) -> list[BookingRecord]:
    """Active bookings on target_date."""
    return [
        b for b in bookings
        if b.scheduled_date == target_date and b.status in ACTIVE_STATUSES
    ]


def booked_minutes_for_date(bookings: Iterable[BookingRecord], target_date: date) -> list[int]:
    """Sorted, de-duplicated start minutes occupied on target_date."""
    return sorted({b.scheduled_time for b in active_bookings(bookings, target_date)})


def slot_start(target_date: date, minute: int) -> datetime:
    return datetime.combine(target_date, datetime.min.time()) + timedelta(minutes=minute)


def is_slot_in_past(target_date: date, minute: int, now: datetime) -> bool:
    """True if the slot instant is at or before now."""
    return slot_start(target_date, minute) <= now


def filter_available(
    candidate_slots: Sequence[int],
    bookings: Iterable[BookingRecord],
    now: datetime,
    is_today: bool,
    target_date: date,
) -> list[int]:
    """
    Keep candidate slots that are neither booked nor (for today) past.

    Returns:
        Filtered minutes in the order given.
    """
    booked = set(booked_minutes_for_date(bookings, target_date))

    result = []
    for minute in candidate_slots:
        if minute in booked:
            continue
        if is_today and is_slot_in_past(target_date, minute, now):
            continue
        result.append(minute)

    return result
