# backend/marketplace/services/slots/availability.py
"""
Availability reporting.

Composes slot generation (calculator.py) and conflict filtering
(conflicts.py) into the read-side queries:

- status for one date (available / limited / moderate / closed / fully-booked)
- available slots for one date
- next available date and slot within a horizon
- weekly overview
- providers free at a given date/time

Everything here is a pure function of (template, bookings, date, now).
A missing template or an unusable date means "closed", never an error.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from ...errors import ValidationError
from ..records import BookingRecord
from .calculator import generate_slots
from .config import get_booking_config
from .conflicts import booked_minutes_for_date, filter_available
from .schedule import ScheduleTemplate, day_name


class StatusTag(str, Enum):
    AVAILABLE = "available"
    LIMITED = "limited"
    MODERATE = "moderate"
    CLOSED = "closed"
    FULLY_BOOKED = "fully-booked"


LIMITED_BELOW_PCT = 25
MODERATE_BELOW_PCT = 50


@dataclass(frozen=True)
class AvailabilityStatus:
    available: bool
    status_tag: StatusTag
    available_slot_count: int = 0
    booked_slot_count: int = 0
    total_slot_count: int = 0
    date: Optional[date] = None
    day_name: Optional[str] = None
    message: str = ""
    availability_percentage: Optional[int] = None
    working_hours: Optional[str] = None


@dataclass(frozen=True)
class NextSlot:
    date: date
    start_minute: int
    day_name: str


def resolve_duration(slot_duration_minutes: int | None) -> int:
    """Explicit slot length, or the configured default when None."""
    if slot_duration_minutes is None:
        return get_booking_config().slot_duration_minutes
    if slot_duration_minutes <= 0:
        raise ValidationError(f"Slot duration must be positive, got {slot_duration_minutes}")
    return slot_duration_minutes


def coerce_date(value: date | str | None) -> Optional[date]:
    """Parse an ISO date; None for anything that is not a calendar date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def available_slots(
    template: Optional[ScheduleTemplate],
    target_date: date | str,
    bookings: Iterable[BookingRecord],
    now: datetime,
    slot_duration_minutes: int | None = None,
) -> list[int]:
    """Bookable start minutes on target_date."""
    duration = resolve_duration(slot_duration_minutes)
    target = coerce_date(target_date)
    if template is None or target is None:
        return []

    candidates = generate_slots(template.rule_for(target), duration)
    return filter_available(candidates, bookings, now, target == now.date(), target)


def is_slot_available(
    template: Optional[ScheduleTemplate],
    target_date: date | str,
    start_minute: int,
    bookings: Iterable[BookingRecord],
    now: datetime,
    slot_duration_minutes: int | None = None,
) -> bool:
    """True if start_minute is a generated, untaken, future slot on target_date."""
    return start_minute in available_slots(
        template, target_date, bookings, now, slot_duration_minutes
    )


def status_for_date(
    template: Optional[ScheduleTemplate],
    target_date: date | str,
    bookings: Sequence[BookingRecord],
    now: datetime,
    slot_duration_minutes: int | None = None,
) -> AvailabilityStatus:
    """
    Discrete availability status of a provider on one date.

    The percentage uses all slots the day offers as denominator,
    regardless of how many are booked or already past.
    """
    duration = resolve_duration(slot_duration_minutes)
    target = coerce_date(target_date)
    if template is None or target is None:
        return AvailabilityStatus(
            available=False,
            status_tag=StatusTag.CLOSED,
            date=target,
            message="No availability data",
        )

    rule = template.rule_for(target)
    if not rule.is_open:
        return AvailabilityStatus(
            available=False,
            status_tag=StatusTag.CLOSED,
            date=target,
            day_name=day_name(target),
            message="Provider is closed on this day",
        )

    candidates = generate_slots(rule, duration)
    open_slots = filter_available(candidates, bookings, now, target == now.date(), target)
    total = len(candidates)
    booked = len(booked_minutes_for_date(bookings, target))

    if not open_slots:
        return AvailabilityStatus(
            available=False,
            status_tag=StatusTag.FULLY_BOOKED,
            available_slot_count=0,
            booked_slot_count=booked,
            total_slot_count=total,
            date=target,
            day_name=day_name(target),
            message="Fully booked for this day",
            working_hours=rule.working_hours,
        )

    pct = len(open_slots) / total * 100
    if pct < LIMITED_BELOW_PCT:
        tag = StatusTag.LIMITED
        message = f"Limited availability - only {len(open_slots)} slots left"
    elif pct < MODERATE_BELOW_PCT:
        tag = StatusTag.MODERATE
        message = f"{len(open_slots)} slots available"
    else:
        tag = StatusTag.AVAILABLE
        message = f"{len(open_slots)} slots available"

    return AvailabilityStatus(
        available=True,
        status_tag=tag,
        available_slot_count=len(open_slots),
        booked_slot_count=booked,
        total_slot_count=total,
        date=target,
        day_name=day_name(target),
        message=message,
        availability_percentage=round(pct),
        working_hours=rule.working_hours,
    )


def next_available(
    template: Optional[ScheduleTemplate],
    bookings: Sequence[BookingRecord],
    now: datetime,
    horizon_days: int | None = None,
    slot_duration_minutes: int | None = None,
) -> Optional[NextSlot]:
    """
    First date (today inclusive, up to horizon_days - 1 ahead) with a
    bookable slot, and its earliest slot. None if the horizon has none.
    """
    duration = resolve_duration(slot_duration_minutes)
    if template is None:
        return None

    horizon = horizon_days if horizon_days is not None else get_booking_config().horizon_days
    today = now.date()

    for target in date_range(today, horizon):
        slots = available_slots(template, target, bookings, now, duration)
        if slots:
            return NextSlot(date=target, start_minute=slots[0], day_name=day_name(target))

    return None


def weekly_overview(
    template: Optional[ScheduleTemplate],
    week_start: date | str,
    bookings: Sequence[BookingRecord],
    now: datetime,
    slot_duration_minutes: int | None = None,
) -> dict[str, AvailabilityStatus]:
    """Day name → status for the 7 consecutive dates from week_start."""
    duration = resolve_duration(slot_duration_minutes)
    start = coerce_date(week_start)
    if start is None:
        return {}

    days = get_booking_config().weekly_days
    return {
        day_name(target): status_for_date(template, target, bookings, now, duration)
        for target in date_range(start, days)
    }


def filter_providers_by_availability(
    templates: Mapping[int, Optional[ScheduleTemplate]],
    target_date: date | str | None,
    start_minute: int | None,
    bookings_by_provider: Mapping[int, Sequence[BookingRecord]],
    now: datetime,
    slot_duration_minutes: int | None = None,
) -> list[int]:
    """
    Provider ids free at (target_date, start_minute).

    Without a minute, a provider qualifies with any slot on the date.
    Without a date, every provider qualifies.
    """
    duration = resolve_duration(slot_duration_minutes)
    if target_date is None:
        return list(templates)

    result = []
    for provider_id, template in templates.items():
        bookings = bookings_by_provider.get(provider_id, [])
        slots = available_slots(template, target_date, bookings, now, duration)
        if start_minute is None:
            if slots:
                result.append(provider_id)
        elif start_minute in slots:
            result.append(provider_id)

    return result


# ── Date ranges ──────────────────────────────────────────────────────────


def date_range(start: date, days: int) -> list[date]:
    """Up to `days` consecutive dates from start, stopping at date.max."""
    dates = []
    current = start
    for _ in range(days):
        dates.append(current)
        if current == date.max:
            break
        current += timedelta(days=1)
    return dates


def last_date(start: date, days: int) -> date:
    """Last date of date_range(start, days); never past date.max."""
    return date_range(start, max(days, 1))[-1]
