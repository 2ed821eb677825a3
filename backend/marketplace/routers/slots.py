# backend/marketplace/routers/slots.py
"""
Availability API endpoints.

GET /providers/{id}/availability   - status for a date
GET /providers/{id}/slots          - bookable slots for a date
GET /providers/{id}/next-available - first bookable slot within a horizon
GET /providers/{id}/weekly         - seven-day overview
"""

from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_clock, get_config, get_store
from ..schemas.slots import (
    AvailabilityStatusResponse,
    NextAvailableResponse,
    ProviderAvailabilityResponse,
    SlotsDayResponse,
    WeeklyOverviewResponse,
)
from ..services.records import ACTIVE_STATUSES
from ..services.slots import (
    AvailabilityStatus,
    BookingConfig,
    available_slots,
    next_available,
    status_for_date,
    weekly_overview,
)
from ..services.slots.availability import coerce_date, last_date
from ..services.slots.config import minutes_to_time_str
from ..services.store import BookingStore


router = APIRouter(prefix="/providers", tags=["slots"])


def _require_provider(store: BookingStore, provider_id: int) -> None:
    if store.get_provider(provider_id) is None:
        raise HTTPException(status_code=404, detail="Provider not found")


def _status_response(status: AvailabilityStatus) -> dict:
    return {
        "available": status.available,
        "status_tag": status.status_tag.value,
        "available_slot_count": status.available_slot_count,
        "booked_slot_count": status.booked_slot_count,
        "total_slot_count": status.total_slot_count,
        "date": status.date,
        "day_name": status.day_name,
        "message": status.message,
        "availability_percentage": status.availability_percentage,
        "working_hours": status.working_hours,
    }


def _check_duration(duration: Optional[int], config: BookingConfig) -> int:
    if duration is None:
        return config.slot_duration_minutes
    if duration <= 0:
        raise HTTPException(status_code=400, detail="duration must be positive")
    return duration


@router.get("/{provider_id}/availability", response_model=ProviderAvailabilityResponse)
def get_availability(
    provider_id: int,
    target_date: str = Query(..., alias="date"),
    duration: Optional[int] = None,
    store: BookingStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
    config: BookingConfig = Depends(get_config),
):
    """Availability status of a provider for one date. Unusable dates report closed."""
    _require_provider(store, provider_id)
    duration = _check_duration(duration, config)

    day = coerce_date(target_date)
    template = store.get_schedule_template(provider_id)
    bookings = (
        store.list_bookings(provider_id, date_from=day, date_to=day, statuses=ACTIVE_STATUSES)
        if day is not None
        else []
    )

    status = status_for_date(template, target_date, bookings, clock(), duration)
    return ProviderAvailabilityResponse(provider_id=provider_id, **_status_response(status))


@router.get("/{provider_id}/slots", response_model=SlotsDayResponse)
def get_slots(
    provider_id: int,
    target_date: str = Query(..., alias="date"),
    duration: Optional[int] = None,
    store: BookingStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
    config: BookingConfig = Depends(get_config),
):
    """Bookable slot start minutes for one date. Unusable dates have no slots."""
    _require_provider(store, provider_id)
    duration = _check_duration(duration, config)

    day = coerce_date(target_date)
    slots = []
    if day is not None:
        template = store.get_schedule_template(provider_id)
        bookings = store.list_bookings(
            provider_id, date_from=day, date_to=day, statuses=ACTIVE_STATUSES
        )
        slots = available_slots(template, day, bookings, clock(), duration)

    return SlotsDayResponse(
        provider_id=provider_id,
        date=day,
        slot_duration_minutes=duration,
        slots=slots,
        times=[minutes_to_time_str(m) for m in slots],
    )


@router.get("/{provider_id}/next-available", response_model=Optional[NextAvailableResponse])
def get_next_available(
    provider_id: int,
    horizon_days: Optional[int] = None,
    duration: Optional[int] = None,
    store: BookingStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
    config: BookingConfig = Depends(get_config),
):
    """First bookable slot from today within horizon_days, or null."""
    _require_provider(store, provider_id)
    duration = _check_duration(duration, config)

    horizon = horizon_days if horizon_days is not None else config.horizon_days
    if not 0 < horizon <= config.max_horizon_days:
        raise HTTPException(
            status_code=400,
            detail=f"horizon_days must be between 1 and {config.max_horizon_days}",
        )

    now = clock()
    today = now.date()
    template = store.get_schedule_template(provider_id)
    bookings = store.list_bookings(
        provider_id,
        date_from=today,
        date_to=last_date(today, horizon),
        statuses=ACTIVE_STATUSES,
    )

    found = next_available(template, bookings, now, horizon, duration)
    if found is None:
        return None

    return NextAvailableResponse(
        provider_id=provider_id,
        date=found.date,
        start_minute=found.start_minute,
        time=minutes_to_time_str(found.start_minute),
        day_name=found.day_name,
    )


@router.get("/{provider_id}/weekly", response_model=WeeklyOverviewResponse)
def get_weekly_overview(
    provider_id: int,
    week_start: Optional[str] = None,
    duration: Optional[int] = None,
    store: BookingStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
    config: BookingConfig = Depends(get_config),
):
    """
    Day name → availability status for seven days from week_start (default today).
    An unusable week_start yields no days.
    """
    _require_provider(store, provider_id)
    duration = _check_duration(duration, config)

    now = clock()
    start = coerce_date(week_start) if week_start is not None else now.date()
    if start is None:
        return WeeklyOverviewResponse(provider_id=provider_id, week_start=None, days={})

    template = store.get_schedule_template(provider_id)
    bookings = store.list_bookings(
        provider_id,
        date_from=start,
        date_to=last_date(start, config.weekly_days),
        statuses=ACTIVE_STATUSES,
    )

    overview = weekly_overview(template, start, bookings, now, duration)
    return WeeklyOverviewResponse(
        provider_id=provider_id,
        week_start=start,
        days={
            name: AvailabilityStatusResponse(**_status_response(status))
            for name, status in overview.items()
        },
    )
