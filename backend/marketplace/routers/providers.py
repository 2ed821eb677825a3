# backend/marketplace/routers/providers.py
# - GET /providers/available must stay above /providers/{id}
# - Schedule is replaced as a whole (all seven weekdays)

from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..dependencies import get_clock, get_config, get_store
from ..errors import InvalidScheduleError
from ..schemas.providers import ProviderCreate, ProviderRead, ScheduleUpdate
from ..services.records import ACTIVE_STATUSES
from ..services.slots import BookingConfig, ScheduleTemplate, parse_template
from ..services.slots.availability import coerce_date, filter_providers_by_availability
from ..services.slots.config import time_str_to_minutes
from ..services.slots.schedule import default_template
from ..services.store import BookingStore, ProviderInfo

router = APIRouter(prefix="/providers", tags=["providers"])


def _provider_read(provider: ProviderInfo, template: Optional[ScheduleTemplate]) -> ProviderRead:
    return ProviderRead(
        id=provider.id,
        display_name=provider.display_name,
        description=provider.description,
        category=provider.category,
        is_active=provider.is_active,
        availability=template.to_dict() if template else None,
    )


def _parse_schedule(payload: dict) -> ScheduleTemplate:
    try:
        return parse_template({key: rule.model_dump() for key, rule in payload.items()})
    except InvalidScheduleError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/available", response_model=list[ProviderRead])
def list_available_providers(
    target_date: Optional[str] = Query(None, alias="date"),
    time: Optional[str] = Query(None, description="HH:MM"),
    category: Optional[str] = None,
    store: BookingStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
    config: BookingConfig = Depends(get_config),
):
    """
    Active providers with a free slot at date/time (or any slot on date).
    An unusable date matches nobody.
    """
    if time is not None and target_date is None:
        raise HTTPException(status_code=400, detail="time requires date")

    day = coerce_date(target_date)
    if target_date is not None and day is None:
        return []

    start_minute = None
    if time is not None:
        try:
            start_minute = time_str_to_minutes(time)
        except ValueError:
            raise HTTPException(status_code=400, detail="time must be HH:MM")

    providers = [
        p for p in store.list_providers()
        if category is None or p.category == category
    ]
    templates = {p.id: store.get_schedule_template(p.id) for p in providers}

    bookings_by_provider = {}
    if day is not None:
        bookings_by_provider = {
            p.id: store.list_bookings(
                p.id, date_from=day, date_to=day, statuses=ACTIVE_STATUSES
            )
            for p in providers
        }

    free_ids = set(filter_providers_by_availability(
        templates, day, start_minute, bookings_by_provider, clock(),
        config.slot_duration_minutes,
    ))
    return [_provider_read(p, templates[p.id]) for p in providers if p.id in free_ids]


@router.get("/{provider_id}", response_model=ProviderRead)
def get_provider(provider_id: int, store: BookingStore = Depends(get_store)):
    provider = store.get_provider(provider_id)
    if not provider:
        raise HTTPException(status_code=404, detail="Not found")
    return _provider_read(provider, store.get_schedule_template(provider_id))


@router.post("/", response_model=ProviderRead, status_code=status.HTTP_201_CREATED)
def create_provider(
    data: ProviderCreate,
    store: BookingStore = Depends(get_store),
):
    template = _parse_schedule(data.availability) if data.availability is not None else default_template()
    provider = store.create_provider(
        display_name=data.display_name,
        template=template,
        description=data.description,
        category=data.category,
    )
    return _provider_read(provider, template)


@router.put("/{provider_id}/schedule", response_model=ProviderRead)
def update_schedule(
    provider_id: int,
    data: ScheduleUpdate,
    store: BookingStore = Depends(get_store),
):
    provider = store.get_provider(provider_id)
    if not provider:
        raise HTTPException(status_code=404, detail="Not found")

    template = _parse_schedule(data.availability)
    store.set_schedule_template(provider_id, template)
    return _provider_read(provider, template)
