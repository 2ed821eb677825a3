# backend/marketplace/routers/bookings.py
# - POST goes through the booking guard (never a blind insert)
# - Status changes only via PATCH /bookings/{id}/status by the owning provider
# - DELETE = 405

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..dependencies import get_guard, get_store
from ..errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ..schemas.bookings import BookingCreate, BookingRead, BookingStatusUpdate
from ..services.booking_guard import BookingGuard
from ..services.booking_status import transition_booking
from ..services.records import BookingRecord, BookingStatus, ServiceMetadata
from ..services.store import BookingStore

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _booking_read(record: BookingRecord) -> BookingRead:
    return BookingRead(
        id=record.id,
        provider_id=record.provider_id,
        customer_id=record.customer_id,
        scheduled_date=record.scheduled_date,
        scheduled_time=record.scheduled_time,
        status=record.status.value,
        service_name=record.service_name,
        notes=record.notes,
        price=record.price,
        extra=record.extra,
        decline_reason=record.decline_reason,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


@router.get("/", response_model=list[BookingRead])
def list_bookings(
    provider_id: int,
    target_date: Optional[date] = Query(None, alias="date"),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    store: BookingStore = Depends(get_store),
):
    if store.get_provider(provider_id) is None:
        raise HTTPException(status_code=404, detail="Provider not found")

    records = store.list_bookings(
        provider_id,
        date_from=target_date,
        date_to=target_date,
        statuses=[status_filter] if status_filter else None,
    )
    return [_booking_read(r) for r in records]


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, store: BookingStore = Depends(get_store)):
    record = store.get_booking(id)
    if not record:
        raise HTTPException(status_code=404, detail="Not found")
    return _booking_read(record)


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    guard: BookingGuard = Depends(get_guard),
):
    try:
        record = guard.request_booking(
            customer_id=data.customer_id,
            provider_id=data.provider_id,
            target_date=data.date,
            start_minute=data.start_minute,
            metadata=ServiceMetadata(
                service_name=data.service_name,
                notes=data.notes,
                price=data.price,
                extra=data.extra,
            ),
            slot_duration_minutes=data.slot_duration_minutes,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"reason": e.reason.value, "message": str(e)},
        )
    return _booking_read(record)


@router.patch("/{id}/status", response_model=BookingRead)
def update_booking_status(
    id: int,
    data: BookingStatusUpdate,
    store: BookingStore = Depends(get_store),
):
    try:
        record = transition_booking(
            store,
            booking_id=id,
            provider_id=data.provider_id,
            new_status=data.status,
            decline_reason=data.decline_reason,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _booking_read(record)


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
