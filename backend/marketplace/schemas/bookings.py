# backend/marketplace/schemas/bookings.py

import datetime as dt
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    customer_id: str
    provider_id: int
    date: dt.date
    start_minute: int = Field(description="Minute of day, e.g. 540 = 09:00")

    service_name: Optional[str] = None
    notes: Optional[str] = None
    price: Optional[float] = None
    extra: dict[str, Any] = Field(default_factory=dict)

    slot_duration_minutes: Optional[int] = None

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int

    provider_id: int
    customer_id: str

    scheduled_date: dt.date
    scheduled_time: int

    status: str
    service_name: Optional[str] = None
    notes: Optional[str] = None
    price: Optional[float] = None
    extra: dict[str, Any] = Field(default_factory=dict)
    decline_reason: Optional[str] = None

    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}


class BookingStatusUpdate(BaseModel):
    provider_id: int
    status: Literal["confirmed", "rejected", "completed"]
    decline_reason: Optional[str] = None

    model_config = {"from_attributes": True}
