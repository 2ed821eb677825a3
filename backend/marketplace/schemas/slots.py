"""
Pydantic schemas for availability API.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class AvailabilityStatusResponse(BaseModel):
    """Availability of a provider on one date."""
    available: bool
    status_tag: str = Field(description="available / limited / moderate / closed / fully-booked")
    available_slot_count: int = 0
    booked_slot_count: int = 0
    total_slot_count: int = 0
    date: Optional[dt.date] = None
    day_name: Optional[str] = None
    message: str = ""
    availability_percentage: Optional[int] = None
    working_hours: Optional[str] = None

    model_config = {"from_attributes": True}


class ProviderAvailabilityResponse(AvailabilityStatusResponse):
    provider_id: int


class SlotsDayResponse(BaseModel):
    """Bookable slots of a provider for a day."""
    provider_id: int
    date: Optional[dt.date] = None
    slot_duration_minutes: int
    slots: list[int] = Field(description="Start minutes of day, ascending")
    times: list[str] = Field(description="Same slots as \"HH:MM\"")

    model_config = {"from_attributes": True}


class NextAvailableResponse(BaseModel):
    provider_id: int
    date: dt.date
    start_minute: int
    time: str
    day_name: str

    model_config = {"from_attributes": True}


class WeeklyOverviewResponse(BaseModel):
    provider_id: int
    week_start: Optional[dt.date] = None
    days: dict[str, AvailabilityStatusResponse]

    model_config = {"from_attributes": True}
