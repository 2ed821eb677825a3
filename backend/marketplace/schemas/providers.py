# backend/marketplace/schemas/providers.py

from typing import Optional

from pydantic import BaseModel


class DayRuleSchema(BaseModel):
    is_open: bool
    start_minute: int = 540
    end_minute: int = 1020

    model_config = {"from_attributes": True}


class ProviderCreate(BaseModel):
    display_name: str
    description: Optional[str] = None
    category: Optional[str] = None
    # Weekday "0" (Sunday) .. "6" (Saturday); omitted → Mon–Fri 09:00–17:00
    availability: Optional[dict[str, DayRuleSchema]] = None

    model_config = {"from_attributes": True}


class ScheduleUpdate(BaseModel):
    availability: dict[str, DayRuleSchema]

    model_config = {"from_attributes": True}


class ProviderRead(BaseModel):
    id: int
    display_name: str
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: bool
    availability: Optional[dict[str, DayRuleSchema]] = None

    model_config = {"from_attributes": True}
