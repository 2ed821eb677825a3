# backend/marketplace/services/records.py
"""
Booking records as seen by the availability engine.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"


# Statuses that occupy a slot
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


@dataclass(frozen=True)
class BookingRecord:
    provider_id: int
    customer_id: str
    scheduled_date: date
    scheduled_time: int
    status: BookingStatus = BookingStatus.PENDING
    id: Optional[int] = None
    service_name: Optional[str] = None
    notes: Optional[str] = None
    price: Optional[float] = None
    extra: dict[str, Any] = field(default_factory=dict)
    decline_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def slot_key(self) -> tuple[int, date, int]:
        return self.provider_id, self.scheduled_date, self.scheduled_time


@dataclass(frozen=True)
class ServiceMetadata:
    """Free-form details a customer attaches to a booking request."""
    service_name: Optional[str] = None
    notes: Optional[str] = None
    price: Optional[float] = None
    extra: dict[str, Any] = field(default_factory=dict)
