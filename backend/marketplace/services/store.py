# backend/marketplace/services/store.py
"""
Booking store: the persistence boundary of the availability engine.

BookingStore is what the read path and the booking guard consume:
  - get_provider / get_schedule_template
  - list_bookings(provider_id, date range, statuses)
  - create_if_absent(record): insert unless an active booking holds the slot

SqlBookingStore runs on a SQLAlchemy session (partial unique index
uq_bookings_active_slot backs create_if_absent). InMemoryBookingStore
keeps everything in process memory behind a lock.
"""

import itertools
import json
import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional, Protocol

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ..errors import InvalidScheduleError
from ..models.generated import Bookings as DBBookings, Providers as DBProviders
from .records import ACTIVE_STATUSES, BookingRecord, BookingStatus
from .slots.schedule import ScheduleTemplate, parse_template

logger = logging.getLogger(__name__)


class CreateResult(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class ProviderInfo:
    id: int
    display_name: str
    is_active: bool = True
    description: Optional[str] = None
    category: Optional[str] = None


class BookingStore(Protocol):
    def get_provider(self, provider_id: int) -> Optional[ProviderInfo]:
        ...

    def list_providers(self, active_only: bool = True) -> list[ProviderInfo]:
        ...

    def get_schedule_template(self, provider_id: int) -> Optional[ScheduleTemplate]:
        ...

    def create_provider(
        self,
        display_name: str,
        template: Optional[ScheduleTemplate] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> ProviderInfo:
        ...

    def set_schedule_template(self, provider_id: int, template: ScheduleTemplate) -> None:
        ...

    def list_bookings(
        self,
        provider_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> list[BookingRecord]:
        ...

    def create_if_absent(self, record: BookingRecord) -> tuple[CreateResult, Optional[BookingRecord]]:
        ...

    def get_booking(self, booking_id: int) -> Optional[BookingRecord]:
        ...

    def update_booking_status(
        self,
        booking_id: int,
        status: BookingStatus,
        decline_reason: Optional[str] = None,
    ) -> BookingRecord:
        ...

    def reset(self) -> None:
        """Discard any pending transaction state after a failed operation."""
        ...


def template_from_json(raw: Optional[str], provider_id: int) -> Optional[ScheduleTemplate]:
    """Stored availability JSON → template; empty or broken data means no template."""
    if not raw or raw.strip() in ("", "{}"):
        return None
    try:
        return parse_template(raw)
    except InvalidScheduleError as e:
        logger.warning(f"Provider {provider_id} has an unusable schedule: {e}")
        return None


# ── SQL ──────────────────────────────────────────────────────────────────


class SqlBookingStore:
    """BookingStore on a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    # ── Providers ────────────────────────────────────────────────────────

    def get_provider(self, provider_id: int) -> Optional[ProviderInfo]:
        obj = self.db.get(DBProviders, provider_id)
        if not obj:
            return None
        return _provider_from_row(obj)

    def list_providers(self, active_only: bool = True) -> list[ProviderInfo]:
        query = self.db.query(DBProviders)
        if active_only:
            query = query.filter(DBProviders.is_active == 1)
        return [_provider_from_row(obj) for obj in query.order_by(DBProviders.id).all()]

    def get_schedule_template(self, provider_id: int) -> Optional[ScheduleTemplate]:
        obj = (
            self.db.query(DBProviders)
            .populate_existing()
            .filter(DBProviders.id == provider_id)
            .first()
        )
        if not obj:
            return None
        return template_from_json(obj.availability, provider_id)

    def create_provider(
        self,
        display_name: str,
        template: Optional[ScheduleTemplate] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> ProviderInfo:
        obj = DBProviders(
            display_name=display_name,
            description=description,
            category=category,
            availability=template.to_json() if template else "{}",
        )
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return _provider_from_row(obj)

    def set_schedule_template(self, provider_id: int, template: ScheduleTemplate) -> None:
        obj = self.db.get(DBProviders, provider_id)
        if obj is None:
            raise LookupError(provider_id)
        obj.availability = template.to_json()
        obj.updated_at = _now_str()
        self.db.commit()

    # ── Bookings ─────────────────────────────────────────────────────────

    def list_bookings(
        self,
        provider_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> list[BookingRecord]:
        query = (
            self.db.query(DBBookings)
            .populate_existing()
            .filter(DBBookings.provider_id == provider_id)
        )
        if date_from is not None:
            query = query.filter(DBBookings.scheduled_date >= date_from.isoformat())
        if date_to is not None:
            query = query.filter(DBBookings.scheduled_date <= date_to.isoformat())
        if statuses is not None:
            query = query.filter(DBBookings.status.in_([BookingStatus(s).value for s in statuses]))

        rows = query.order_by(DBBookings.scheduled_date, DBBookings.scheduled_time, DBBookings.id).all()
        return [_booking_from_row(obj) for obj in rows]

    def create_if_absent(self, record: BookingRecord) -> tuple[CreateResult, Optional[BookingRecord]]:
        existing = (
            self.db.query(DBBookings.id)
            .filter(
                DBBookings.provider_id == record.provider_id,
                DBBookings.scheduled_date == record.scheduled_date.isoformat(),
                DBBookings.scheduled_time == record.scheduled_time,
                DBBookings.status.in_([s.value for s in ACTIVE_STATUSES]),
            )
            .first()
        )
        if existing:
            return CreateResult.ALREADY_EXISTS, None

        obj = DBBookings(
            provider_id=record.provider_id,
            customer_id=record.customer_id,
            scheduled_date=record.scheduled_date.isoformat(),
            scheduled_time=record.scheduled_time,
            status=record.status.value,
            service_name=record.service_name,
            notes=record.notes,
            price=record.price,
            extra=json.dumps(record.extra) if record.extra else None,
        )
        self.db.add(obj)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent writer got the active slot first
            self.db.rollback()
            return CreateResult.ALREADY_EXISTS, None
        except OperationalError:
            self.db.rollback()
            raise

        self.db.refresh(obj)
        return CreateResult.CREATED, _booking_from_row(obj)

    def get_booking(self, booking_id: int) -> Optional[BookingRecord]:
        obj = self.db.get(DBBookings, booking_id, populate_existing=True)
        if not obj:
            return None
        return _booking_from_row(obj)

    def update_booking_status(
        self,
        booking_id: int,
        status: BookingStatus,
        decline_reason: Optional[str] = None,
    ) -> BookingRecord:
        obj = self.db.get(DBBookings, booking_id)
        if obj is None:
            raise LookupError(booking_id)
        obj.status = BookingStatus(status).value
        obj.updated_at = _now_str()
        if decline_reason is not None:
            obj.decline_reason = decline_reason
        self.db.commit()
        self.db.refresh(obj)
        return _booking_from_row(obj)

    def reset(self) -> None:
        self.db.rollback()


# ── In-memory ────────────────────────────────────────────────────────────


class InMemoryBookingStore:
    """Thread-safe BookingStore kept in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._providers: dict[int, ProviderInfo] = {}
        self._templates: dict[int, Optional[ScheduleTemplate]] = {}
        self._bookings: dict[int, BookingRecord] = {}
        self._provider_ids = itertools.count(1)
        self._booking_ids = itertools.count(1)

    def create_provider(
        self,
        display_name: str,
        template: Optional[ScheduleTemplate] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> ProviderInfo:
        with self._lock:
            provider = ProviderInfo(
                id=next(self._provider_ids),
                display_name=display_name,
                description=description,
                category=category,
            )
            self._providers[provider.id] = provider
            self._templates[provider.id] = template
            return provider

    def set_schedule_template(self, provider_id: int, template: ScheduleTemplate) -> None:
        with self._lock:
            if provider_id not in self._providers:
                raise LookupError(provider_id)
            self._templates[provider_id] = template

    def get_provider(self, provider_id: int) -> Optional[ProviderInfo]:
        with self._lock:
            return self._providers.get(provider_id)

    def list_providers(self, active_only: bool = True) -> list[ProviderInfo]:
        with self._lock:
            return [p for p in self._providers.values() if p.is_active or not active_only]

    def get_schedule_template(self, provider_id: int) -> Optional[ScheduleTemplate]:
        with self._lock:
            return self._templates.get(provider_id)

    def add_booking(self, record: BookingRecord) -> BookingRecord:
        """Insert unconditionally (seeding existing state, including duplicates)."""
        with self._lock:
            stored = replace(record, id=next(self._booking_ids), created_at=datetime.now())
            self._bookings[stored.id] = stored
            return stored

    def list_bookings(
        self,
        provider_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> list[BookingRecord]:
        wanted = {BookingStatus(s) for s in statuses} if statuses is not None else None
        with self._lock:
            result = [
                b for b in self._bookings.values()
                if b.provider_id == provider_id
                and (date_from is None or b.scheduled_date >= date_from)
                and (date_to is None or b.scheduled_date <= date_to)
                and (wanted is None or b.status in wanted)
            ]
        return sorted(result, key=lambda b: (b.scheduled_date, b.scheduled_time, b.id))

    def create_if_absent(self, record: BookingRecord) -> tuple[CreateResult, Optional[BookingRecord]]:
        with self._lock:
            for b in self._bookings.values():
                if b.is_active and b.slot_key == record.slot_key:
                    return CreateResult.ALREADY_EXISTS, None
            now = datetime.now()
            stored = replace(record, id=next(self._booking_ids), created_at=now, updated_at=now)
            self._bookings[stored.id] = stored
            return CreateResult.CREATED, stored

    def get_booking(self, booking_id: int) -> Optional[BookingRecord]:
        with self._lock:
            return self._bookings.get(booking_id)

    def update_booking_status(
        self,
        booking_id: int,
        status: BookingStatus,
        decline_reason: Optional[str] = None,
    ) -> BookingRecord:
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None:
                raise LookupError(booking_id)
            updated = replace(
                current,
                status=BookingStatus(status),
                decline_reason=decline_reason if decline_reason is not None else current.decline_reason,
                updated_at=datetime.now(),
            )
            self._bookings[booking_id] = updated
            return updated

    def reset(self) -> None:
        pass


# ── Helpers ──────────────────────────────────────────────────────────────


def _now_str() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _parse_ts(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", ""))
    except ValueError:
        return None


def _provider_from_row(obj: DBProviders) -> ProviderInfo:
    return ProviderInfo(
        id=obj.id,
        display_name=obj.display_name,
        is_active=bool(obj.is_active),
        description=obj.description,
        category=obj.category,
    )


def _booking_from_row(obj: DBBookings) -> BookingRecord:
    try:
        extra = json.loads(obj.extra) if obj.extra else {}
    except json.JSONDecodeError:
        extra = {}

    return BookingRecord(
        id=obj.id,
        provider_id=obj.provider_id,
        customer_id=obj.customer_id,
        scheduled_date=date.fromisoformat(obj.scheduled_date),
        scheduled_time=obj.scheduled_time,
        status=BookingStatus(obj.status),
        service_name=obj.service_name,
        notes=obj.notes,
        price=obj.price,
        extra=extra,
        decline_reason=obj.decline_reason,
        created_at=_parse_ts(obj.created_at),
        updated_at=_parse_ts(obj.updated_at),
    )
