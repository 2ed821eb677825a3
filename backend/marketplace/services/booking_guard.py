# backend/marketplace/services/booking_guard.py
"""
Booking conflict guard.

Creates bookings so that no two concurrent requests can win the same
(provider_id, date, start_minute):

1. Acquire the slot lock for the key (retry with exponential backoff).
2. Re-read the provider schedule and that day's active bookings.
3. Re-derive availability with the current clock; the requested minute
   must be a generated, future, untaken slot.
4. create_if_absent(status=pending) and commit.

Client-side availability is never trusted: the check in step 3 always
uses fresh store state read inside the lock.
"""

import logging
import time
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.exc import OperationalError

from ..errors import ConflictError, ConflictReason, NotFoundError, ValidationError
from .events import booking_payload, emit_event
from .records import ACTIVE_STATUSES, BookingRecord, BookingStatus, ServiceMetadata
from .slots.availability import coerce_date
from .slots.calculator import generate_slots
from .slots.config import MINUTES_PER_DAY, BookingConfig, get_booking_config, minutes_to_time_str
from .slots.conflicts import filter_available, is_slot_in_past
from .slots.locks import SlotKey, SlotLockBusy, SlotLocks
from .store import BookingStore, CreateResult

logger = logging.getLogger(__name__)

_TRANSIENT_DB_ERRORS = ("database is locked", "deadlock detected", "could not serialize")


class BookingGuard:
    def __init__(
        self,
        store: BookingStore,
        locks: SlotLocks,
        config: BookingConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.locks = locks
        self.config = config or get_booking_config()
        self.clock = clock
        self.sleep = sleep

    def request_booking(
        self,
        customer_id: str,
        provider_id: int,
        target_date: date | str,
        start_minute: int,
        metadata: Optional[ServiceMetadata] = None,
        slot_duration_minutes: Optional[int] = None,
    ) -> BookingRecord:
        """
        Create a pending booking for the slot.

        Raises:
            ValidationError: malformed request or slot outside the schedule
            NotFoundError: provider does not exist
            ConflictError: slot_taken, or contention_timeout after max_attempts
        """
        slot_date = self._validate(customer_id, target_date, start_minute, slot_duration_minutes)

        provider = self.store.get_provider(provider_id)
        if provider is None:
            raise NotFoundError(f"Provider {provider_id} not found")
        if not provider.is_active:
            raise ValidationError(f"Provider {provider_id} is not accepting bookings")

        key: SlotKey = (provider_id, slot_date, start_minute)
        duration = (
            slot_duration_minutes if slot_duration_minutes is not None
            else self.config.slot_duration_minutes
        )

        for attempt in range(1, self.config.max_attempts + 1):
            try:
                with self.locks.hold(key):
                    return self._create_locked(
                        customer_id, provider_id, slot_date, start_minute,
                        metadata or ServiceMetadata(), duration,
                    )
            except SlotLockBusy:
                logger.warning(
                    f"Slot {_describe(key)} busy (attempt {attempt}/{self.config.max_attempts})"
                )
            except OperationalError as e:
                if not _is_transient(e):
                    raise
                # The failed statement may have aborted the transaction
                self.store.reset()
                logger.warning(
                    f"Store contention on {_describe(key)} "
                    f"(attempt {attempt}/{self.config.max_attempts}): {e.orig}"
                )

            if attempt < self.config.max_attempts:
                self.sleep(self.config.backoff_delay(attempt))

        logger.warning(f"Giving up on slot {_describe(key)} after {self.config.max_attempts} attempts")
        raise ConflictError(
            ConflictReason.CONTENTION_TIMEOUT,
            f"Slot {_describe(key)} is busy, try again",
        )

    # ── Critical section ─────────────────────────────────────────────────

    def _create_locked(
        self,
        customer_id: str,
        provider_id: int,
        slot_date: date,
        start_minute: int,
        metadata: ServiceMetadata,
        duration: int,
    ) -> BookingRecord:
        key: SlotKey = (provider_id, slot_date, start_minute)

        template = self.store.get_schedule_template(provider_id)
        if template is None:
            raise ValidationError(f"Provider {provider_id} has no schedule")

        candidates = generate_slots(template.rule_for(slot_date), duration)
        if start_minute not in candidates:
            raise ValidationError(
                f"{minutes_to_time_str(start_minute)} on {slot_date.isoformat()} "
                f"is not a bookable slot for provider {provider_id}"
            )

        now = self.clock()
        if is_slot_in_past(slot_date, start_minute, now):
            raise ValidationError(f"Slot {_describe(key)} is in the past")

        bookings = self.store.list_bookings(
            provider_id,
            date_from=slot_date,
            date_to=slot_date,
            statuses=ACTIVE_STATUSES,
        )
        if not filter_available([start_minute], bookings, now, slot_date == now.date(), slot_date):
            logger.info(f"Slot {_describe(key)} already taken")
            raise ConflictError(ConflictReason.SLOT_TAKEN, f"Slot {_describe(key)} is already booked")

        record = BookingRecord(
            provider_id=provider_id,
            customer_id=customer_id,
            scheduled_date=slot_date,
            scheduled_time=start_minute,
            status=BookingStatus.PENDING,
            service_name=metadata.service_name,
            notes=metadata.notes,
            price=metadata.price,
            extra=dict(metadata.extra),
        )
        result, created = self.store.create_if_absent(record)
        if result is CreateResult.ALREADY_EXISTS or created is None:
            logger.info(f"Slot {_describe(key)} taken by a concurrent writer")
            raise ConflictError(ConflictReason.SLOT_TAKEN, f"Slot {_describe(key)} is already booked")

        logger.info(f"Booking {created.id} created for slot {_describe(key)} (customer={customer_id})")
        emit_event("booking_created", booking_payload(created))
        return created

    # ── Validation ───────────────────────────────────────────────────────

    def _validate(
        self,
        customer_id: str,
        target_date: date | str,
        start_minute: int,
        slot_duration_minutes: Optional[int],
    ) -> date:
        if not customer_id or not str(customer_id).strip():
            raise ValidationError("customer_id is required")

        slot_date = coerce_date(target_date)
        if slot_date is None:
            raise ValidationError(f"Invalid date: {target_date!r}")

        if isinstance(start_minute, bool) or not isinstance(start_minute, int):
            raise ValidationError(f"start_minute must be an integer, got {start_minute!r}")
        if not 0 <= start_minute < MINUTES_PER_DAY:
            raise ValidationError(f"start_minute must be in [0, {MINUTES_PER_DAY}), got {start_minute}")

        if slot_duration_minutes is not None and slot_duration_minutes <= 0:
            raise ValidationError(f"Slot duration must be positive, got {slot_duration_minutes}")

        if slot_date < self.clock().date():
            raise ValidationError("Date cannot be in the past")

        return slot_date


def _describe(key: SlotKey) -> str:
    provider_id, slot_date, start_minute = key
    return f"{provider_id}@{slot_date.isoformat()} {minutes_to_time_str(start_minute)}"


def _is_transient(exc: OperationalError) -> bool:
    message = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
    return any(marker in message for marker in _TRANSIENT_DB_ERRORS)
