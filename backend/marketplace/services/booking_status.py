# backend/marketplace/services/booking_status.py
"""
Booking status transitions driven by the owning provider.

    pending   → confirmed | rejected
    confirmed → completed
    rejected, completed: terminal

Last writer wins; the guard does not serialize against these writes.
"""

import logging
from typing import Optional

from ..errors import InvalidTransitionError, NotFoundError, PermissionDeniedError
from .events import booking_payload, emit_event
from .records import BookingRecord, BookingStatus
from .store import BookingStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.REJECTED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def can_transition(current: BookingStatus, requested: BookingStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def transition_booking(
    store: BookingStore,
    booking_id: int,
    provider_id: int,
    new_status: BookingStatus | str,
    decline_reason: Optional[str] = None,
) -> BookingRecord:
    """
    Move a booking to new_status on behalf of provider_id.

    Raises:
        NotFoundError: booking does not exist
        PermissionDeniedError: provider_id does not own the booking
        InvalidTransitionError: state machine forbids the change
    """
    requested = BookingStatus(new_status)

    booking = store.get_booking(booking_id)
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found")

    if booking.provider_id != provider_id:
        raise PermissionDeniedError(
            f"Provider {provider_id} does not own booking {booking_id}"
        )

    if not can_transition(booking.status, requested):
        raise InvalidTransitionError(booking.status.value, requested.value)

    updated = store.update_booking_status(
        booking_id,
        requested,
        decline_reason=decline_reason if requested is BookingStatus.REJECTED else None,
    )
    logger.info(f"Booking {booking_id}: {booking.status.value} → {requested.value}")
    emit_event("booking_status_changed", booking_payload(updated))
    return updated
