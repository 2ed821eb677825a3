"""
backend/marketplace/services/events.py

Booking events.

- events:p2p — queue consumed by the notification transport
- bookings:provider:{id} — pub/sub channel, one message per booking change

subscribe_bookings() turns the channel into a stream of booking-set
snapshots; consumers never depend on message contents, only on the
fact that something changed.
"""

import json
import time
import logging
from typing import Callable, Iterator, Optional

from redis import Redis

from ..redis_client import redis_client
from .records import BookingRecord

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def provider_channel(provider_id: int) -> str:
    return f"bookings:provider:{provider_id}"


def emit_event(event_type: str, payload: dict, redis: Optional[Redis] = None) -> None:
    """
    Emit a booking event.

    Pushed to Redis list `events:p2p` and published on the provider channel
    when the payload carries provider_id. Failures are logged, not raised.
    """
    client = redis if redis is not None else redis_client
    if client is None:
        logger.debug(f"Event {event_type} dropped: Redis not configured")
        return

    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        data = json.dumps(event, default=str)
        client.rpush(P2P_QUEUE, data)
        if "provider_id" in payload:
            client.publish(provider_channel(payload["provider_id"]), data)
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")


def booking_payload(record: BookingRecord) -> dict:
    return {
        "booking_id": record.id,
        "provider_id": record.provider_id,
        "customer_id": record.customer_id,
        "date": record.scheduled_date.isoformat(),
        "time": record.scheduled_time,
        "status": record.status.value,
    }


def subscribe_bookings(
    provider_id: int,
    load_snapshot: Callable[[], list[BookingRecord]],
    redis: Optional[Redis] = None,
) -> Iterator[list[BookingRecord]]:
    """
    Yield the provider's booking set now and again after every change.

    The channel is subscribed before the first snapshot is loaded, so a
    change landing in between still triggers a reload.
    Without Redis only the initial snapshot is produced.
    """
    client = redis if redis is not None else redis_client
    if client is None:
        yield load_snapshot()
        return

    pubsub = client.pubsub(ignore_subscribe_messages=True)
    pubsub.subscribe(provider_channel(provider_id))
    try:
        yield load_snapshot()
        for message in pubsub.listen():
            if message.get("type") == "message":
                yield load_snapshot()
    finally:
        pubsub.close()
