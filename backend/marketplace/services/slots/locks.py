# backend/marketplace/services/slots/locks.py
"""
Slot locks: the serialization point for booking creation.

Key format: slot_lock:{provider_id}:{date}:{start_minute}

Redis-backed when REDIS_URL is configured (SET NX PX via redis-py Lock),
otherwise an in-process registry of held keys. Both are non-blocking:
a busy key raises SlotLockBusy and the caller decides how to back off.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import ContextManager, Iterator, Protocol

from redis import Redis
from redis.exceptions import LockError

from .config import BookingConfig, get_booking_config

logger = logging.getLogger(__name__)

SlotKey = tuple[int, date, int]


class SlotLockBusy(Exception):
    """Another request holds the lock for this slot."""


class SlotLocks(Protocol):
    def hold(self, key: SlotKey) -> ContextManager[None]:
        ...


def lock_name(key: SlotKey) -> str:
    provider_id, target_date, start_minute = key
    return f"slot_lock:{provider_id}:{target_date.isoformat()}:{start_minute}"


class LocalSlotLocks:
    """Single-process keyed mutex."""

    def __init__(self):
        self._mutex = threading.Lock()
        self._held: set[SlotKey] = set()

    @contextmanager
    def hold(self, key: SlotKey) -> Iterator[None]:
        with self._mutex:
            if key in self._held:
                raise SlotLockBusy(lock_name(key))
            self._held.add(key)
        try:
            yield
        finally:
            with self._mutex:
                self._held.discard(key)

    def is_held(self, key: SlotKey) -> bool:
        with self._mutex:
            return key in self._held


class RedisSlotLocks:
    """Cross-process slot locks with a TTL so a crashed holder cannot block a slot."""

    def __init__(self, redis: Redis, config: BookingConfig | None = None):
        self.redis = redis
        self.config = config or get_booking_config()

    @contextmanager
    def hold(self, key: SlotKey) -> Iterator[None]:
        lock = self.redis.lock(
            lock_name(key),
            timeout=self.config.lock_ttl_ms / 1000,
            blocking=False,
        )
        if not lock.acquire():
            raise SlotLockBusy(lock_name(key))
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # TTL elapsed while we were inside the critical section
                logger.warning(f"Slot lock {lock_name(key)} expired before release")


def build_slot_locks(redis: Redis | None, config: BookingConfig | None = None) -> SlotLocks:
    if redis is not None:
        return RedisSlotLocks(redis, config)
    return LocalSlotLocks()
