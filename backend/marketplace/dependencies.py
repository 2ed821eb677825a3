# backend/marketplace/dependencies.py

from datetime import datetime
from functools import lru_cache
from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .redis_client import redis_client
from .services.booking_guard import BookingGuard
from .services.slots import BookingConfig, get_booking_config
from .services.slots.locks import SlotLocks, build_slot_locks
from .services.store import BookingStore, SqlBookingStore


def get_store(db: Session = Depends(get_db)) -> BookingStore:
    return SqlBookingStore(db)


def get_clock() -> Callable[[], datetime]:
    return datetime.now


@lru_cache
def get_slot_locks() -> SlotLocks:
    # One registry per process so in-process locks are shared between requests
    return build_slot_locks(redis_client)


def get_config() -> BookingConfig:
    return get_booking_config()


def get_guard(
    store: BookingStore = Depends(get_store),
    locks: SlotLocks = Depends(get_slot_locks),
    clock: Callable[[], datetime] = Depends(get_clock),
    config: BookingConfig = Depends(get_config),
) -> BookingGuard:
    return BookingGuard(store, locks, config=config, clock=clock)
