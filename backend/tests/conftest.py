"""Shared test fixtures for the availability and booking engine."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.pop("REDIS_URL", None)

from datetime import date, datetime, timedelta
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from marketplace.database import init_db, make_engine
from marketplace.services.records import BookingRecord, BookingStatus
from marketplace.services.slots import BookingConfig, DayRule, ScheduleTemplate
from marketplace.services.slots.locks import LocalSlotLocks
from marketplace.services.slots.schedule import default_template
from marketplace.services.store import InMemoryBookingStore, SqlBookingStore

FIXED_NOW = datetime(2026, 10, 19, 14, 30)


def next_weekday(start: date, weekday: int) -> date:
    """First date strictly after start with the given weekday (0 = Sunday)."""
    current = start + timedelta(days=1)
    while current.isoweekday() % 7 != weekday:
        current += timedelta(days=1)
    return current


def make_booking(
    provider_id: int,
    day: date,
    minute: int,
    status: BookingStatus = BookingStatus.CONFIRMED,
    customer_id: str = "customer-1",
) -> BookingRecord:
    return BookingRecord(
        provider_id=provider_id,
        customer_id=customer_id,
        scheduled_date=day,
        scheduled_time=minute,
        status=status,
    )


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def config() -> BookingConfig:
    """Fast backoff so contention tests stay quick."""
    return BookingConfig(backoff_base_seconds=0.01, backoff_max_seconds=0.05)


@pytest.fixture
def weekday_template() -> ScheduleTemplate:
    """Mon–Fri 09:00–17:00, weekend closed."""
    return default_template()


@pytest.fixture
def every_day_template() -> ScheduleTemplate:
    return ScheduleTemplate(days={d: DayRule(True, 540, 1020) for d in range(7)})


@pytest.fixture
def memory_store() -> InMemoryBookingStore:
    return InMemoryBookingStore()


@pytest.fixture
def provider(memory_store, every_day_template):
    return memory_store.create_provider("Spotless Cleaning", every_day_template, category="cleaning")


@pytest.fixture
def locks() -> LocalSlotLocks:
    return LocalSlotLocks()


@pytest.fixture
def session_factory(tmp_path) -> sessionmaker:
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sql_store(db_session) -> SqlBookingStore:
    return SqlBookingStore(db_session)


@pytest.fixture
def client(session_factory, clock, config) -> Generator[TestClient, None, None]:
    """API client on a temporary SQLite database with a fixed clock."""
    from marketplace import dependencies
    from marketplace.main import app

    slot_locks = LocalSlotLocks()

    def override_store():
        session = session_factory()
        try:
            yield SqlBookingStore(session)
        finally:
            session.close()

    app.dependency_overrides[dependencies.get_store] = override_store
    app.dependency_overrides[dependencies.get_clock] = lambda: clock
    app.dependency_overrides[dependencies.get_slot_locks] = lambda: slot_locks
    app.dependency_overrides[dependencies.get_config] = lambda: config
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
