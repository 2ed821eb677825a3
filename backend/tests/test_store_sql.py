"""Tests for the SQLAlchemy booking store."""

from datetime import date

import pytest

from marketplace.services.records import BookingStatus
from marketplace.services.slots.schedule import default_template
from marketplace.services.store import CreateResult, template_from_json

from conftest import make_booking

DAY = date(2026, 10, 21)


@pytest.fixture
def sql_provider(sql_store, every_day_template):
    return sql_store.create_provider(
        "Spotless Cleaning", every_day_template, description="Homes and offices", category="cleaning"
    )


class TestProviders:

    def test_create_and_get(self, sql_store, sql_provider, every_day_template):
        fetched = sql_store.get_provider(sql_provider.id)
        assert fetched.display_name == "Spotless Cleaning"
        assert fetched.category == "cleaning"
        assert fetched.is_active is True
        assert sql_store.get_schedule_template(sql_provider.id) == every_day_template

    def test_missing(self, sql_store):
        assert sql_store.get_provider(123) is None
        assert sql_store.get_schedule_template(123) is None

    def test_provider_without_schedule(self, sql_store):
        provider = sql_store.create_provider("No hours")
        assert sql_store.get_schedule_template(provider.id) is None

    def test_replace_schedule(self, sql_store, sql_provider):
        sql_store.set_schedule_template(sql_provider.id, default_template())
        assert sql_store.get_schedule_template(sql_provider.id) == default_template()

    def test_replace_schedule_unknown_provider(self, sql_store):
        with pytest.raises(LookupError):
            sql_store.set_schedule_template(999, default_template())

    def test_list_providers(self, sql_store, sql_provider):
        other = sql_store.create_provider("Green Gardens", category="garden")
        assert [p.id for p in sql_store.list_providers()] == [sql_provider.id, other.id]


class TestCreateIfAbsent:

    def test_created(self, sql_store, sql_provider):
        result, created = sql_store.create_if_absent(
            make_booking(sql_provider.id, DAY, 600, BookingStatus.PENDING)
        )
        assert result is CreateResult.CREATED
        assert created.id is not None
        assert created.status is BookingStatus.PENDING
        assert created.scheduled_date == DAY
        assert created.created_at is not None

    def test_active_slot_blocks(self, sql_store, sql_provider):
        sql_store.create_if_absent(make_booking(sql_provider.id, DAY, 600, BookingStatus.PENDING))
        result, created = sql_store.create_if_absent(
            make_booking(sql_provider.id, DAY, 600, BookingStatus.PENDING, customer_id="customer-2")
        )
        assert result is CreateResult.ALREADY_EXISTS
        assert created is None

    def test_rebook_after_rejection(self, sql_store, sql_provider):
        _, first = sql_store.create_if_absent(make_booking(sql_provider.id, DAY, 600, BookingStatus.PENDING))
        sql_store.update_booking_status(first.id, BookingStatus.REJECTED, decline_reason="Busy")

        result, second = sql_store.create_if_absent(
            make_booking(sql_provider.id, DAY, 600, BookingStatus.PENDING, customer_id="customer-2")
        )
        assert result is CreateResult.CREATED
        assert second.id != first.id

    def test_extra_round_trips(self, sql_store, sql_provider):
        from dataclasses import replace

        record = replace(
            make_booking(sql_provider.id, DAY, 660, BookingStatus.PENDING),
            service_name="Window cleaning",
            price=45.5,
            extra={"floor": 2},
        )
        _, created = sql_store.create_if_absent(record)
        fetched = sql_store.get_booking(created.id)
        assert fetched.extra == {"floor": 2}
        assert fetched.price == 45.5
        assert fetched.service_name == "Window cleaning"


class TestListBookings:

    def test_filters(self, sql_store, sql_provider):
        sql_store.create_if_absent(make_booking(sql_provider.id, DAY, 660, BookingStatus.PENDING))
        sql_store.create_if_absent(make_booking(sql_provider.id, DAY, 540, BookingStatus.CONFIRMED))
        sql_store.create_if_absent(make_booking(sql_provider.id, date(2026, 10, 22), 540, BookingStatus.PENDING))
        _, done = sql_store.create_if_absent(make_booking(sql_provider.id, DAY, 600, BookingStatus.PENDING))
        sql_store.update_booking_status(done.id, BookingStatus.COMPLETED)

        on_day = sql_store.list_bookings(sql_provider.id, DAY, DAY)
        assert [b.scheduled_time for b in on_day] == [540, 600, 660]

        pending = sql_store.list_bookings(sql_provider.id, statuses=[BookingStatus.PENDING])
        assert [(b.scheduled_date, b.scheduled_time) for b in pending] == [
            (DAY, 660),
            (date(2026, 10, 22), 540),
        ]

        assert sql_store.list_bookings(sql_provider.id + 1) == []

    def test_update_missing_booking(self, sql_store):
        with pytest.raises(LookupError):
            sql_store.update_booking_status(77, BookingStatus.CONFIRMED)


class TestTemplateFromJson:

    @pytest.mark.parametrize("raw", [None, "", "{}", "not json", '{"1": {"is_open": true}}'])
    def test_unusable_is_none(self, raw):
        assert template_from_json(raw, 1) is None

    def test_valid(self):
        assert template_from_json(default_template().to_json(), 1) == default_template()


class TestReset:

    def test_reset_rolls_back_session(self, sql_store, sql_provider):
        from marketplace.models.generated import Providers

        sql_store.db.add(Providers(display_name="Uncommitted"))
        sql_store.db.flush()
        sql_store.reset()

        assert [p.display_name for p in sql_store.list_providers()] == ["Spotless Cleaning"]
