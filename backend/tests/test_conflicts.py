"""Tests for the conflict filter."""

from datetime import timedelta

from marketplace.services.records import BookingStatus
from marketplace.services.slots.conflicts import (
    booked_minutes_for_date,
    filter_available,
    is_slot_in_past,
)

from conftest import make_booking

ALL_DAY = [540, 600, 660, 720, 780, 840, 900, 960]


class TestBookingConflicts:

    def test_active_bookings_remove_slots(self, now):
        day = now.date() + timedelta(days=2)
        bookings = [
            make_booking(1, day, 600, BookingStatus.PENDING),
            make_booking(1, day, 720, BookingStatus.CONFIRMED),
        ]
        assert filter_available(ALL_DAY, bookings, now, False, day) == [540, 660, 780, 840, 900, 960]

    def test_rejected_and_completed_do_not_block(self, now):
        day = now.date() + timedelta(days=2)
        bookings = [
            make_booking(1, day, 600, BookingStatus.REJECTED),
            make_booking(1, day, 660, BookingStatus.COMPLETED),
        ]
        assert filter_available(ALL_DAY, bookings, now, False, day) == ALL_DAY

    def test_bookings_on_other_dates_ignored(self, now):
        day = now.date() + timedelta(days=2)
        bookings = [make_booking(1, day + timedelta(days=1), 600)]
        assert filter_available(ALL_DAY, bookings, now, False, day) == ALL_DAY

    def test_duplicate_bookings_count_once(self, now):
        day = now.date() + timedelta(days=2)
        bookings = [
            make_booking(1, day, 600, BookingStatus.PENDING, customer_id="a"),
            make_booking(1, day, 600, BookingStatus.PENDING, customer_id="b"),
        ]
        assert filter_available(ALL_DAY, bookings, now, False, day) == [540] + ALL_DAY[2:]
        assert booked_minutes_for_date(bookings, day) == [600]

    def test_filter_is_idempotent(self, now):
        day = now.date()
        bookings = [make_booking(1, day, 900), make_booking(1, day, 540)]
        once = filter_available(ALL_DAY, bookings, now, True, day)
        twice = filter_available(once, bookings, now, True, day)
        assert once == twice == [960]


class TestPastSlots:

    def test_today_past_slots_removed(self, now):
        """now = 14:30: 09:00 is gone, 15:00 stays."""
        today = now.date()
        result = filter_available(ALL_DAY, [], now, True, today)
        assert 540 not in result
        assert 900 in result
        assert result == [900, 960]

    def test_slot_starting_now_is_past(self, now):
        today = now.date()
        minute = now.hour * 60 + now.minute
        assert is_slot_in_past(today, minute, now)
        assert filter_available([minute], [], now, True, today) == []

    def test_other_dates_never_filtered_for_pastness(self, now):
        yesterday = now.date() - timedelta(days=1)
        assert filter_available(ALL_DAY, [], now, False, yesterday) == ALL_DAY
