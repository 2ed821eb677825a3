"""Tests for schedule template parsing and validation."""

from datetime import date

import pytest

from marketplace.errors import InvalidScheduleError
from marketplace.services.slots.schedule import (
    DayRule,
    ScheduleTemplate,
    day_name,
    default_template,
    parse_template,
    validate_template,
    weekday_index,
)


def _raw(**overrides):
    raw = {str(d): {"is_open": True, "start_minute": 540, "end_minute": 1020} for d in range(7)}
    raw.update(overrides)
    return raw


class TestWeekdayIndex:
    """Sunday is weekday 0."""

    def test_sunday_is_zero(self):
        assert weekday_index(date(2026, 10, 18)) == 0
        assert day_name(date(2026, 10, 18)) == "Sunday"

    def test_saturday_is_six(self):
        assert weekday_index(date(2026, 10, 24)) == 6
        assert day_name(date(2026, 10, 24)) == "Saturday"


class TestValidateTemplate:

    def test_valid_template(self):
        validate_template(default_template())

    def test_missing_weekday(self):
        days = {d: DayRule(True, 540, 1020) for d in range(6)}
        with pytest.raises(InvalidScheduleError, match="missing"):
            validate_template(ScheduleTemplate(days=days))

    def test_start_not_before_end(self):
        days = {d: DayRule(True, 540, 1020) for d in range(7)}
        days[3] = DayRule(True, 1020, 1020)
        with pytest.raises(InvalidScheduleError, match="Wednesday"):
            validate_template(ScheduleTemplate(days=days))

    def test_closed_day_window_is_not_checked(self):
        days = {d: DayRule(True, 540, 1020) for d in range(7)}
        days[0] = DayRule(False, 1020, 540)
        validate_template(ScheduleTemplate(days=days))

    def test_minute_out_of_range(self):
        days = {d: DayRule(True, 540, 1020) for d in range(7)}
        days[1] = DayRule(True, 540, 1440)
        with pytest.raises(InvalidScheduleError):
            validate_template(ScheduleTemplate(days=days))


class TestParseTemplate:

    def test_parse_json_string(self):
        template = parse_template(default_template().to_json())
        assert template == default_template()

    def test_accepts_legacy_field_names_and_time_strings(self):
        raw = _raw(**{"2": {"available": True, "startTime": "10:30", "endTime": "15:00"}})
        template = parse_template(raw)
        assert template.days[2] == DayRule(True, 630, 900)

    def test_closed_day_without_times(self):
        template = parse_template(_raw(**{"0": {"is_open": False}}))
        assert template.days[0].is_open is False

    def test_open_day_without_times(self):
        with pytest.raises(InvalidScheduleError, match="needs start and end"):
            parse_template(_raw(**{"1": {"is_open": True}}))

    def test_unknown_weekday_key(self):
        raw = _raw()
        raw["7"] = {"is_open": False}
        with pytest.raises(InvalidScheduleError, match="Unknown weekday"):
            parse_template(raw)

    def test_bad_time_string(self):
        with pytest.raises(InvalidScheduleError, match="invalid time"):
            parse_template(_raw(**{"1": {"is_open": True, "start": "nine", "end": "17:00"}}))

    def test_not_json(self):
        with pytest.raises(InvalidScheduleError, match="not valid JSON"):
            parse_template("{not json")

    def test_not_an_object(self):
        with pytest.raises(InvalidScheduleError):
            parse_template("[1, 2, 3]")


class TestDefaultTemplate:

    def test_weekdays_open_weekend_closed(self):
        template = default_template()
        assert [template.days[d].is_open for d in range(7)] == [False, True, True, True, True, True, False]
        assert template.days[1].working_hours == "09:00 - 17:00"
