# backend/marketplace/services/slots/schedule.py
"""
Weekly schedule template of a provider.

Stored as JSON text on the provider row:

    {"0": {"is_open": false, "start_minute": 540, "end_minute": 1020},
     "1": {"is_open": true,  "start_minute": 540, "end_minute": 1020},
     ...
     "6": {...}}

Keys are weekday indices, 0 = Sunday .. 6 = Saturday.
For input, start/end may also be "HH:MM" strings and the legacy
{"available", "startTime", "endTime"} field names are accepted.
"""

import json
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

from ...errors import InvalidScheduleError
from .config import MINUTES_PER_DAY, minutes_to_time_str, time_str_to_minutes

WEEKDAYS = range(7)
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

_OPEN_KEYS = ("is_open", "isOpen", "available")
_START_KEYS = ("start_minute", "start", "startTime")
_END_KEYS = ("end_minute", "end", "endTime")


@dataclass(frozen=True)
class DayRule:
    is_open: bool
    start_minute: int = 9 * 60
    end_minute: int = 17 * 60

    @property
    def working_hours(self) -> str:
        return f"{minutes_to_time_str(self.start_minute)} - {minutes_to_time_str(self.end_minute)}"

    def to_dict(self) -> dict:
        return {
            "is_open": self.is_open,
            "start_minute": self.start_minute,
            "end_minute": self.end_minute,
        }


CLOSED_DAY = DayRule(is_open=False)


@dataclass(frozen=True)
class ScheduleTemplate:
    days: Mapping[int, DayRule]

    def rule_for(self, target_date: date) -> DayRule:
        return self.days.get(weekday_index(target_date), CLOSED_DAY)

    def to_dict(self) -> dict[str, dict]:
        return {str(weekday): self.days[weekday].to_dict() for weekday in sorted(self.days)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def weekday_index(target_date: date) -> int:
    """Weekday of a date, 0 = Sunday .. 6 = Saturday."""
    return target_date.isoweekday() % 7


def day_name(target_date: date) -> str:
    return DAY_NAMES[weekday_index(target_date)]


def validate_template(template: ScheduleTemplate) -> None:
    """
    Check that all seven weekdays are present and every open day has
    a non-empty working window inside the day.

    Raises:
        InvalidScheduleError
    """
    missing = [weekday for weekday in WEEKDAYS if weekday not in template.days]
    if missing:
        raise InvalidScheduleError(f"Schedule is missing weekdays: {missing}")

    extra = sorted(set(template.days) - set(WEEKDAYS))
    if extra:
        raise InvalidScheduleError(f"Unknown weekday keys: {extra}")

    for weekday, rule in template.days.items():
        if not rule.is_open:
            continue
        for value in (rule.start_minute, rule.end_minute):
            if not 0 <= value < MINUTES_PER_DAY:
                raise InvalidScheduleError(
                    f"{DAY_NAMES[weekday]}: minute {value} outside [0, {MINUTES_PER_DAY})"
                )
        if rule.start_minute >= rule.end_minute:
            raise InvalidScheduleError(
                f"{DAY_NAMES[weekday]}: start {minutes_to_time_str(rule.start_minute)} "
                f"must be before end {minutes_to_time_str(rule.end_minute)}"
            )


def parse_template(raw: str | Mapping[Any, Any]) -> ScheduleTemplate:
    """
    Build and validate a template from stored JSON or an API payload.

    Raises:
        InvalidScheduleError
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidScheduleError(f"Schedule is not valid JSON: {e}") from e

    if not isinstance(raw, Mapping):
        raise InvalidScheduleError("Schedule must be an object keyed by weekday")

    days: dict[int, DayRule] = {}
    for key, value in raw.items():
        try:
            weekday = int(key)
        except (TypeError, ValueError):
            raise InvalidScheduleError(f"Weekday key must be 0..6, got {key!r}") from None
        days[weekday] = _parse_day_rule(weekday, value)

    template = ScheduleTemplate(days=days)
    validate_template(template)
    return template


def default_template() -> ScheduleTemplate:
    """Mon–Fri 09:00–17:00, weekend closed."""
    days = {weekday: DayRule(is_open=weekday in range(1, 6)) for weekday in WEEKDAYS}
    return ScheduleTemplate(days=days)


# ── Helpers ──────────────────────────────────────────────────────────────


def _parse_day_rule(weekday: int, value: Any) -> DayRule:
    if isinstance(value, DayRule):
        return value
    if hasattr(value, "model_dump"):
        value = value.model_dump()
    if not isinstance(value, Mapping):
        raise InvalidScheduleError(f"Weekday {weekday}: rule must be an object")

    is_open = bool(_first(value, _OPEN_KEYS, False))
    start = _first(value, _START_KEYS, None)
    end = _first(value, _END_KEYS, None)

    if start is None or end is None:
        if is_open:
            raise InvalidScheduleError(f"{DAY_NAMES[weekday % 7]}: open day needs start and end")
        return CLOSED_DAY

    return DayRule(
        is_open=is_open,
        start_minute=_to_minutes(weekday, start),
        end_minute=_to_minutes(weekday, end),
    )


def _first(value: Mapping, keys: tuple[str, ...], default: Any) -> Any:
    for key in keys:
        if key in value:
            return value[key]
    return default


def _to_minutes(weekday: int, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidScheduleError(f"Weekday {weekday}: invalid time {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return time_str_to_minutes(value)
        except ValueError:
            pass
    raise InvalidScheduleError(f"Weekday {weekday}: invalid time {value!r}")
