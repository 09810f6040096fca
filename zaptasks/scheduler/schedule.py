"""Schedule value types and their at-rest string format.

A schedule is stored on each task as a compact JSON object with a ``type``
discriminator plus variant-specific keys::

    {"type": "daily", "time": "09:00"}
    {"type": "hourly", "minute": 30}
    {"type": "weekly", "day": "Monday", "time": "08:00"}
    {"type": "monthly", "day": 15, "time": "09:00"}
    {"type": "customMinutes", "intervalMinutes": 15}

Weekday names are fixed English names so the stored form does not depend on
the process locale.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

# Index 0 is Sunday, matching the order of the stored names
WEEKDAYS: tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

_TIME_RE = re.compile(r"([0-9]{2}):([0-9]{2})")

# One day
MAX_INTERVAL_MINUTES = 1440


class ScheduleError(ValueError):
    """Raised when a schedule variant is constructed with invalid fields."""


def format_time(hour: int, minute: int) -> str:
    """Return a zero-padded 24-hour ``HH:MM`` string."""
    return f"{hour:02d}:{minute:02d}"


def split_time(value: str) -> tuple[int, int]:
    """Split an ``HH:MM`` string into ``(hour, minute)``.

    Raises:
        ScheduleError: If the value is not a valid zero-padded 24-hour time.
    """
    m = _TIME_RE.fullmatch(value) if isinstance(value, str) else None
    if m is None:
        msg = f"Invalid time {value!r}, expected HH:MM"
        raise ScheduleError(msg)
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        msg = f"Time out of range: {value!r}"
        raise ScheduleError(msg)
    return hour, minute


def _require_int(value: Any, field: str) -> int:
    # bool is an int subclass; "true" is not a minute
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{field} must be an integer, got {value!r}"
        raise ScheduleError(msg)
    return value


# -- Variants ------------------------------------------------------------------


@dataclass(frozen=True)
class Daily:
    """Runs once a day at ``time``."""

    type_tag: ClassVar[str] = "daily"
    time: str

    def __post_init__(self) -> None:
        split_time(self.time)

    @property
    def hour(self) -> int:
        return split_time(self.time)[0]

    @property
    def minute(self) -> int:
        return split_time(self.time)[1]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_tag, "time": self.time}


@dataclass(frozen=True)
class Hourly:
    """Runs once an hour at ``minute`` past the hour."""

    type_tag: ClassVar[str] = "hourly"
    minute: int

    def __post_init__(self) -> None:
        _require_int(self.minute, "minute")
        if not 0 <= self.minute <= 59:
            msg = f"minute must be 0..59, got {self.minute}"
            raise ScheduleError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_tag, "minute": self.minute}


@dataclass(frozen=True)
class Weekly:
    """Runs once a week on ``weekday`` at ``time``."""

    type_tag: ClassVar[str] = "weekly"
    weekday: str
    time: str

    def __post_init__(self) -> None:
        if self.weekday not in WEEKDAYS:
            msg = f"Unknown weekday {self.weekday!r}"
            raise ScheduleError(msg)
        split_time(self.time)

    @property
    def hour(self) -> int:
        return split_time(self.time)[0]

    @property
    def minute(self) -> int:
        return split_time(self.time)[1]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_tag, "day": self.weekday, "time": self.time}


@dataclass(frozen=True)
class Monthly:
    """Runs once a month on ``day`` at ``time``."""

    type_tag: ClassVar[str] = "monthly"
    day: int
    time: str

    def __post_init__(self) -> None:
        _require_int(self.day, "day")
        if not 1 <= self.day <= 31:
            msg = f"day must be 1..31, got {self.day}"
            raise ScheduleError(msg)
        split_time(self.time)

    @property
    def hour(self) -> int:
        return split_time(self.time)[0]

    @property
    def minute(self) -> int:
        return split_time(self.time)[1]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_tag, "day": self.day, "time": self.time}


@dataclass(frozen=True)
class EveryNMinutes:
    """Runs whenever the minute of the hour is a multiple of ``interval_minutes``."""

    type_tag: ClassVar[str] = "customMinutes"
    interval_minutes: int

    def __post_init__(self) -> None:
        _require_int(self.interval_minutes, "intervalMinutes")
        if not 1 <= self.interval_minutes <= MAX_INTERVAL_MINUTES:
            msg = f"intervalMinutes must be 1..{MAX_INTERVAL_MINUTES}, got {self.interval_minutes}"
            raise ScheduleError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_tag, "intervalMinutes": self.interval_minutes}


Schedule = Daily | Hourly | Weekly | Monthly | EveryNMinutes


# -- Serialization -------------------------------------------------------------


def serialize(schedule: Schedule) -> str:
    """Return the stored string form of a schedule."""
    return json.dumps(schedule.to_dict())


def _from_dict(data: dict[str, Any]) -> Schedule:
    kind = data.get("type")
    try:
        if kind == Daily.type_tag:
            return Daily(time=data["time"])
        if kind == Hourly.type_tag:
            return Hourly(minute=data["minute"])
        if kind == Weekly.type_tag:
            return Weekly(weekday=data["day"], time=data["time"])
        if kind == Monthly.type_tag:
            return Monthly(day=data["day"], time=data["time"])
        if kind == EveryNMinutes.type_tag:
            return EveryNMinutes(interval_minutes=data["intervalMinutes"])
    except KeyError as exc:
        msg = f"Missing field {exc.args[0]!r} for {kind} schedule"
        raise ScheduleError(msg) from exc
    msg = f"Unknown schedule type {kind!r}"
    raise ScheduleError(msg)


def parse(text: str | None) -> Schedule | None:
    """Parse a stored schedule string. Returns None if it is malformed."""
    if not text:
        return None
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        logger.debug("Schedule is not valid JSON: %r", text)
        return None
    if not isinstance(data, dict):
        logger.debug("Schedule is not a JSON object: %r", text)
        return None
    try:
        return _from_dict(data)
    except ScheduleError as exc:
        logger.debug("Invalid schedule %r: %s", text, exc)
        return None


def describe(schedule: Schedule | None) -> str:
    """Return the human-readable summary shown next to a task."""
    if isinstance(schedule, Daily):
        return f"Daily at {schedule.time}"
    if isinstance(schedule, Hourly):
        return f"Hourly at minute {schedule.minute}"
    if isinstance(schedule, Weekly):
        return f"Weekly on {schedule.weekday} at {schedule.time}"
    if isinstance(schedule, Monthly):
        return f"Monthly on day {schedule.day} at {schedule.time}"
    if isinstance(schedule, EveryNMinutes):
        return f"Every {schedule.interval_minutes} minutes"
    return "Not Scheduled"
