"""Due-ness and next-run arithmetic for schedules.

Everything here is pure: the instant to evaluate is always passed in, and
calendar fields are read from the datetime itself (its own wall clock). Aware
datetimes are evaluated in their own zone; day and month steps are wall-clock
steps, so a daily 09:00 stays at 09:00 across DST changes.
"""

from __future__ import annotations

import calendar
from datetime import UTC, datetime, timedelta

from apscheduler.triggers.cron import CronTrigger

from zaptasks.scheduler.schedule import (
    WEEKDAYS,
    Daily,
    EveryNMinutes,
    Hourly,
    Monthly,
    Schedule,
    Weekly,
    parse,
)


def _coerce(schedule: Schedule | str | None) -> Schedule | None:
    if isinstance(schedule, str):
        return parse(schedule)
    return schedule


def weekday_name(at: datetime) -> str:
    """Return the English weekday name of *at*."""
    # datetime.weekday() is Monday=0; WEEKDAYS starts on Sunday
    return WEEKDAYS[(at.weekday() + 1) % 7]


def effective_day(day: int, year: int, month: int) -> int:
    """Clamp a day-of-month to the length of the given month."""
    return min(day, calendar.monthrange(year, month)[1])


def _time_matches(hour: int, minute: int, at: datetime) -> bool:
    return at.hour == hour and at.minute == minute


# -- is_due --------------------------------------------------------------------


def is_due(schedule: Schedule | str | None, at: datetime) -> bool:
    """Return True if *schedule* fires in the minute containing *at*.

    Malformed schedules (including unparsable strings) are never due.
    """
    schedule = _coerce(schedule)

    if isinstance(schedule, Daily):
        return _time_matches(schedule.hour, schedule.minute, at)
    if isinstance(schedule, Hourly):
        return at.minute == schedule.minute
    if isinstance(schedule, Weekly):
        if weekday_name(at) != schedule.weekday:
            return False
        return _time_matches(schedule.hour, schedule.minute, at)
    if isinstance(schedule, Monthly):
        if at.day != effective_day(schedule.day, at.year, at.month):
            return False
        return _time_matches(schedule.hour, schedule.minute, at)
    if isinstance(schedule, EveryNMinutes):
        # Anchored to the top of the hour: same-n tasks fire in lock-step
        return at.minute % schedule.interval_minutes == 0
    return False


# -- next_run ------------------------------------------------------------------


def next_run(schedule: Schedule | str | None, from_: datetime) -> datetime | None:
    """Return the next instant after *from_* at which *schedule* fires.

    Returns None if the schedule is malformed.
    """
    schedule = _coerce(schedule)

    if isinstance(schedule, Daily):
        return _next_cron_fire(from_, hour=schedule.hour, minute=schedule.minute)
    if isinstance(schedule, Weekly):
        return _next_cron_fire(
            from_,
            day_of_week=schedule.weekday[:3].lower(),
            hour=schedule.hour,
            minute=schedule.minute,
        )
    if isinstance(schedule, Hourly):
        return _next_hourly(schedule, from_)
    if isinstance(schedule, Monthly):
        return _next_monthly(schedule, from_)
    if isinstance(schedule, EveryNMinutes):
        n = schedule.interval_minutes
        return from_ + timedelta(minutes=n - from_.minute % n)
    return None


def _next_cron_fire(from_: datetime, **fields: int | str) -> datetime:
    """Next cron fire time strictly after *from_*, in the same kind of datetime.

    Naive instants are evaluated as UTC wall clock, so no DST shift applies.
    """
    tz = from_.tzinfo or UTC
    trigger = CronTrigger(timezone=tz, **fields)
    after = from_.replace(tzinfo=tz) + timedelta(microseconds=1)
    fire = trigger.get_next_fire_time(None, after)
    if from_.tzinfo is None:
        return fire.replace(tzinfo=None)
    return fire.astimezone(from_.tzinfo)


# Hourly and every-N are flat minute offsets that keep the seconds of *from_*;
# cron would snap them to :00.


def _next_hourly(schedule: Hourly, from_: datetime) -> datetime:
    current = from_.minute
    if schedule.minute > current:
        minutes = schedule.minute - current
    else:
        minutes = 60 - (current - schedule.minute)
    return from_ + timedelta(minutes=minutes)


# Monthly clamps the day to the month's length; cron would skip short months.


def _next_monthly(schedule: Monthly, from_: datetime) -> datetime:
    candidate = _monthly_candidate(schedule, from_, from_.year, from_.month)
    if candidate > from_:
        return candidate
    year, month = from_.year, from_.month + 1
    if month == 13:
        year, month = year + 1, 1
    return _monthly_candidate(schedule, from_, year, month)


def _monthly_candidate(schedule: Monthly, base: datetime, year: int, month: int) -> datetime:
    day = effective_day(schedule.day, year, month)
    return base.replace(
        year=year,
        month=month,
        day=day,
        hour=schedule.hour,
        minute=schedule.minute,
        second=0,
        microsecond=0,
    )
