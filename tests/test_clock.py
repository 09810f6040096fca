"""Tests for is_due / next_run calendar arithmetic."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from zaptasks.scheduler.clock import effective_day, is_due, next_run, weekday_name
from zaptasks.scheduler.schedule import (
    Daily,
    EveryNMinutes,
    Hourly,
    Monthly,
    Weekly,
    serialize,
)

# 2025-01-06 is a Monday
MONDAY = datetime(2025, 1, 6)


def _at(hour: int, minute: int, second: int = 0, base: datetime = MONDAY) -> datetime:
    return base.replace(hour=hour, minute=minute, second=second)


# -- helpers -------------------------------------------------------------------


def test_weekday_name() -> None:
    assert weekday_name(MONDAY) == "Monday"
    assert weekday_name(datetime(2025, 1, 5)) == "Sunday"
    assert weekday_name(datetime(2025, 1, 11)) == "Saturday"


def test_effective_day_clamps_to_month_length() -> None:
    assert effective_day(31, 2025, 4) == 30
    assert effective_day(31, 2025, 2) == 28
    assert effective_day(31, 2024, 2) == 29
    assert effective_day(15, 2025, 2) == 15


# -- is_due: daily -------------------------------------------------------------


def test_daily_due_at_exact_minute() -> None:
    assert is_due(Daily(time="09:00"), _at(9, 0)) is True


def test_daily_ignores_seconds() -> None:
    assert is_due(Daily(time="09:00"), _at(9, 0, 45)) is True


def test_daily_not_due_next_minute() -> None:
    assert is_due(Daily(time="09:00"), _at(9, 1)) is False
    assert is_due(Daily(time="09:00"), _at(21, 0)) is False


# -- is_due: hourly ------------------------------------------------------------


@pytest.mark.parametrize("hour", [0, 7, 13, 23])
def test_hourly_due_at_matching_minute_of_any_hour(hour: int) -> None:
    assert is_due(Hourly(minute=30), _at(hour, 30)) is True


def test_hourly_not_due_other_minutes() -> None:
    assert is_due(Hourly(minute=30), _at(9, 29)) is False
    assert is_due(Hourly(minute=30), _at(9, 31)) is False


# -- is_due: weekly ------------------------------------------------------------


def test_weekly_due_on_weekday_and_time() -> None:
    assert is_due(Weekly(weekday="Monday", time="08:00"), _at(8, 0)) is True


def test_weekly_not_due_on_other_day() -> None:
    tuesday = MONDAY + timedelta(days=1)
    assert is_due(Weekly(weekday="Monday", time="08:00"), _at(8, 0, base=tuesday)) is False


def test_weekly_not_due_at_other_time() -> None:
    assert is_due(Weekly(weekday="Monday", time="08:00"), _at(8, 1)) is False


# -- is_due: monthly -----------------------------------------------------------


def test_monthly_due_on_day_and_time() -> None:
    assert is_due(Monthly(day=15, time="09:00"), datetime(2025, 1, 15, 9, 0)) is True
    assert is_due(Monthly(day=15, time="09:00"), datetime(2025, 1, 16, 9, 0)) is False
    assert is_due(Monthly(day=15, time="09:00"), datetime(2025, 1, 15, 9, 5)) is False


def test_monthly_day_past_month_end_fires_on_last_day() -> None:
    schedule = Monthly(day=31, time="09:00")
    assert is_due(schedule, datetime(2025, 4, 30, 9, 0)) is True
    assert is_due(schedule, datetime(2025, 2, 28, 9, 0)) is True
    # March has 31 days, so the 30th is not the effective day
    assert is_due(schedule, datetime(2025, 3, 30, 9, 0)) is False
    assert is_due(schedule, datetime(2025, 3, 31, 9, 0)) is True


# -- is_due: every N minutes ---------------------------------------------------


@pytest.mark.parametrize("minute", [0, 15, 30, 45])
def test_every_n_due_on_multiples(minute: int) -> None:
    assert is_due(EveryNMinutes(interval_minutes=15), _at(10, minute)) is True


@pytest.mark.parametrize("minute", [1, 10, 44, 59])
def test_every_n_not_due_between_multiples(minute: int) -> None:
    assert is_due(EveryNMinutes(interval_minutes=15), _at(10, minute)) is False


def test_every_n_anchored_to_top_of_hour() -> None:
    # 7 does not divide 60: fires at :56 and again at :00
    schedule = EveryNMinutes(interval_minutes=7)
    assert is_due(schedule, _at(10, 56)) is True
    assert is_due(schedule, _at(11, 0)) is True
    assert is_due(schedule, _at(11, 3)) is False


# -- is_due: input forms -------------------------------------------------------


def test_is_due_accepts_serialized_string() -> None:
    assert is_due(serialize(Daily(time="09:00")), _at(9, 0)) is True


@pytest.mark.parametrize("schedule", [None, "", "garbage", '{"type": "nope"}'])
def test_is_due_malformed_is_false(schedule) -> None:
    assert is_due(schedule, _at(9, 0)) is False


def test_is_due_uses_wall_clock_of_aware_datetime() -> None:
    chicago = datetime(2025, 1, 6, 9, 0, tzinfo=ZoneInfo("America/Chicago"))
    assert is_due(Daily(time="09:00"), chicago) is True
    assert is_due(Daily(time="09:00"), chicago.astimezone(ZoneInfo("UTC"))) is False


# -- next_run: daily -----------------------------------------------------------


def test_daily_next_run_rolls_to_next_day() -> None:
    assert next_run(Daily(time="00:00"), _at(23, 59)) == datetime(2025, 1, 7, 0, 0)


def test_daily_next_run_later_today() -> None:
    assert next_run(Daily(time="09:00"), _at(8, 0)) == _at(9, 0)


def test_daily_next_run_is_strictly_after_from() -> None:
    assert next_run(Daily(time="09:00"), _at(9, 0)) == datetime(2025, 1, 7, 9, 0)


def test_daily_next_run_rolls_year() -> None:
    assert next_run(Daily(time="08:00"), datetime(2025, 12, 31, 23, 30)) == datetime(
        2026, 1, 1, 8, 0
    )


def test_daily_next_run_keeps_wall_clock_across_dst() -> None:
    tz = ZoneInfo("America/Chicago")
    # DST starts 2025-03-09 in the US
    result = next_run(Daily(time="09:00"), datetime(2025, 3, 8, 10, 0, tzinfo=tz))
    assert result == datetime(2025, 3, 9, 9, 0, tzinfo=tz)
    assert result.utcoffset() == timedelta(hours=-5)


# -- next_run: hourly ----------------------------------------------------------


def test_hourly_next_run_later_this_hour() -> None:
    assert next_run(Hourly(minute=45), _at(9, 30)) == _at(9, 45)


def test_hourly_next_run_wraps_to_next_hour() -> None:
    assert next_run(Hourly(minute=15), _at(9, 30)) == _at(10, 15)


def test_hourly_next_run_same_minute_is_next_hour() -> None:
    assert next_run(Hourly(minute=30), _at(9, 30)) == _at(10, 30)


def test_hourly_next_run_is_flat_offset() -> None:
    assert next_run(Hourly(minute=45), _at(9, 30, 20)) == _at(9, 45, 20)


def test_hourly_next_run_crosses_midnight() -> None:
    assert next_run(Hourly(minute=5), _at(23, 50)) == datetime(2025, 1, 7, 0, 5)


# -- next_run: weekly ----------------------------------------------------------


def test_weekly_next_run_same_day_before_time() -> None:
    assert next_run(Weekly(weekday="Monday", time="08:00"), _at(7, 0)) == _at(8, 0)


def test_weekly_next_run_same_day_after_time_is_next_week() -> None:
    assert next_run(Weekly(weekday="Monday", time="08:00"), _at(9, 0)) == datetime(
        2025, 1, 13, 8, 0
    )


def test_weekly_next_run_later_in_week() -> None:
    wednesday = datetime(2025, 1, 8, 12, 0)
    assert next_run(Weekly(weekday="Friday", time="17:30"), wednesday) == datetime(
        2025, 1, 10, 17, 30
    )


def test_weekly_next_run_wraps_week() -> None:
    wednesday = datetime(2025, 1, 8, 12, 0)
    assert next_run(Weekly(weekday="Monday", time="08:00"), wednesday) == datetime(
        2025, 1, 13, 8, 0
    )


def test_weekly_next_run_from_sunday() -> None:
    sunday = datetime(2025, 1, 5, 22, 0)
    assert next_run(Weekly(weekday="Monday", time="08:00"), sunday) == _at(8, 0)


# -- next_run: monthly ---------------------------------------------------------


def test_monthly_next_run_this_month() -> None:
    assert next_run(Monthly(day=15, time="09:00"), datetime(2025, 1, 10)) == datetime(
        2025, 1, 15, 9, 0
    )


def test_monthly_next_run_next_month_when_passed() -> None:
    assert next_run(Monthly(day=15, time="09:00"), datetime(2025, 1, 15, 10, 0)) == datetime(
        2025, 2, 15, 9, 0
    )


def test_monthly_next_run_december_rolls_to_january() -> None:
    assert next_run(Monthly(day=15, time="09:00"), datetime(2025, 12, 20)) == datetime(
        2026, 1, 15, 9, 0
    )


def test_monthly_next_run_clamps_short_month() -> None:
    assert next_run(Monthly(day=31, time="09:00"), datetime(2025, 3, 31, 10, 0)) == datetime(
        2025, 4, 30, 9, 0
    )
    assert next_run(Monthly(day=30, time="09:00"), datetime(2025, 1, 31)) == datetime(
        2025, 2, 28, 9, 0
    )


def test_monthly_next_run_leap_february() -> None:
    assert next_run(Monthly(day=30, time="09:00"), datetime(2024, 1, 31)) == datetime(
        2024, 2, 29, 9, 0
    )


def test_monthly_next_run_clamped_day_this_month() -> None:
    # Day 31 in April resolves to the 30th, still ahead of the 29th
    assert next_run(Monthly(day=31, time="09:00"), datetime(2025, 4, 29)) == datetime(
        2025, 4, 30, 9, 0
    )


# -- next_run: every N minutes -------------------------------------------------


def test_every_n_next_run_within_window() -> None:
    assert next_run(EveryNMinutes(interval_minutes=15), _at(9, 7)) == _at(9, 15)


def test_every_n_next_run_on_boundary_is_next_window() -> None:
    assert next_run(EveryNMinutes(interval_minutes=15), _at(9, 15)) == _at(9, 30)


def test_every_n_next_run_crosses_hour() -> None:
    assert next_run(EveryNMinutes(interval_minutes=15), _at(9, 50)) == _at(10, 0)
    # 58 % 7 == 2, so five more minutes
    assert next_run(EveryNMinutes(interval_minutes=7), _at(9, 58)) == _at(10, 3)


# -- next_run: malformed -------------------------------------------------------


@pytest.mark.parametrize("schedule", [None, "", "garbage", '{"type": "daily", "time": "x"}'])
def test_next_run_malformed_is_none(schedule) -> None:
    assert next_run(schedule, _at(9, 0)) is None


def test_next_run_accepts_serialized_string() -> None:
    assert next_run(serialize(Hourly(minute=45)), _at(9, 30)) == _at(9, 45)


@pytest.mark.parametrize(
    "schedule",
    [
        Daily(time="09:00"),
        Hourly(minute=0),
        Weekly(weekday="Sunday", time="00:00"),
        Monthly(day=31, time="23:59"),
        EveryNMinutes(interval_minutes=60),
    ],
)
def test_next_run_always_after_from(schedule) -> None:
    start = datetime(2025, 1, 1)
    for hours in range(0, 24 * 70, 7):
        instant = start + timedelta(hours=hours, minutes=hours % 60)
        assert next_run(schedule, instant) > instant


def test_weekly_next_run_keeps_wall_clock_across_dst() -> None:
    tz = ZoneInfo("America/Chicago")
    result = next_run(
        Weekly(weekday="Sunday", time="09:00"), datetime(2025, 3, 2, 10, 0, tzinfo=tz)
    )
    assert result == datetime(2025, 3, 9, 9, 0, tzinfo=tz)
    assert result.utcoffset() == timedelta(hours=-5)


def test_next_run_with_fixed_offset_zone() -> None:
    tz = timezone(timedelta(hours=2))
    result = next_run(Daily(time="09:00"), datetime(2025, 1, 6, 9, 0, tzinfo=tz))
    assert result == datetime(2025, 1, 7, 9, 0, tzinfo=tz)
    assert result.tzinfo == tz


def test_next_run_keeps_naive_input_naive() -> None:
    assert next_run(Weekly(weekday="Friday", time="17:30"), _at(9, 0)).tzinfo is None
