from datetime import date, datetime, timedelta, timezone

import pytest

from src.utils.rounding import finite_or_zero, round2, round_half_up
from src.utils.time_window import (
    days_ago,
    end_of_day,
    format_date,
    format_label,
    is_in_range,
    is_on_date,
    is_today,
    is_yesterday,
    parse_timestamp,
    start_of_day,
)

NOW = datetime(2024, 6, 15, 12, 0).astimezone()


def test_parse_timestamp_accepts_gameplan_and_iso_formats():
    assert parse_timestamp("2024-06-15 09:30:00") == datetime(2024, 6, 15, 9, 30).astimezone()
    parsed = parse_timestamp("2024-06-15T09:30:00Z")
    assert parsed == datetime(2024, 6, 15, 9, 30, tzinfo=timezone.utc)
    assert parsed.tzinfo is not None


def test_parse_timestamp_returns_none_for_invalid_values():
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None
    assert parse_timestamp("not-a-date") is None
    assert parse_timestamp(12345) is None


def test_predicates_are_false_for_absent_timestamps():
    assert is_today(None, NOW) is False
    assert is_yesterday(None, NOW) is False
    assert is_in_range(None, NOW - timedelta(days=1), NOW) is False
    assert is_on_date(None, NOW.date()) is False


def test_is_today_and_is_yesterday_use_local_calendar_day():
    assert is_today(NOW - timedelta(hours=1), NOW)
    assert not is_today(NOW - timedelta(days=1), NOW)
    assert is_yesterday(NOW - timedelta(days=1), NOW)
    assert not is_yesterday(NOW, NOW)


def test_is_in_range_includes_both_ends():
    start = NOW - timedelta(days=2)
    end = NOW
    assert is_in_range(start, start, end)
    assert is_in_range(end, start, end)
    assert not is_in_range(end + timedelta(seconds=1), start, end)


def test_days_ago_keeps_time_of_day():
    assert days_ago(7, NOW) == NOW - timedelta(days=7)


def test_labels_use_month_day_year():
    assert format_label(date(2024, 1, 5)) == "1/5/2024"
    assert format_date(date(2024, 1, 5)) == "Jan 5, 2024"


def test_round_half_up_rounds_midpoints_away_from_zero():
    assert round_half_up(2.5) == 3
    assert round2(100 / 3) == 33.33
    assert round2(66.666) == 66.67
    assert round_half_up(float("nan")) == 0.0


def test_start_and_end_of_day_bound_the_calendar_day():
    start = start_of_day(NOW)
    end = end_of_day(NOW)

    assert (start.hour, start.minute, start.second) == (0, 0, 0)
    assert (end.hour, end.minute, end.second, end.microsecond) == (23, 59, 59, 999999)
    assert is_in_range(NOW, start, end)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), -1.5])
def test_finite_or_zero_normalizes_invalid_scores(value):
    assert finite_or_zero(value) == 0.0


def test_finite_or_zero_keeps_valid_scores():
    assert finite_or_zero(42.5) == 42.5
