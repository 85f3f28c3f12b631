from datetime import date, datetime

import pytest

from tawba.core.dates import (
    calculate_initial_estimate,
    calendar_day_diff,
    format_time_for_display,
    group_logs_by_date,
    parse_date,
    sort_logs,
    time_now,
    today_iso,
)
from tawba.tracker.types import LogType, PrayerLog, PrayerName


def make_log(day, logged_at, log_id):
    return PrayerLog(id=log_id, date=day, prayer=PrayerName.FAJR, type=LogType.QADA, count=1, logged_at=logged_at)


def test_calendar_day_diff_ignores_time_of_day():
    assert calendar_day_diff(datetime(2024, 1, 1, 23, 59), datetime(2024, 1, 2, 0, 1)) == 1
    assert calendar_day_diff("2024-01-01", "2024-01-11") == 10
    assert calendar_day_diff(date(2024, 3, 10), date(2024, 3, 10)) == 0


def test_calendar_day_diff_is_negative_when_end_is_earlier():
    assert calendar_day_diff("2024-01-11", "2024-01-01") == -10


def test_calendar_day_diff_across_leap_day():
    assert calendar_day_diff("2024-02-28", "2024-03-01") == 2


def test_parse_date_accepts_iso_with_time_part():
    assert parse_date("2024-05-06T10:00:00") == date(2024, 5, 6)


def test_parse_date_accepts_space_separated_datetime():
    assert parse_date("2024-05-06 23:59") == date(2024, 5, 6)


@pytest.mark.parametrize(
    "value",
    ["yesterday", "2024-03-01garbage", "2024-03-01Tnoon", "2024-13-01", "20240301", "", None, 20240301],
)
def test_parse_date_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_date(value)


def test_today_iso_with_explicit_day():
    assert today_iso(date(2024, 7, 4)) == "2024-07-04"


def test_time_now_format():
    assert time_now(datetime(2024, 1, 1, 7, 5)) == "07:05"


@pytest.mark.parametrize(
    "years, expected",
    [(0, 0), (1, 1825), (2.5, 4563), (0.0001, 0), (-1, 0), (float("nan"), 0), (float("inf"), 0), ("abc", 0)],
)
def test_calculate_initial_estimate(years, expected):
    assert calculate_initial_estimate(years) == expected


def test_format_time_for_display():
    assert format_time_for_display("00:05") == "12:05 AM"
    assert format_time_for_display("13:30") == "1:30 PM"
    assert format_time_for_display("12:00") == "12:00 PM"
    assert format_time_for_display("later") == "later"
    assert format_time_for_display("") == ""


def test_sort_and_group_logs_newest_first():
    logs = [
        make_log(date(2024, 1, 1), "08:00", 1),
        make_log(date(2024, 1, 2), "06:00", 2),
        make_log(date(2024, 1, 2), "21:00", 3),
    ]
    assert [log.id for log in sort_logs(logs)] == [3, 2, 1]

    grouped = group_logs_by_date(logs)
    assert list(grouped) == ["2024-01-02", "2024-01-01"]
    assert [log.id for log in grouped["2024-01-02"]] == [3, 2]
