"""
Calendar-day helpers shared by the accounting and projection engines.
All day arithmetic is done on dates normalised to the start of the day.
"""
import math
from datetime import date, datetime, time
from itertools import groupby
from typing import Dict, Iterable, List, Optional, Union

DateLike = Union[date, datetime, str]

ISO_DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: DateLike) -> date:
    """Return a date for a date, datetime, 'YYYY-MM-DD' or full ISO datetime string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return datetime.strptime(text, ISO_DATE_FORMAT).date()
            if len(text) > 10 and text[10] in "T ":
                datetime.strptime(text[:10], ISO_DATE_FORMAT)
                return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise ValueError(f"Invalid calendar date: {value!r}")


def today(value: Optional[DateLike] = None) -> date:
    """Clock seam: the given value as a date, else the local date."""
    if value is None:
        return date.today()
    return parse_date(value)


def today_iso(value: Optional[DateLike] = None) -> str:
    return today(value).strftime(ISO_DATE_FORMAT)


def time_now(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return now.strftime("%H:%M")


def calendar_day_diff(start: DateLike, end: DateLike) -> int:
    """Whole calendar days from start to end, ignoring time of day (negative if end is earlier)."""
    start_day = datetime.combine(parse_date(start), time.min)
    end_day = datetime.combine(parse_date(end), time.min)
    return (end_day - start_day).days


def calculate_initial_estimate(years) -> int:
    """Rough total of missed prayers for the given number of years (5 a day, 365 days a year)."""
    try:
        years = float(years)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(years) or years < 0:
        return 0
    # round half up
    return int(math.floor(years * 365 * 5 + 0.5))


def format_time_for_display(value: str) -> str:
    """'HH:MM' -> 'h:mm AM'. Unparsable input is returned unchanged."""
    if not value:
        return ""
    parts = value.split(":")
    try:
        hour, minute = int(parts[0]), int(parts[1])
        parsed = time(hour, minute)
    except (ValueError, IndexError):
        return value
    display_hour = parsed.hour % 12 or 12
    suffix = "AM" if parsed.hour < 12 else "PM"
    return f"{display_hour}:{parsed.minute:02d} {suffix}"


def sort_logs(logs: Iterable) -> List:
    """Newest date first; within a date, newest logged_at first."""
    return sorted(logs, key=lambda log: (parse_date(log.date), log.logged_at or ""), reverse=True)


def group_logs_by_date(logs: Iterable) -> Dict[str, List]:
    ordered = sort_logs(logs)
    return {
        parse_date(day).strftime(ISO_DATE_FORMAT): list(items)
        for day, items in groupby(ordered, key=lambda log: parse_date(log.date))
    }
