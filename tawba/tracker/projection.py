"""
Projection engine: historical repayment rate, completion date, and the
what-if calculator for a chosen daily target rate.
"""
import logging
import math
from datetime import timedelta
from typing import Iterable, List, Optional

from tawba.core.dates import DateLike, calendar_day_diff, today as resolve_today
from tawba.tracker.accounting import total_qada_prayed, total_remaining
from tawba.tracker.types import (
    LogType,
    PrayerLog,
    PrayerName,
    PrayerSummary,
    ProgressProjection,
    WhatIfResult,
    parse_prayer,
)

logger = logging.getLogger(__name__)

UNKNOWN_PROJECTION = ProgressProjection(daily_average=0.0, projected_completion_date=None)


def daily_average(logs: Iterable[PrayerLog], start_date: Optional[DateLike], today: Optional[DateLike] = None) -> float:
    """Qada prayers repaid per day since start, the start day counting as day 1. Full precision."""
    if start_date is None:
        return 0.0
    logs = list(logs)
    days = max(1, calendar_day_diff(start_date, resolve_today(today)) + 1)
    return total_qada_prayed(logs) / days


def project(
    summaries: Iterable[PrayerSummary],
    logs: Iterable[PrayerLog],
    start_date: Optional[DateLike],
    today: Optional[DateLike] = None,
) -> ProgressProjection:
    """Extrapolate the completion date at the historical daily average."""
    logs = list(logs)
    if start_date is None or not any(log.type == LogType.QADA for log in logs):
        return UNKNOWN_PROJECTION

    current_day = resolve_today(today)
    average = daily_average(logs, start_date, current_day)
    if average <= 0:
        return UNKNOWN_PROJECTION

    remaining = total_remaining(summaries)
    days_to_complete = math.ceil(remaining / average)
    projection = ProgressProjection(
        daily_average=round(average, 2),
        projected_completion_date=current_day + timedelta(days=days_to_complete),
    )
    logger.debug(f"Projection: {remaining} remaining at {average:.4f}/day -> {projection.projected_completion_date}")
    return projection


def days_to_clear(remaining: int, target_rate: int) -> Optional[int]:
    """Days needed to repay remaining at target_rate per day; None if the rate is not positive."""
    if target_rate <= 0:
        return None
    if remaining <= 0:
        return 0
    return math.ceil(remaining / target_rate)


def _overall_days(summaries: List[PrayerSummary], target_rate: int) -> Optional[int]:
    # each prayer is repaid at target_rate per day in parallel, the slowest one gates completion
    if not summaries:
        return 0
    per_prayer = [days_to_clear(summary.remaining, target_rate) for summary in summaries]
    if any(days is None for days in per_prayer):
        return None
    return max(per_prayer)


def what_if(
    summaries: Iterable[PrayerSummary],
    target_rate: int,
    prayer: Optional[PrayerName] = None,
    today: Optional[DateLike] = None,
) -> WhatIfResult:
    """
    Days to clear the backlog at target_rate repayments per day.
    prayer=None means all prayers, each repaid at target_rate per day.
    """
    summaries = list(summaries)
    if prayer is None:
        days = _overall_days(summaries, target_rate)
    else:
        prayer = parse_prayer(prayer)
        match = [summary for summary in summaries if summary.prayer == prayer]
        remaining = match[0].remaining if match else 0
        days = days_to_clear(remaining, target_rate)

    projected_date = None
    if days is not None and days > 0:
        projected_date = resolve_today(today) + timedelta(days=days)
    return WhatIfResult(target_rate=target_rate, prayer=prayer, days_to_clear=days, projected_date=projected_date)
