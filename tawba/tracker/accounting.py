"""
Accounting engine: derive per-prayer debt from estimates, logs and the start date.

Missed-day rule: every calendar day since the start date requires one on-time
prayer of each kind. A day without a matching "current" log counts as missed
and is added to that prayer's backlog.
"""
import logging
from typing import Iterable, List, Optional, Sequence

from tawba.core.dates import DateLike, calendar_day_diff, today as resolve_today
from tawba.tracker.types import (
    PRAYER_ORDER,
    LogType,
    MissedEstimate,
    PrayerLog,
    PrayerName,
    PrayerSummary,
)

logger = logging.getLogger(__name__)


def days_since_start(start_date: Optional[DateLike], today: Optional[DateLike] = None) -> int:
    if start_date is None:
        return 0
    return max(0, calendar_day_diff(start_date, resolve_today(today)))


def _initial_count(estimates: Sequence[MissedEstimate], prayer: PrayerName) -> int:
    for estimate in estimates:
        if estimate.prayer == prayer:
            return max(0, estimate.initial_count)
    return 0


def _qada_prayed(logs: Sequence[PrayerLog], prayer: PrayerName) -> int:
    return sum(log.count for log in logs if log.prayer == prayer and log.type == LogType.QADA)


def _current_prayed(logs: Sequence[PrayerLog], prayer: PrayerName) -> int:
    # one on-time prayer per day at most
    return len({log.date for log in logs if log.prayer == prayer and log.type == LogType.CURRENT})


def summarize(
    estimates: Iterable[MissedEstimate],
    logs: Iterable[PrayerLog],
    start_date: Optional[DateLike],
    today: Optional[DateLike] = None,
) -> List[PrayerSummary]:
    """Return one PrayerSummary per prayer, in PRAYER_ORDER."""
    estimates = list(estimates)
    logs = list(logs)
    elapsed = days_since_start(start_date, today)

    summaries = []
    for prayer in PRAYER_ORDER:
        initial = _initial_count(estimates, prayer)
        qada = _qada_prayed(logs, prayer)
        current = _current_prayed(logs, prayer)
        missed_since_start = max(0, elapsed - current)
        missed_total = initial + missed_since_start
        summaries.append(
            PrayerSummary(
                prayer=prayer,
                initial_count=initial,
                total_qada_prayed=qada,
                total_current_prayed=current,
                remaining=max(0, missed_total - qada),
                missed_total=missed_total,
            )
        )
    logger.debug(f"Summarized {len(logs)} logs over {elapsed} days")
    return summaries


def total_remaining(summaries: Iterable[PrayerSummary]) -> int:
    return sum(summary.remaining for summary in summaries)


def total_qada_prayed(logs: Iterable[PrayerLog]) -> int:
    return sum(log.count for log in logs if log.type == LogType.QADA)


def summary_for(summaries: Iterable[PrayerSummary], prayer: PrayerName) -> Optional[PrayerSummary]:
    for summary in summaries:
        if summary.prayer == prayer:
            return summary
    return None


def progress_percent(summary: PrayerSummary) -> float:
    """Share of the total debt already repaid, 0..100."""
    if summary.missed_total <= 0:
        return 100.0
    return round(min(summary.total_qada_prayed, summary.missed_total) * 100.0 / summary.missed_total, 1)
