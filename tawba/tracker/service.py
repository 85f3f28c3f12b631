"""
Service layer: reads a fresh snapshot from the record store and runs the
accounting and projection engines over it. Nothing derived is cached, so
every read after a mutation reflects it.
"""
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from tawba.core.dates import DateLike, group_logs_by_date, parse_date
from tawba.tracker.accounting import summarize
from tawba.tracker.errors import ValidationError
from tawba.tracker.logbook import LogBook
from tawba.tracker.projection import project, what_if
from tawba.tracker.store import SETTING_KEYS, RecordStore
from tawba.tracker.types import (
    MissedEstimate,
    PrayerLog,
    PrayerName,
    PrayerSummary,
    ProgressProjection,
    Settings,
    Snapshot,
    WhatIfResult,
    parse_prayer,
)

LANGUAGES = ("en", "ar")
FONT_SIZES = ("small", "medium", "large")

EstimateInput = Union[MissedEstimate, Mapping[str, Any]]


def _to_estimate(value: EstimateInput) -> MissedEstimate:
    if isinstance(value, MissedEstimate):
        prayer, count = value.prayer, value.initial_count
    else:
        prayer, count = value.get("prayer"), value.get("initial_count", 0)
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ValidationError(f"Initial count must be a non-negative whole number, got {count!r}", field="initial_count")
    return MissedEstimate(prayer=parse_prayer(prayer), initial_count=count)


def _to_estimates(values: Iterable[EstimateInput]) -> List[MissedEstimate]:
    estimates = [_to_estimate(value) for value in values]
    seen = set()
    for estimate in estimates:
        if estimate.prayer in seen:
            raise ValidationError(f"Estimate for {estimate.prayer.value} given more than once", field="prayer")
        seen.add(estimate.prayer)
    return estimates


def _validate_settings(changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(changes) - set(SETTING_KEYS)
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")
    if "language" in changes and changes["language"] not in LANGUAGES:
        raise ValidationError(f"Unsupported language: {changes['language']!r}", field="language")
    if "font_size" in changes and changes["font_size"] not in FONT_SIZES:
        raise ValidationError(f"Unsupported font size: {changes['font_size']!r}", field="font_size")
    if changes.get("start_date") is not None:
        try:
            changes["start_date"] = parse_date(changes["start_date"])
        except ValueError:
            raise ValidationError(f"Invalid start date: {changes['start_date']!r}", field="start_date") from None
    location = changes.get("location")
    if location is not None:
        try:
            changes["location"] = {
                "latitude": float(location["latitude"]),
                "longitude": float(location["longitude"]),
            }
        except (KeyError, TypeError, ValueError):
            raise ValidationError("Location needs numeric latitude and longitude", field="location") from None
    return changes


class TrackerService:
    """Entry point for callers: settings, estimates, logs and the derived views."""

    def __init__(self, store: Optional[RecordStore] = None):
        self.store = store or RecordStore()
        self.logbook = LogBook(self.store)
        self.logger = logging.getLogger(self.__class__.__name__)

    def initialize(self) -> None:
        self.store.initialize()

    # Reads

    def snapshot(self) -> Snapshot:
        return self.store.snapshot()

    def get_settings(self) -> Settings:
        return self.store.get_settings()

    def get_estimates(self) -> List[MissedEstimate]:
        return self.store.get_estimates()

    def get_logs(self, log_date: Optional[DateLike] = None) -> List[PrayerLog]:
        if log_date is not None:
            return self.store.get_logs_for_date(parse_date(log_date))
        return self.store.get_logs()

    def logs_by_date(self) -> Dict[str, List[PrayerLog]]:
        return group_logs_by_date(self.store.get_logs())

    def summaries(self, today: Optional[date] = None, snapshot: Optional[Snapshot] = None) -> List[PrayerSummary]:
        snapshot = snapshot or self.snapshot()
        return summarize(snapshot.estimates, snapshot.logs, snapshot.settings.start_date, today)

    def projection(
        self,
        today: Optional[date] = None,
        snapshot: Optional[Snapshot] = None,
        summaries: Optional[List[PrayerSummary]] = None,
    ) -> ProgressProjection:
        """Completion projection; pass summaries already computed from the same snapshot to reuse them."""
        snapshot = snapshot or self.snapshot()
        if summaries is None:
            summaries = self.summaries(today, snapshot)
        return project(summaries, snapshot.logs, snapshot.settings.start_date, today)

    def what_if(
        self,
        target_rate: int,
        prayer: Optional[Union[PrayerName, str]] = None,
        today: Optional[date] = None,
    ) -> WhatIfResult:
        return what_if(self.summaries(today), target_rate, prayer, today)

    # Writes

    def complete_onboarding(self, start_date: DateLike, estimates: Iterable[EstimateInput]) -> Settings:
        """Record the tracking start date and replace the initial estimates, both or neither."""
        if start_date is None:
            raise ValidationError("Onboarding needs a start date", field="start_date")
        start_date = _validate_settings({"start_date": start_date})["start_date"]
        settings = self.store.start_tracking(start_date, _to_estimates(estimates))
        self.logger.info(f"Onboarding complete, tracking from {settings.start_date}")
        return settings

    def set_estimates(self, estimates: Iterable[EstimateInput]) -> List[MissedEstimate]:
        self.store.replace_estimates(_to_estimates(estimates))
        return self.store.get_estimates()

    def increment_missed(self, prayer: Union[PrayerName, str], amount: int = 1) -> int:
        """Mark prayers as missed by raising the estimate (negative amounts clamp at 0)."""
        prayer = parse_prayer(prayer)
        count = self.store.adjust_estimate(prayer, amount)
        self.logger.info(f"Adjusted {prayer.value} estimate by {amount} -> {count}")
        return count

    def update_settings(self, **changes: Any) -> Settings:
        return self.store.update_settings(**_validate_settings(dict(changes)))

    def add_log(self, candidate: Mapping[str, Any], today: Optional[date] = None) -> int:
        return self.logbook.add_log(candidate, today)

    def edit_log(self, log_id: int, changes: Dict[str, Any]) -> PrayerLog:
        return self.logbook.edit_log(log_id, changes)

    def remove_log(self, log_id: int) -> None:
        self.logbook.remove_log(log_id)

    def reset(self) -> None:
        self.store.reset()
        self.logger.info("Tracker data reset")
