"""
Log validation and mutation. Enforces the log rules before anything
reaches the record store:

- at most one "current" log per (date, prayer)
- "current" logs have count 1, "qada" logs a positive integer count
"""
import logging
from dataclasses import fields
from datetime import date
from typing import Any, Dict, Mapping, Optional

from tawba.core.dates import parse_date, time_now, today as resolve_today
from tawba.tracker.errors import DuplicateLogError, LogNotFoundError, ValidationError
from tawba.tracker.store import RecordStore
from tawba.tracker.types import LogType, PrayerLog, parse_log_type, parse_prayer

EDITABLE_FIELDS = frozenset(f.name for f in fields(PrayerLog)) - {"id"}


def _validate_count(log_type: LogType, count: Any) -> int:
    if log_type == LogType.CURRENT:
        if count is None:
            return 1
        if isinstance(count, bool) or count != 1:
            raise ValidationError("An on-time log always has a count of 1", field="count")
        return 1
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError(f"Qada count must be a whole number, got {count!r}", field="count")
    if count < 1:
        raise ValidationError(f"Qada count must be at least 1, got {count}", field="count")
    return count


def _validate_logged_at(value: Any) -> str:
    if value is None or value == "":
        return time_now()
    text = str(value).strip()
    parts = text.split(":")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except (ValueError, IndexError):
        raise ValidationError(f"logged_at must be HH:MM, got {value!r}", field="logged_at") from None
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValidationError(f"logged_at out of range: {value!r}", field="logged_at")
    return f"{hour:02d}:{minute:02d}"


def _validate_date(value: Any, today: Optional[date]) -> date:
    if value is None:
        return resolve_today(today)
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(f"Invalid log date: {value!r}", field="date") from None


def build_log(candidate: Mapping[str, Any], today: Optional[date] = None) -> PrayerLog:
    """Validate and normalize a candidate mapping into a PrayerLog (id preserved if present)."""
    if "prayer" not in candidate or "type" not in candidate:
        raise ValidationError("A log needs a prayer and a type")
    log_type = parse_log_type(candidate["type"])
    return PrayerLog(
        id=candidate.get("id"),
        date=_validate_date(candidate.get("date"), today),
        prayer=parse_prayer(candidate["prayer"]),
        type=log_type,
        count=_validate_count(log_type, candidate.get("count")),
        logged_at=_validate_logged_at(candidate.get("logged_at")),
    )


class LogBook:
    """Creates, edits and removes prayer logs against a RecordStore."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.logger = logging.getLogger(self.__class__.__name__)

    def add_log(self, candidate: Mapping[str, Any], today: Optional[date] = None) -> int:
        """Persist a new log and return its id. Raises DuplicateLogError for a second on-time log."""
        log = build_log(candidate, today)
        with self.store.transaction() as session:
            if log.type == LogType.CURRENT and self.store.find_current_log(session, log.date, log.prayer):
                self.logger.warning(f"Rejected duplicate on-time log: {log.prayer.value} on {log.date_iso}")
                raise DuplicateLogError(log.date, log.prayer.value)
            log_id = self.store.insert_log(session, log)
        self.logger.info(f"Added {log.type.value} log {log_id}: {log.prayer.value} x{log.count} on {log.date_iso}")
        return log_id

    def edit_log(self, log_id: int, changes: Dict[str, Any]) -> PrayerLog:
        """Merge changes onto the stored log, re-validate, and persist the full replacement."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit: {', '.join(sorted(unknown))}")
        with self.store.transaction() as session:
            existing = self.store.get_log(log_id, session)
            if existing is None:
                raise LogNotFoundError(log_id)
            merged = {f.name: getattr(existing, f.name) for f in fields(PrayerLog)}
            merged.update(changes)
            # switching a qada log to current without a count resets it to 1
            if "type" in changes and "count" not in changes and parse_log_type(changes["type"]) == LogType.CURRENT:
                merged["count"] = None
            log = build_log(merged)
            if log.type == LogType.CURRENT and self.store.find_current_log(
                session, log.date, log.prayer, exclude_id=log_id
            ):
                raise DuplicateLogError(log.date, log.prayer.value)
            self.store.replace_log(session, log)
        self.logger.info(f"Edited log {log_id}: {', '.join(sorted(changes)) or 'no changes'}")
        return log

    def remove_log(self, log_id: int) -> None:
        """Delete by id. A missing id is logged and ignored."""
        if self.store.delete_log(log_id):
            self.logger.info(f"Removed log {log_id}")
        else:
            self.logger.warning(f"Remove ignored, no log with id {log_id}")
