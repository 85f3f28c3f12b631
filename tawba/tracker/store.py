"""
Record store: durable settings, missed estimates and prayer logs on top of the
SQLAlchemy session. Every public operation runs in a single transaction and
reports database failures as StoreUnavailableError.
"""
import json
import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Generator, Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tawba.core.dates import parse_date
from tawba.core.db import session_scope
from tawba.core.models import SettingRecord, get_setting_values, put_setting_value, seed_setting_values
from tawba.tracker.errors import DuplicateLogError, StoreUnavailableError
from tawba.tracker.models import MissedEstimateRecord, PrayerLogRecord
from tawba.tracker.types import (
    LEGACY_QADA_TYPE,
    PRAYER_ORDER,
    LogType,
    MissedEstimate,
    PrayerLog,
    PrayerName,
    Settings,
    Snapshot,
    parse_log_type,
    parse_prayer,
)

logger = logging.getLogger(__name__)

# Settings field -> stored key
SETTING_KEYS = {
    "language": "language",
    "font_size": "font_size",
    "start_date": "start_date",
    "reminders_enabled": "reminders_enabled",
    "location": "location",
}


def serialize_setting(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if name == "reminders_enabled":
        return "1" if value else "0"
    if name == "start_date":
        return parse_date(value).isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def deserialize_setting(name: str, raw: Optional[str]) -> Any:
    if raw is None:
        return None
    if name == "reminders_enabled":
        return raw == "1"
    if name == "start_date":
        try:
            return parse_date(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable start_date setting: {raw!r}")
            return None
    if name == "location":
        try:
            return json.loads(raw)
        except ValueError:
            return None
    return raw


def _record_to_log(row: PrayerLogRecord) -> PrayerLog:
    raw_type = LogType.QADA.value if row.type == LEGACY_QADA_TYPE else row.type
    return PrayerLog(
        id=row.id,
        date=row.date,
        prayer=parse_prayer(row.prayer),
        type=parse_log_type(raw_type),
        count=row.count,
        logged_at=row.logged_at,
    )


class RecordStore:
    """Read-all / upsert / delete access to the persisted tracker data."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """One session; commits on success. Database errors become StoreUnavailableError."""
        try:
            with session_scope() as session:
                yield session
        except SQLAlchemyError as e:
            self.logger.error(f"Record store failure: {e}")
            raise StoreUnavailableError(str(e)) from e

    def initialize(self) -> None:
        """Seed default settings and estimates, and migrate legacy log types. Safe to call repeatedly."""
        with self.transaction() as session:
            # databases created before the unique on-time index do not have it yet
            for index in PrayerLogRecord.__table__.indexes:
                index.create(session.connection(), checkfirst=True)
            seed_setting_values(
                session,
                {SETTING_KEYS[name]: serialize_setting(name, value) for name, value in vars(Settings()).items()},
            )
            existing = set(session.execute(select(MissedEstimateRecord.prayer)).scalars().all())
            for prayer in PRAYER_ORDER:
                if prayer.value not in existing:
                    session.add(MissedEstimateRecord(prayer=prayer.value, initial_count=0))
            migrated = session.execute(
                update(PrayerLogRecord)
                .where(PrayerLogRecord.type == LEGACY_QADA_TYPE)
                .values(type=LogType.QADA.value)
            ).rowcount
        if migrated:
            self.logger.info(f"Migrated {migrated} legacy '{LEGACY_QADA_TYPE}' logs to '{LogType.QADA.value}'")

    def reset(self) -> None:
        """Delete all settings, estimates and logs, then re-seed defaults."""
        with self.transaction() as session:
            session.execute(delete(PrayerLogRecord))
            session.execute(delete(MissedEstimateRecord))
            session.execute(delete(SettingRecord))
        self.logger.info("Record store reset")
        self.initialize()

    # Settings

    def get_settings(self, session: Optional[Session] = None) -> Settings:
        if session is None:
            with self.transaction() as own:
                return self.get_settings(own)
        raw = get_setting_values(session)
        defaults = Settings()
        values = {}
        for name, key in SETTING_KEYS.items():
            value = deserialize_setting(name, raw.get(key))
            values[name] = getattr(defaults, name) if value is None and name != "start_date" else value
        return Settings(**values)

    def update_settings(self, **changes: Any) -> Settings:
        unknown = set(changes) - set(SETTING_KEYS)
        if unknown:
            raise KeyError(f"Unknown settings: {', '.join(sorted(unknown))}")
        with self.transaction() as session:
            for name, value in changes.items():
                put_setting_value(session, SETTING_KEYS[name], serialize_setting(name, value))
            session.flush()
            self.logger.info(f"Updated settings: {', '.join(sorted(changes))}")
            return self.get_settings(session)

    # Missed estimates

    def get_estimates(self, session: Optional[Session] = None) -> List[MissedEstimate]:
        if session is None:
            with self.transaction() as own:
                return self.get_estimates(own)
        rows = session.execute(select(MissedEstimateRecord)).scalars().all()
        return [MissedEstimate(prayer=parse_prayer(r.prayer), initial_count=r.initial_count) for r in rows]

    def replace_estimates(self, estimates: Iterable[MissedEstimate], session: Optional[Session] = None) -> None:
        """Bulk replace: drop every estimate and insert the given ones."""
        if session is None:
            with self.transaction() as own:
                return self.replace_estimates(estimates, own)
        estimates = list(estimates)
        session.execute(delete(MissedEstimateRecord))
        for estimate in estimates:
            session.add(MissedEstimateRecord(prayer=estimate.prayer.value, initial_count=estimate.initial_count))
        self.logger.info(f"Replaced missed estimates ({len(estimates)} prayers)")

    def start_tracking(self, start_date: date, estimates: Iterable[MissedEstimate]) -> Settings:
        """Onboarding write: start date and initial estimates land in one transaction or not at all."""
        with self.transaction() as session:
            put_setting_value(session, SETTING_KEYS["start_date"], serialize_setting("start_date", start_date))
            self.replace_estimates(estimates, session)
            session.flush()
            return self.get_settings(session)

    def adjust_estimate(self, prayer: PrayerName, delta: int) -> int:
        """Add delta to a prayer's estimate, clamping at zero. Returns the new count."""
        with self.transaction() as session:
            row = session.get(MissedEstimateRecord, prayer.value)
            if row is None:
                row = MissedEstimateRecord(prayer=prayer.value, initial_count=0)
                session.add(row)
            row.initial_count = max(0, (row.initial_count or 0) + delta)
            return row.initial_count

    # Prayer logs

    def get_logs(self, session: Optional[Session] = None) -> List[PrayerLog]:
        """All logs, newest date first then newest logged_at."""
        if session is None:
            with self.transaction() as own:
                return self.get_logs(own)
        rows = session.execute(
            select(PrayerLogRecord).order_by(PrayerLogRecord.date.desc(), PrayerLogRecord.logged_at.desc())
        ).scalars().all()
        return [_record_to_log(r) for r in rows]

    def get_logs_for_date(self, log_date: date) -> List[PrayerLog]:
        with self.transaction() as session:
            rows = session.execute(
                select(PrayerLogRecord)
                .where(PrayerLogRecord.date == log_date)
                .order_by(PrayerLogRecord.logged_at.desc())
            ).scalars().all()
            return [_record_to_log(r) for r in rows]

    def get_log(self, log_id: int, session: Optional[Session] = None) -> Optional[PrayerLog]:
        if session is None:
            with self.transaction() as own:
                return self.get_log(log_id, own)
        row = session.get(PrayerLogRecord, log_id)
        return _record_to_log(row) if row else None

    def find_current_log(
        self,
        session: Session,
        log_date: date,
        prayer: PrayerName,
        exclude_id: Optional[int] = None,
    ) -> Optional[int]:
        """Id of an existing on-time log for (date, prayer), if any."""
        stmt = select(PrayerLogRecord.id).where(
            PrayerLogRecord.date == log_date,
            PrayerLogRecord.prayer == prayer.value,
            PrayerLogRecord.type == LogType.CURRENT.value,
        )
        if exclude_id is not None:
            stmt = stmt.where(PrayerLogRecord.id != exclude_id)
        return session.execute(stmt.limit(1)).scalars().first()

    def _flush_log(self, session: Session, log: PrayerLog) -> None:
        """Flush pending log changes; the unique on-time index rejects a second log for the day."""
        try:
            session.flush()
        except IntegrityError:
            self.logger.warning(f"Unique index rejected on-time log: {log.prayer.value} on {log.date_iso}")
            raise DuplicateLogError(log.date, log.prayer.value) from None

    def insert_log(self, session: Session, log: PrayerLog) -> int:
        row = PrayerLogRecord(
            date=log.date,
            prayer=log.prayer.value,
            type=log.type.value,
            count=log.count,
            logged_at=log.logged_at,
        )
        session.add(row)
        self._flush_log(session, log)
        return row.id

    def replace_log(self, session: Session, log: PrayerLog) -> None:
        row = session.get(PrayerLogRecord, log.id)
        row.date = log.date
        row.prayer = log.prayer.value
        row.type = log.type.value
        row.count = log.count
        row.logged_at = log.logged_at
        self._flush_log(session, log)

    def delete_log(self, log_id: int) -> bool:
        """Delete by id. Returns False if there was no such log."""
        with self.transaction() as session:
            result = session.execute(delete(PrayerLogRecord).where(PrayerLogRecord.id == log_id))
            return result.rowcount > 0

    def snapshot(self) -> Snapshot:
        """Settings, estimates and logs read in one transaction."""
        with self.transaction() as session:
            return Snapshot(
                settings=self.get_settings(session),
                estimates=self.get_estimates(session),
                logs=self.get_logs(session),
            )
