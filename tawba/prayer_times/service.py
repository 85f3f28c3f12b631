"""
Service layer: save and load prayer times from DB, fetching from the backend when missing.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select, delete

from tawba.core.db import session_scope
from tawba.prayer_times.models import PrayerTimesRecord
from tawba.prayer_times.prayer_base import PrayerBackend, PrayerTimesError
from tawba.tracker.types import PrayerName, Settings

logger = logging.getLogger(__name__)


def save_prayer_times(
    prayer_date: date,
    latitude: float,
    longitude: float,
    times: Dict[PrayerName, datetime],
) -> PrayerTimesRecord:
    """Replace stored prayer times for the given date and location."""
    fetched_at = datetime.now(timezone.utc).replace(tzinfo=None)
    data = {prayer.value: moment.isoformat() for prayer, moment in times.items()}
    record = PrayerTimesRecord(
        fetched_at=fetched_at,
        prayer_date=prayer_date,
        latitude=latitude,
        longitude=longitude,
        data=data,
    )
    with session_scope() as session:
        session.execute(
            delete(PrayerTimesRecord).where(
                PrayerTimesRecord.prayer_date == prayer_date,
                PrayerTimesRecord.latitude == latitude,
                PrayerTimesRecord.longitude == longitude,
            )
        )
        session.add(record)
    return record


def get_prayer_times_record(prayer_date: date, latitude: float, longitude: float) -> Optional[PrayerTimesRecord]:
    """Return the latest stored PrayerTimesRecord for a date and location (for API serialization)."""
    with session_scope() as session:
        return (
            session.execute(
                select(PrayerTimesRecord)
                .where(
                    PrayerTimesRecord.prayer_date == prayer_date,
                    PrayerTimesRecord.latitude == latitude,
                    PrayerTimesRecord.longitude == longitude,
                )
                .order_by(PrayerTimesRecord.fetched_at.desc())
                .limit(1)
            )
            .scalars().first()
        )


def resolve_location(settings: Settings, config: Dict[str, Any]) -> Optional[Dict[str, float]]:
    """Stored user location first, then prayer_times.lat/lon from config."""
    if settings.location:
        return settings.location
    lat, lon = config.get("lat"), config.get("lon")
    if lat is None or lon is None:
        return None
    return {"latitude": float(lat), "longitude": float(lon)}


def get_or_fetch_prayer_times(
    backend: PrayerBackend,
    prayer_date: date,
    location: Optional[Dict[str, float]],
    force_fetch: bool = False,
) -> PrayerTimesRecord:
    """Stored times for the day if present, else fetch from the backend and store them.
    Args:
        force_fetch: If True, ignore the stored record and fetch fresh data
    """
    if not location:
        raise PrayerTimesError("No location configured for prayer times")
    latitude, longitude = location["latitude"], location["longitude"]
    if not force_fetch:
        record = get_prayer_times_record(prayer_date, latitude, longitude)
        if record is not None:
            logger.debug(f"Prayer times: using stored record for {prayer_date}")
            return record
    times = backend.get_prayer_times(prayer_date, latitude, longitude)
    logger.info(f"Prayer times: saved to DB for {prayer_date}")
    return save_prayer_times(prayer_date, latitude, longitude, times)


def record_times(record: PrayerTimesRecord) -> Dict[PrayerName, datetime]:
    return {PrayerName(name): datetime.fromisoformat(value) for name, value in record.data.items()}
