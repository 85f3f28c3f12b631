import requests
from datetime import date, datetime, time
from typing import Dict, Any, Optional
import logging
from abc import ABC, abstractmethod
from tawba.tracker.types import PRAYER_ORDER, PrayerName


class PrayerTimesError(Exception):
    """Prayer times could not be fetched or parsed."""


class PrayerBackend(ABC):
    """Base class for prayer time providers. The astronomy lives in the provider."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get_prayer_times(self, target_date: date, latitude: float, longitude: float) -> Dict[PrayerName, datetime]:
        """Get the five prayer times for a date and location
        Raises:
            PrayerTimesError on provider or parsing failure
        """
        pass


class AladhanBackend(PrayerBackend):
    """Prayer times backend using api.aladhan.com"""

    API_URL = "https://api.aladhan.com/v1/timings"

    PRAYER_NAMES = {
        'Fajr': PrayerName.FAJR,
        'Dhuhr': PrayerName.DHUHR,
        'Asr': PrayerName.ASR,
        'Maghrib': PrayerName.MAGHRIB,
        'Isha': PrayerName.ISHA,
    }

    def get_prayer_times(self, target_date: date, latitude: float, longitude: float) -> Dict[PrayerName, datetime]:
        url = f"{self.API_URL}/{target_date.strftime('%d-%m-%Y')}"
        params = {
            'latitude': latitude,
            'longitude': longitude,
            'method': self.config.get('calculation_method', 3),
            'school': self.config.get('school', 1),
        }

        self.logger.info(f"Making API request to {url} with params {params}")
        try:
            response = requests.get(url, params=params, timeout=self.config.get('timeout', 10))
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise PrayerTimesError(f"Prayer times request failed: {e}") from e

        timings = (data.get('data') or {}).get('timings') or {}
        prayer_times = {}
        for api_name, prayer in self.PRAYER_NAMES.items():
            if api_name not in timings:
                raise PrayerTimesError(f"Prayer times response missing {api_name}")
            prayer_times[prayer] = datetime.combine(target_date, self._parse_time(timings[api_name]))

        self.logger.debug(f"Final prayer times: {prayer_times}")
        return prayer_times

    @staticmethod
    def _parse_time(value: str) -> time:
        # AlAdhan may append a zone suffix such as "05:10 (CET)"
        clean = "".join(ch for ch in str(value) if ch.isdigit() or ch == ":")[:5]
        try:
            hour, minute = map(int, clean.split(":"))
            return time(hour, minute)
        except ValueError as e:
            raise PrayerTimesError(f"Unreadable prayer time: {value!r}") from e


def next_prayer(
    prayer_times: Dict[PrayerName, datetime],
    now: Optional[datetime] = None,
) -> Optional[PrayerName]:
    """Return the next upcoming prayer relative to now, or None after isha."""
    now = now or datetime.now()
    for prayer in PRAYER_ORDER:
        moment = prayer_times.get(prayer)
        if moment is not None and moment > now:
            return prayer
    return None


def create_backend(config: Dict[str, Any]) -> PrayerBackend:
    backend_type = config.get("backend", "aladhan")
    if backend_type != "aladhan":
        raise PrayerTimesError(f"Unsupported prayer times backend: {backend_type}")
    return AladhanBackend(dict(config))
