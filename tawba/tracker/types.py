"""
Domain types for the tracker: prayer and log enums plus the plain value objects
passed between the store, the engines and the API.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from tawba.core.dates import ISO_DATE_FORMAT
from tawba.tracker.errors import ValidationError


class PrayerName(str, Enum):
    FAJR = "fajr"
    DHUHR = "dhuhr"
    ASR = "asr"
    MAGHRIB = "maghrib"
    ISHA = "isha"


class LogType(str, Enum):
    CURRENT = "current"  # prayed on time, count is always 1
    QADA = "qada"        # repayment of count missed prayers


PRAYER_ORDER: List[PrayerName] = [
    PrayerName.FAJR,
    PrayerName.DHUHR,
    PrayerName.ASR,
    PrayerName.MAGHRIB,
    PrayerName.ISHA,
]

# Stored log type used before the rename to "qada"
LEGACY_QADA_TYPE = "qadha"


@dataclass(frozen=True)
class MissedEstimate:
    prayer: PrayerName
    initial_count: int = 0


@dataclass(frozen=True)
class PrayerLog:
    """One log entry. id is None until the store assigns one."""
    date: date
    prayer: PrayerName
    type: LogType
    count: int
    logged_at: str
    id: Optional[int] = None

    @property
    def date_iso(self) -> str:
        return self.date.strftime(ISO_DATE_FORMAT)


@dataclass(frozen=True)
class PrayerSummary:
    prayer: PrayerName
    initial_count: int
    total_qada_prayed: int
    total_current_prayed: int
    remaining: int
    missed_total: int


@dataclass(frozen=True)
class ProgressProjection:
    daily_average: float = 0.0
    projected_completion_date: Optional[date] = None


@dataclass(frozen=True)
class WhatIfResult:
    """days_to_clear is None when the target rate cannot clear the backlog."""
    target_rate: int
    prayer: Optional[PrayerName]
    days_to_clear: Optional[int]
    projected_date: Optional[date] = None

    @property
    def already_clear(self) -> bool:
        return self.days_to_clear == 0


@dataclass
class Settings:
    language: str = "en"
    font_size: str = "medium"
    start_date: Optional[date] = None
    reminders_enabled: bool = True
    location: Optional[Dict[str, float]] = None


@dataclass(frozen=True)
class Snapshot:
    """Everything the engines need, read from the store in one go."""
    settings: Settings
    estimates: List[MissedEstimate] = field(default_factory=list)
    logs: List[PrayerLog] = field(default_factory=list)


def parse_prayer(value) -> PrayerName:
    """PrayerName from an enum member or its string value."""
    try:
        return PrayerName(value.lower() if isinstance(value, str) else value)
    except ValueError:
        raise ValidationError(f"Unknown prayer: {value!r}", field="prayer") from None


def parse_log_type(value) -> LogType:
    try:
        return LogType(value.lower() if isinstance(value, str) else value)
    except ValueError:
        raise ValidationError(f"Unknown log type: {value!r}", field="type") from None
