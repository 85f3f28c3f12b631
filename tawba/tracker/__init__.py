from .accounting import summarize, total_qada_prayed, total_remaining
from .errors import DuplicateLogError, LogNotFoundError, StoreUnavailableError, TrackerError, ValidationError
from .logbook import LogBook
from .projection import project, what_if
from .store import RecordStore
from .service import TrackerService
from .types import (
    PRAYER_ORDER,
    LogType,
    MissedEstimate,
    PrayerLog,
    PrayerName,
    PrayerSummary,
    ProgressProjection,
    WhatIfResult,
)
