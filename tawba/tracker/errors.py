"""
Tracker error taxonomy. Callers match on the class (or on code) to pick a message.
"""
from datetime import date
from typing import Optional


class TrackerError(Exception):
    """Base class for all tracker failures."""
    code = "tracker-error"


class ValidationError(TrackerError):
    """A record is malformed; nothing was written."""
    code = "invalid-log"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DuplicateLogError(TrackerError):
    """A second on-time log for the same prayer and date."""
    code = "log-exists"

    def __init__(self, log_date: date, prayer: str):
        super().__init__(f"{prayer} is already logged as prayed on time for {log_date.isoformat()}")
        self.date = log_date
        self.prayer = prayer


class LogNotFoundError(TrackerError):
    code = "log-not-found"

    def __init__(self, log_id: int):
        super().__init__(f"No prayer log with id {log_id}")
        self.log_id = log_id


class StoreUnavailableError(TrackerError):
    """The record store failed (I/O, corruption, locked database). Safe to retry."""
    code = "store-unavailable"
