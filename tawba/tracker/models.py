"""
SQLAlchemy models for the tracker: initial missed estimates and prayer logs.
"""
from sqlalchemy import Column, String, Date, Integer, Index, text

from tawba.core.db import Base


class MissedEstimateRecord(Base):
    """Initial missed-prayer estimate, one row per prayer."""
    __tablename__ = "missed_estimates"

    prayer = Column(String(16), primary_key=True)  # fajr, dhuhr, asr, maghrib, isha
    initial_count = Column(Integer, nullable=False, default=0)


class PrayerLogRecord(Base):
    """One log entry. type: "current" (on time, count 1) or "qada" (count repaid)."""
    __tablename__ = "prayer_logs"
    __table_args__ = (
        Index("ix_prayer_logs_date_prayer", "date", "prayer"),
        # at most one on-time log per prayer and day
        Index(
            "ux_prayer_logs_current_date_prayer",
            "date",
            "prayer",
            unique=True,
            sqlite_where=text("type = 'current'"),
            postgresql_where=text("type = 'current'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    prayer = Column(String(16), nullable=False)
    type = Column(String(16), nullable=False)
    count = Column(Integer, nullable=False)
    logged_at = Column(String(8), nullable=False)  # HH:MM
