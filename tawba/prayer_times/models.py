"""
SQLAlchemy models for prayer times: one row per date and location.
"""
from sqlalchemy import Column, Date, DateTime, Float, Integer, JSON

from tawba.core.db import Base


class PrayerTimesRecord(Base):
    """One prayer times fetch. data is JSON: {prayer_name: ISO datetime string}."""
    __tablename__ = "prayer_times_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    fetched_at = Column(DateTime(timezone=False), nullable=False, index=True)
    prayer_date = Column(Date, nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    data = Column(JSON, nullable=False)  # {prayer_name: ISO string}
