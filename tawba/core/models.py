"""
Core DB models: key/value application settings.
"""
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import Column, String, DateTime, Text, select

from tawba.core.db import Base


def _utc_now() -> datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SettingRecord(Base):
    """One application setting. value is a serialized string; null means unset."""
    __tablename__ = "settings"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=False), default=_utc_now, onupdate=_utc_now, nullable=False)


def get_setting_values(session) -> Dict[str, Optional[str]]:
    """Return all stored settings as {key: raw value}."""
    rows = session.execute(select(SettingRecord)).scalars().all()
    return {row.key: row.value for row in rows}


def put_setting_value(session, key: str, value: Optional[str]) -> None:
    """Upsert one raw setting value."""
    row = session.get(SettingRecord, key)
    if row:
        row.value = value
        row.updated_at = _utc_now()
    else:
        session.add(SettingRecord(key=key, value=value, updated_at=_utc_now()))


def seed_setting_values(session, defaults: Dict[str, Optional[str]]) -> None:
    """Insert defaults for keys that have no row yet (existing values win)."""
    existing = set(get_setting_values(session))
    for key, value in defaults.items():
        if key not in existing:
            session.add(SettingRecord(key=key, value=value, updated_at=_utc_now()))
