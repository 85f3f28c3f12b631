"""
Per-day prayer times API. Mounted at /api/prayer_times/.
Uses PrayerTimesRecord ORM with Pydantic from_attributes.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from .prayer_base import PrayerTimesError, next_prayer
from .service import get_or_fetch_prayer_times, record_times, resolve_location


class PrayerTimesRecordResponse(BaseModel):
    """Pydantic view of PrayerTimesRecord for API; serializes from ORM."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    fetched_at: Optional[datetime] = None
    prayer_date: Optional[date] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    data: Optional[Dict[str, Any]] = None
    next_prayer: Optional[str] = None


def get_router(tawba_app) -> Optional[APIRouter]:
    """Return router for prayer times; mounted with prefix /api/prayer_times."""
    router = APIRouter(tags=["Prayer Times"])

    @router.get("/today", response_model=PrayerTimesRecordResponse)
    def get_today(refresh: bool = False) -> PrayerTimesRecordResponse:
        """Today's prayer times for the stored (or configured) location, plus the next prayer. refresh=true re-fetches."""
        if tawba_app.prayer_backend is None:
            raise HTTPException(status_code=503, detail="Prayer times backend not configured")
        settings = tawba_app.tracker.get_settings()
        location = resolve_location(settings, tawba_app.config.section("prayer_times"))
        if location is None:
            raise HTTPException(status_code=404, detail="No location set for prayer times")
        try:
            record = get_or_fetch_prayer_times(tawba_app.prayer_backend, date.today(), location, force_fetch=refresh)
        except PrayerTimesError as e:
            raise HTTPException(status_code=503, detail=str(e))
        upcoming = next_prayer(record_times(record))
        response = PrayerTimesRecordResponse.model_validate(record)
        return response.model_copy(update={"next_prayer": upcoming.value if upcoming else None})

    return router
