"""
Tracker API. Mounted at /api/tracker/.
Domain dataclasses are serialized through Pydantic from_attributes; tracker
errors are mapped to status codes by tracker_error_handler.
"""
import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from tawba.core.dates import calculate_initial_estimate
from tawba.tracker.accounting import progress_percent, total_remaining
from tawba.tracker.errors import (
    DuplicateLogError,
    LogNotFoundError,
    StoreUnavailableError,
    TrackerError,
    ValidationError,
)
from tawba.tracker.types import LogType, PrayerName

ERROR_STATUS = {
    DuplicateLogError: 409,
    ValidationError: 422,
    LogNotFoundError: 404,
    StoreUnavailableError: 503,
}

STORE_UNAVAILABLE_MESSAGE = "Could not reach the prayer log storage. Please try again."


def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """Specific message for duplicate/validation errors, a generic retry message for the store."""
    status = next((code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 400)
    message = STORE_UNAVAILABLE_MESSAGE if isinstance(exc, StoreUnavailableError) else str(exc)
    body = {"code": exc.code, "message": message}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=status, content=body)


class LogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: datetime.date
    prayer: PrayerName
    type: LogType
    count: int
    logged_at: str


class LogCreate(BaseModel):
    """Body for POST /logs. date defaults to today, logged_at to now, count to 1 for on-time logs."""

    prayer: PrayerName
    type: LogType
    date: Optional[datetime.date] = None
    count: Optional[int] = None
    logged_at: Optional[str] = None


class LogUpdate(BaseModel):
    """Body for PATCH /logs/{id}; only the fields sent are changed."""

    prayer: Optional[PrayerName] = None
    type: Optional[LogType] = None
    date: Optional[datetime.date] = None
    count: Optional[int] = None
    logged_at: Optional[str] = None


class LogCreated(BaseModel):
    id: int


class SummaryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    prayer: PrayerName
    initial_count: int
    total_qada_prayed: int
    total_current_prayed: int
    remaining: int
    missed_total: int
    progress_percent: float = 0.0


class ProjectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    daily_average: float
    projected_completion_date: Optional[datetime.date] = None


class SummaryResponse(BaseModel):
    summaries: List[SummaryItem]
    projection: ProjectionResponse
    total_remaining: int


class WhatIfResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    target_rate: int
    prayer: Optional[PrayerName] = None
    days_to_clear: Optional[int] = None
    projected_date: Optional[datetime.date] = None
    already_clear: bool = False


class EstimateItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    prayer: PrayerName
    initial_count: int = Field(ge=0)


class MissedResponse(BaseModel):
    prayer: PrayerName
    initial_count: int


class SettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    language: str
    font_size: str
    start_date: Optional[datetime.date] = None
    reminders_enabled: bool
    location: Optional[Dict[str, float]] = None


class SettingsUpdate(BaseModel):
    language: Optional[str] = None
    font_size: Optional[str] = None
    start_date: Optional[datetime.date] = None
    reminders_enabled: Optional[bool] = None
    location: Optional[Dict[str, float]] = None


class OnboardingRequest(BaseModel):
    start_date: datetime.date
    estimates: List[EstimateItem]


class InitialEstimateResponse(BaseModel):
    years: float
    estimate: int


def get_router(tawba_app) -> Optional[APIRouter]:
    """Return router for the tracker; mounted with prefix /api/tracker."""
    router = APIRouter(tags=["Tracker"])
    tracker = tawba_app.tracker

    @router.get("/summary", response_model=SummaryResponse)
    def get_summary(today: Optional[datetime.date] = None) -> SummaryResponse:
        """Per-prayer remaining debt and the completion projection, recomputed from the store."""
        snapshot = tracker.snapshot()
        summaries = tracker.summaries(today, snapshot)
        projection = tracker.projection(today, snapshot, summaries)
        items = [
            SummaryItem.model_validate(s).model_copy(update={"progress_percent": progress_percent(s)})
            for s in summaries
        ]
        return SummaryResponse(
            summaries=items,
            projection=ProjectionResponse.model_validate(projection),
            total_remaining=total_remaining(summaries),
        )

    @router.get("/what-if", response_model=WhatIfResponse)
    def get_what_if(target: int, prayer: Optional[PrayerName] = None, today: Optional[datetime.date] = None) -> WhatIfResponse:
        """Days to clear the backlog at `target` repayments per day, for one prayer or all."""
        result = tracker.what_if(target, prayer, today)
        return WhatIfResponse.model_validate(result)

    @router.get("/logs", response_model=List[LogResponse])
    def list_logs(date: Optional[datetime.date] = None) -> List[LogResponse]:
        return [LogResponse.model_validate(log) for log in tracker.get_logs(date)]

    @router.get("/logs/by-date", response_model=Dict[str, List[LogResponse]])
    def list_logs_by_date() -> Dict[str, List[LogResponse]]:
        """History view: logs grouped under their ISO date, newest day first."""
        return {
            day: [LogResponse.model_validate(log) for log in logs]
            for day, logs in tracker.logs_by_date().items()
        }

    @router.post("/logs", response_model=LogCreated, status_code=201)
    def create_log(body: LogCreate) -> LogCreated:
        log_id = tracker.add_log(body.model_dump())
        return LogCreated(id=log_id)

    @router.patch("/logs/{log_id}", response_model=LogResponse)
    def update_log(log_id: int, body: LogUpdate) -> LogResponse:
        log = tracker.edit_log(log_id, body.model_dump(exclude_unset=True))
        return LogResponse.model_validate(log)

    @router.delete("/logs/{log_id}", status_code=204)
    def delete_log(log_id: int) -> Response:
        tracker.remove_log(log_id)
        return Response(status_code=204)

    @router.get("/estimates", response_model=List[EstimateItem])
    def list_estimates() -> List[EstimateItem]:
        return [EstimateItem.model_validate(e) for e in tracker.get_estimates()]

    @router.put("/estimates", response_model=List[EstimateItem])
    def replace_estimates(body: List[EstimateItem]) -> List[EstimateItem]:
        estimates = tracker.set_estimates([item.model_dump() for item in body])
        return [EstimateItem.model_validate(e) for e in estimates]

    @router.post("/estimates/{prayer}/missed", response_model=MissedResponse)
    def mark_missed(prayer: PrayerName, amount: int = 1) -> MissedResponse:
        """Add to a prayer's missed estimate, e.g. when today's prayer was missed."""
        count = tracker.increment_missed(prayer, amount)
        return MissedResponse(prayer=prayer, initial_count=count)

    @router.get("/settings", response_model=SettingsResponse)
    def get_settings() -> SettingsResponse:
        return SettingsResponse.model_validate(tracker.get_settings())

    @router.patch("/settings", response_model=SettingsResponse)
    def update_settings(body: SettingsUpdate) -> SettingsResponse:
        settings = tracker.update_settings(**body.model_dump(exclude_unset=True))
        return SettingsResponse.model_validate(settings)

    @router.post("/onboarding", response_model=SettingsResponse)
    def complete_onboarding(body: OnboardingRequest) -> SettingsResponse:
        settings = tracker.complete_onboarding(body.start_date, [item.model_dump() for item in body.estimates])
        return SettingsResponse.model_validate(settings)

    @router.get("/initial-estimate", response_model=InitialEstimateResponse)
    def initial_estimate(years: float) -> InitialEstimateResponse:
        """Rough number of missed prayers for a number of years (onboarding helper)."""
        return InitialEstimateResponse(years=years, estimate=calculate_initial_estimate(years))

    @router.post("/reset", status_code=204)
    def reset() -> Response:
        tracker.reset()
        return Response(status_code=204)

    return router
