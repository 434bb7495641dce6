"""
JSON stats routes for the host dashboard.

No auth here: mount the router behind the host application's own.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from ..core.engine import PERIOD_DAYS, AnalyticsEngine, period_range
from ..core.models import DateRange
from ..errors import AggregationError

logger = logging.getLogger(__name__)


def _parse_range(
    period: str | None,
    custom_start: str | None = None,
    custom_end: str | None = None,
    now: datetime | None = None,
) -> tuple[DateRange, str | None]:
    """Parse a preset period or custom dates into a reporting window.

    Args:
        period: Preset period string (24h, 7d, 30d, 90d, custom)
        custom_start: Custom start date in YYYY-MM-DD format
        custom_end: Custom end date in YYYY-MM-DD format
        now: Reference time, defaults to the current UTC time

    Returns:
        Tuple of (date_range, preset period or None for custom ranges).
        Custom ranges cover whole UTC days, end day included.

    Raises:
        HTTPException: If custom dates are invalid
    """
    now = now or datetime.now(timezone.utc)
    today = now.date()

    if period == "custom" or custom_start or custom_end:
        if not custom_start or not custom_end:
            raise HTTPException(
                status_code=400,
                detail="Both start and end dates are required for custom date range"
            )

        try:
            start = date.fromisoformat(custom_start)
            end = date.fromisoformat(custom_end)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail="Invalid date format. Use YYYY-MM-DD (e.g., 2024-01-15)"
            ) from None

        if end < start:
            raise HTTPException(
                status_code=400,
                detail="End date must be on or after start date"
            )

        if end > today:
            raise HTTPException(
                status_code=400,
                detail="End date cannot be in the future"
            )

        return DateRange(
            start=datetime.combine(start, time.min, tzinfo=timezone.utc),
            end=datetime.combine(end, time.min, tzinfo=timezone.utc) + timedelta(days=1, seconds=-1),
        ), None

    # Unknown presets fall back to the default window
    preset = period if period in PERIOD_DAYS else None
    return period_range(preset, now), preset


def _unavailable() -> JSONResponse:
    return JSONResponse(AggregationError().to_dict(), status_code=AggregationError.status_code)


def create_stats_router(engine: AnalyticsEngine) -> APIRouter:
    """Create the JSON stats router.

    Args:
        engine: Aggregation engine to answer from
    """
    router = APIRouter(tags=["stats"])

    # Declared before /websites/{site_id}/... so "summary" is not read as an id
    @router.get("/websites/summary")
    async def site_summary(ids: str = Query("", description="Comma-separated site ids")):
        """Trailing-window cards for several sites."""
        site_ids = [i.strip() for i in ids.split(",") if i.strip()]
        try:
            summaries = await engine.summarize_sites(site_ids)
        except AggregationError:
            return _unavailable()
        return {"sites": [s.model_dump(mode="json") for s in summaries]}

    @router.get("/websites/{site_id}/stats")
    async def site_stats(
        site_id: str,
        period: str | None = Query(None),
        start: str | None = Query(None),
        end: str | None = Query(None),
    ):
        """Full analytics snapshot for one site."""
        date_range, preset = _parse_range(period, start, end)
        try:
            snapshot = await engine.compute_analytics(site_id, date_range, preset)
        except AggregationError:
            return _unavailable()
        return snapshot.model_dump(mode="json")

    @router.get("/websites/{site_id}/live")
    async def live_visitors(site_id: str):
        """Visitors seen in the trailing live window."""
        try:
            count = await engine.count_live_visitors(site_id)
        except AggregationError:
            return _unavailable()
        return {"site_id": site_id, "visitors": count}

    return router
