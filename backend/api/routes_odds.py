"""Read-only odds routes: grouped market analytics and race price history."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from models.analytics import RaceGroup, RaceHistoryPayload
from services.errors import InvalidQuery
from services.odds_tracker import odds_tracker
from utils.logger import api_logger as logger
from workers.odds_poller import odds_poller

router = APIRouter(tags=["Odds"])


@router.get("/odds", response_model=dict[str, RaceGroup])
async def get_odds():
    """Current analytics grouped by race time ("HH:MM", ascending)."""
    return odds_tracker.get_market_analytics()


@router.get("/history", response_model=RaceHistoryPayload)
async def get_history(
    event_identifier: Optional[str] = Query(
        None, alias="eventIdentifier", description="Exact event string of the race"
    ),
):
    try:
        return await odds_tracker.get_race_history(event_identifier)
    except InvalidQuery as exc:
        logger.warning("Rejected history query", error=str(exc))
        return JSONResponse(status_code=400, content={"error": str(exc)})


@router.get("/status")
async def get_status() -> dict[str, Any]:
    return {
        **odds_tracker.status(),
        "poller": {
            "running": odds_poller.is_running,
            "interval_seconds": odds_poller.interval_seconds,
            "cycles_run": odds_poller.cycles_run,
        },
    }
