"""
Stats router.

GET /stats         — Aggregate counters and completion rates over active streaks
GET /stats/global  — Cross-habit streak (one per day with any completion)
"""
from fastapi import APIRouter, Depends

from streakflame.routers.deps import get_engine, get_store
from streakflame.schemas.streak import GlobalStreakResponse, StreakStatsResponse
from streakflame.services import global_activity
from streakflame.services.storage import KeyValueStore
from streakflame.services.streak_engine import StreakEngine

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=StreakStatsResponse, summary="Streak statistics")
def get_stats(engine: StreakEngine = Depends(get_engine)):
    """
    Weekly and monthly rates are completions in the last 7 / 30 days divided
    by (streak count × window length), as a rounded percentage.
    """
    return StreakStatsResponse(**engine.get_stats())


@router.get("/global", response_model=GlobalStreakResponse, summary="Global activity streak")
def get_global_stats(
    engine: StreakEngine = Depends(get_engine),
    store: KeyValueStore = Depends(get_store),
):
    return GlobalStreakResponse(
        current_streak=global_activity.calculate_global_streak(store),
        best_streak=global_activity.get_best_global_streak(store),
        active_days=len(global_activity.get_global_activity(store)),
    )
