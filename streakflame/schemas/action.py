"""
Undo log schemas.

GET  /streaks/{id}/undo → UndoAvailabilityResponse
POST /streaks/{id}/undo → StreakOut (409 UNDO_UNAVAILABLE when refused)
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field

from streakflame.schemas.streak import CamelModel

ActionType = Literal["complete", "uncomplete"]
UndoReason = Literal["not-today", "already-finalized", "no-action"]


class PreviousState(CamelModel):
    """Exact streak counters captured before an action, restored verbatim on undo."""
    current_streak: int
    last_completed_date: Optional[str] = None
    completed_dates: list[str] = Field(default_factory=list)
    best_streak: int


class DailyAction(CamelModel):
    id: str
    type: ActionType
    streak_id: str
    date: str = Field(description="Local YYYY-MM-DD the action happened on.")
    timestamp: str = Field(description="ISO-8601 instant, orders actions within a date.")
    finalized: bool = False
    previous_state: PreviousState


class UndoAvailabilityResponse(CamelModel):
    can_undo: bool
    reason: Optional[UndoReason] = None
    action: Optional[DailyAction] = None
