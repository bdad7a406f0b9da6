"""
Streaks router.

GET    /streaks                   — Active streaks (archived with ?include_archived=true)
POST   /streaks                   — Create a streak
GET    /streaks/{id}              — Single streak with derived status
PATCH  /streaks/{id}              — Edit name / emoji / list / reminder …
DELETE /streaks/{id}              — Delete (cancels its reminder)
POST   /streaks/{id}/complete     — Complete for today (idempotent)
GET    /streaks/{id}/undo         — Can the last action be undone?
POST   /streaks/{id}/undo         — Undo it
GET    /streaks/{id}/grace        — Weekly / monthly grace availability
POST   /streaks/{id}/grace        — Spend a grace on an at-risk streak
POST   /streaks/{id}/pause|resume|archive|unarchive|star
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from streakflame.core.errors import UndoUnavailableError
from streakflame.routers.deps import get_engine, get_store
from streakflame.schemas.action import UndoAvailabilityResponse
from streakflame.schemas.common import ErrorResponse
from streakflame.schemas.streak import (
    CompleteStreakResponse,
    CreateStreakRequest,
    GraceRequest,
    GraceStatusResponse,
    Streak,
    StreakOut,
    UpdateStreakRequest,
)
from streakflame.services import action_history, grace
from streakflame.services.storage import KeyValueStore
from streakflame.services.streak_engine import StreakEngine, get_streak_status

router = APIRouter(prefix="/streaks", tags=["streaks"])


def to_out(streak: Streak) -> StreakOut:
    return StreakOut(**streak.model_dump(), status=get_streak_status(streak))


@router.get("", response_model=list[StreakOut], summary="List streaks")
def list_streaks(
    include_archived: bool = Query(default=False, description="Also return archived streaks."),
    engine: StreakEngine = Depends(get_engine),
):
    return [to_out(s) for s in engine.get_streaks(include_archived=include_archived)]


@router.post(
    "",
    response_model=StreakOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a streak",
    responses={
        409: {"model": ErrorResponse, "description": "An active streak already has this name."},
        422: {"model": ErrorResponse, "description": "Empty or too long name, empty emoji."},
    },
)
def create_streak(payload: CreateStreakRequest, engine: StreakEngine = Depends(get_engine)):
    """Create a streak with zero counters in the given list (default list if omitted)."""
    streak = engine.add_streak(
        name=payload.name,
        emoji=payload.emoji,
        color=payload.color,
        list_id=payload.list_id,
        description=payload.description,
        notes=payload.notes,
        reminder_enabled=payload.reminder_enabled,
        reminder_time=payload.reminder_time,
    )
    return to_out(streak)


@router.get(
    "/{streak_id}",
    response_model=StreakOut,
    summary="Get one streak",
    responses={404: {"model": ErrorResponse}},
)
def get_streak(streak_id: str, engine: StreakEngine = Depends(get_engine)):
    return to_out(engine.get_streak(streak_id))


@router.patch(
    "/{streak_id}",
    response_model=StreakOut,
    summary="Edit a streak",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def update_streak(streak_id: str, payload: UpdateStreakRequest, engine: StreakEngine = Depends(get_engine)):
    """Only the fields present in the body are changed. Counters cannot be edited."""
    updates = payload.model_dump(exclude_unset=True)
    return to_out(engine.edit_streak(streak_id, **updates))


@router.delete(
    "/{streak_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a streak",
    responses={404: {"model": ErrorResponse}},
)
def delete_streak(streak_id: str, engine: StreakEngine = Depends(get_engine)):
    engine.delete_streak(streak_id)


@router.post(
    "/{streak_id}/complete",
    response_model=CompleteStreakResponse,
    summary="Complete a streak for today",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse, "description": "Paused or archived."}},
)
def complete_streak(streak_id: str, engine: StreakEngine = Depends(get_engine)):
    """
    Increment the run (or restart it at 1 if it had lapsed) and record an
    undoable action. Completing twice on the same day is a no-op and returns
    `completed: false`.
    """
    completed = engine.complete_streak(streak_id)
    return CompleteStreakResponse(completed=completed, streak=to_out(engine.get_streak(streak_id)))


# ---------------------------------------------------------------------------
# Undo
# ---------------------------------------------------------------------------

@router.get(
    "/{streak_id}/undo",
    response_model=UndoAvailabilityResponse,
    summary="Check whether the last action can be undone",
    responses={404: {"model": ErrorResponse}},
)
def undo_status(
    streak_id: str,
    engine: StreakEngine = Depends(get_engine),
    store: KeyValueStore = Depends(get_store),
):
    engine.get_streak(streak_id)
    availability = action_history.can_undo_action(store, streak_id)
    return UndoAvailabilityResponse(
        can_undo=availability.can_undo,
        reason=availability.reason,
        action=availability.action,
    )


@router.post(
    "/{streak_id}/undo",
    response_model=StreakOut,
    summary="Undo today's last action",
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "UNDO_UNAVAILABLE, with the reason in details."},
    },
)
def undo_streak(streak_id: str, engine: StreakEngine = Depends(get_engine)):
    """Restore the exact counters captured before the last action of today."""
    availability = engine.undo_streak(streak_id)
    if not availability.can_undo:
        raise UndoUnavailableError(streak_id, availability.reason)
    return to_out(engine.get_streak(streak_id))


# ---------------------------------------------------------------------------
# Grace
# ---------------------------------------------------------------------------

@router.get(
    "/{streak_id}/grace",
    response_model=GraceStatusResponse,
    summary="Grace availability",
    responses={404: {"model": ErrorResponse}},
)
def grace_status(
    streak_id: str,
    engine: StreakEngine = Depends(get_engine),
    store: KeyValueStore = Depends(get_store),
):
    engine.get_streak(streak_id)
    result = grace.get_grace_status(store, streak_id)
    return GraceStatusResponse(
        weekly_available=result.weekly_available,
        monthly_available=result.monthly_available,
    )


@router.post(
    "/{streak_id}/grace",
    response_model=StreakOut,
    summary="Use a grace on an at-risk streak",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def use_grace(streak_id: str, payload: GraceRequest, engine: StreakEngine = Depends(get_engine)):
    """
    Forgive the missed day: the streak becomes `pending` again with its run
    restored. Refused with **409 GRACE_UNAVAILABLE** if the streak is not at
    risk or the weekly / monthly allowance is spent.
    """
    return to_out(engine.apply_grace(streak_id, payload.kind))


# ---------------------------------------------------------------------------
# Flags
# ---------------------------------------------------------------------------

@router.post("/{streak_id}/pause", response_model=StreakOut, summary="Pause (freeze) a streak",
             responses={404: {"model": ErrorResponse}})
def pause_streak(streak_id: str, engine: StreakEngine = Depends(get_engine)):
    return to_out(engine.pause_streak(streak_id))


@router.post("/{streak_id}/resume", response_model=StreakOut, summary="Resume a paused streak",
             responses={404: {"model": ErrorResponse}})
def resume_streak(streak_id: str, engine: StreakEngine = Depends(get_engine)):
    return to_out(engine.resume_streak(streak_id))


@router.post("/{streak_id}/archive", response_model=StreakOut, summary="Archive a streak",
             responses={404: {"model": ErrorResponse}})
def archive_streak(streak_id: str, engine: StreakEngine = Depends(get_engine)):
    return to_out(engine.archive_streak(streak_id))


@router.post("/{streak_id}/unarchive", response_model=StreakOut, summary="Unarchive a streak",
             responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}})
def unarchive_streak(streak_id: str, engine: StreakEngine = Depends(get_engine)):
    return to_out(engine.unarchive_streak(streak_id))


@router.post("/{streak_id}/star", response_model=StreakOut, summary="Toggle the star flag",
             responses={404: {"model": ErrorResponse}})
def star_streak(streak_id: str, engine: StreakEngine = Depends(get_engine)):
    return to_out(engine.toggle_star(streak_id))
