"""
Recovery router.

GET    /recovery/boot    — Outcome of boot recovery for this process
GET    /recovery/log     — Recovery audit log, oldest first
DELETE /recovery/log     — Clear the audit log
POST   /recovery/backup  — Overwrite the last-known-good snapshot now
"""
from fastapi import APIRouter, Depends, Request, status

from streakflame.routers.deps import get_engine, get_store
from streakflame.schemas.backup import ManualBackupResponse, RecoveryEvent, RecoveryResponse
from streakflame.services import recovery
from streakflame.services.storage import KeyValueStore
from streakflame.services.streak_engine import StreakEngine

router = APIRouter(prefix="/recovery", tags=["recovery"])


@router.get("/boot", response_model=RecoveryResponse, summary="Boot recovery outcome")
def boot_outcome(request: Request, engine: StreakEngine = Depends(get_engine)):
    """`message` is meant to be shown to the user as-is when `recovered` is true."""
    result = request.app.state.boot_result
    return RecoveryResponse(
        recovered=result.recovered,
        reason=result.reason,
        message=result.message,
        streak_count=len(result.streaks),
    )


@router.get("/log", response_model=list[RecoveryEvent], summary="Recovery audit log")
def get_log(store: KeyValueStore = Depends(get_store)):
    return [
        RecoveryEvent.model_validate(event)
        for event in recovery.get_recovery_log(store)
        if isinstance(event, dict)
    ]


@router.delete("/log", status_code=status.HTTP_204_NO_CONTENT, summary="Clear the recovery log")
def clear_log(store: KeyValueStore = Depends(get_store)):
    recovery.clear_recovery_log(store)


@router.post("/backup", response_model=ManualBackupResponse, summary="Save a backup snapshot now")
def save_backup(engine: StreakEngine = Depends(get_engine), store: KeyValueStore = Depends(get_store)):
    streaks = engine.get_streaks(include_archived=True)
    recovery.save_manual_backup(store, streaks)
    snapshot = recovery.load_backup_snapshot(store) or {}
    return ManualBackupResponse(saved=len(streaks), timestamp=snapshot.get("timestamp"))
