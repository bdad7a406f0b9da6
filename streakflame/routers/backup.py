"""
Backup router.

GET  /backup/export  — Full JSON backup of every stored collection
POST /backup/import  — Restore a JSON backup (or a bare streak array)
GET  /backup/csv     — Streaks as CSV
POST /backup/csv     — Create streaks from CSV rows
"""
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import Response

from streakflame.core import dates
from streakflame.routers.deps import get_engine, get_store
from streakflame.routers.streaks import to_out
from streakflame.schemas.backup import (
    BackupFile,
    CsvImportRequest,
    CsvImportResponse,
    ImportResponse,
)
from streakflame.schemas.common import ErrorResponse
from streakflame.services import backup as backup_service
from streakflame.services.storage import KeyValueStore
from streakflame.services.streak_engine import StreakEngine

router = APIRouter(prefix="/backup", tags=["backup"])


@router.get("/export", response_model=BackupFile, summary="Export a JSON backup")
def export_backup(store: KeyValueStore = Depends(get_store)):
    """Also stamps `streakflame_last_backup`."""
    return backup_service.create_backup(store)


@router.post(
    "/import",
    response_model=ImportResponse,
    summary="Import a JSON backup",
    responses={422: {"model": ErrorResponse, "description": "Unrecognised file or no valid streaks."}},
)
def import_backup(
    payload: Any = Body(..., description="A backup file object or a bare array of streaks."),
    engine: StreakEngine = Depends(get_engine),
    store: KeyValueStore = Depends(get_store),
):
    """
    Replaces the stored collections. Invalid streak rows are skipped and
    reported; if none are valid the import is refused and nothing changes.
    """
    result = backup_service.import_backup(store, payload)
    return ImportResponse(
        imported=result.imported,
        skipped=result.skipped,
        message=result.message,
        errors=result.errors,
        warnings=result.warnings,
    )


@router.get(
    "/csv",
    summary="Export streaks as CSV",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
def export_csv(engine: StreakEngine = Depends(get_engine), store: KeyValueStore = Depends(get_store)):
    content = backup_service.create_streaks_csv(engine.get_streaks(include_archived=True))
    backup_service.save_last_backup_timestamp(store)
    filename = f"streakflame-streaks-{dates.today()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/csv", response_model=CsvImportResponse, summary="Import streaks from CSV")
def import_csv(payload: CsvImportRequest, engine: StreakEngine = Depends(get_engine)):
    """Each valid row becomes a new streak. Rows with no name or a taken name are reported."""
    result = backup_service.import_streaks_csv(engine, payload.content)
    return CsvImportResponse(
        created=[to_out(s) for s in result.created],
        errors=result.errors,
    )
