"""
Backup and recovery schemas.

GET    /backup/export    → BackupFile
POST   /backup/import    → BackupFile | list[Streak] → ImportResponse
GET    /backup/csv       → text/csv
POST   /backup/csv       → CsvImportRequest → CsvImportResponse
GET    /recovery/boot    → RecoveryResponse
GET    /recovery/log     → list[RecoveryEvent]
POST   /recovery/backup  → ManualBackupResponse
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from streakflame.schemas.streak import CamelModel, StreakOut


class BackupFile(CamelModel):
    version: str = Field(examples=["1.0.0"])
    export_date: str
    data: dict[str, Any]


class ImportRowError(CamelModel):
    type: str
    message: str
    detail: Optional[str] = None
    field: Optional[str] = None
    row_index: Optional[int] = None


class ImportResponse(BaseModel):
    imported: int
    skipped: int
    message: str
    errors: list[ImportRowError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class CsvImportRequest(BaseModel):
    content: str = Field(min_length=1, description="Raw CSV text including the header row.")


class CsvImportResponse(BaseModel):
    created: list[StreakOut]
    errors: list[str]


class RecoveryResponse(CamelModel):
    recovered: bool
    reason: Optional[Literal["backup_restored", "no_backup", "recovery_error"]] = None
    message: str
    streak_count: int


class RecoveryEvent(CamelModel):
    timestamp: str
    type: Literal["boot_validation", "corrupted_detected", "restored_from_backup", "empty_recovery"]
    details: str
    streak_count: Optional[int] = None


class ManualBackupResponse(BaseModel):
    saved: int
    timestamp: Optional[str] = None
