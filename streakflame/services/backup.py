"""
Backup export / import and CSV exchange.

JSON backup file
----------------
    {"version": "1.0.0", "exportDate": "<ISO-8601>", "data": {key: value, ...}}

`data` holds the parsed value of every key in BACKUP_KEYS (None when the
key is absent). Import accepts that shape or a bare list of streaks.
Streak records always go through the validator: valid rows are kept,
invalid rows are reported and skipped. If nothing usable is left, the
import is refused and storage is untouched. A failed write rolls back every
key that was touched.

CSV
---
One schema for export and import (see CSV_HEADERS). Only `name` is
required on import; booleans accept true / 1 / yes / y.
"""
from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from streakflame.core.errors import InvalidBackupError, StreakflameException
from streakflame.schemas.streak import Streak
from streakflame.services.storage import BACKUP_KEYS, KeyValueStore, StorageKey
from streakflame.services.validator import (
    format_validation_message,
    log_validation_report,
    validate_backup_data,
)

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0.0"

CSV_HEADERS = (
    "name",
    "emoji",
    "color",
    "description",
    "notes",
    "reminderEnabled",
    "reminderTime",
    "scheduledDate",
    "scheduledTime",
    "isStarred",
)

DEFAULT_IMPORT_EMOJI = "🔥"

_TRUE_VALUES = ("true", "1", "yes", "y")


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class BackupCheck:
    valid: bool
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class ImportResult:
    imported: int
    skipped: int
    message: str
    errors: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class CsvRow:
    name: str
    emoji: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    reminder_enabled: Optional[bool] = None
    reminder_time: Optional[str] = None
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    is_starred: Optional[bool] = None


@dataclass
class CsvParseResult:
    rows: list[CsvRow] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class CsvImportResult:
    created: list[Streak] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Last backup timestamp
# ---------------------------------------------------------------------------

def get_last_backup(store: KeyValueStore) -> Optional[str]:
    return store.get_raw(StorageKey.LAST_BACKUP)


def save_last_backup_timestamp(store: KeyValueStore) -> str:
    stamp = _now_iso()
    store.set_raw(StorageKey.LAST_BACKUP, stamp)
    return stamp


# ---------------------------------------------------------------------------
# JSON backup
# ---------------------------------------------------------------------------

def create_backup(store: KeyValueStore) -> dict[str, Any]:
    """Snapshot every backed-up key. Unparsable values are exported as raw text."""
    data: dict[str, Any] = {}
    for key in BACKUP_KEYS:
        raw = store.get_raw(key)
        if raw is None:
            data[key] = None
            continue
        try:
            data[key] = json.loads(raw)
        except ValueError:
            data[key] = raw

    save_last_backup_timestamp(store)
    return {"version": BACKUP_VERSION, "exportDate": _now_iso(), "data": data}


def validate_backup(backup: Any) -> BackupCheck:
    """Structural check of a backup object. A major version mismatch is only a warning."""
    if not isinstance(backup, dict):
        return BackupCheck(valid=False, error="Invalid backup format.")
    version = backup.get("version")
    if not version or not isinstance(version, str):
        return BackupCheck(valid=False, error="Missing backup version.")
    if not isinstance(backup.get("data"), dict):
        return BackupCheck(valid=False, error="Invalid backup data.")

    warnings = []
    if version.split(".")[0] != BACKUP_VERSION.split(".")[0]:
        warnings.append("Backup version mismatch.")
    return BackupCheck(valid=True, warnings=warnings)


def import_backup(store: KeyValueStore, payload: Any) -> ImportResult:
    """Replace stored data with a backup file or a bare streak list."""
    warnings: list[str] = []
    if isinstance(payload, list):
        extra: dict[str, Any] = {}
    else:
        check = validate_backup(payload)
        if not check.valid:
            raise InvalidBackupError(check.error or "Invalid backup.")
        warnings = check.warnings
        extra = {
            key: value
            for key, value in payload["data"].items()
            if key in BACKUP_KEYS and key != StorageKey.STREAKS
        }

    result = validate_backup_data(payload)
    log_validation_report(result)
    if not result.streaks and result.errors:
        raise InvalidBackupError(
            format_validation_message(result),
            [e.to_dict() for e in result.errors],
        )

    writes: dict[str, Any] = {StorageKey.STREAKS: [s.to_storage() for s in result.streaks]}
    writes.update(extra)
    _write_with_rollback(store, writes)

    logger.info(
        "Imported %d streaks (%d skipped)",
        len(result.streaks), len(result.errors),
    )
    return ImportResult(
        imported=len(result.streaks),
        skipped=len(result.errors),
        message=format_validation_message(result),
        errors=[e.to_dict() for e in result.errors],
        warnings=warnings + [w.message for w in result.warnings],
    )


def _write_with_rollback(store: KeyValueStore, writes: dict[str, Any]) -> None:
    previous = {key: store.get_raw(key) for key in writes}
    try:
        for key, value in writes.items():
            if value is None:
                store.remove(key)
            elif isinstance(value, str) and key != StorageKey.STREAKS:
                store.set_raw(key, value)
            else:
                store.set_json(key, value)
    except Exception:
        logger.warning("Restore failed, rolling back %d keys", len(previous), exc_info=True)
        for key, raw in previous.items():
            if raw is None:
                store.remove(key)
            else:
                store.set_raw(key, raw)
        raise


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def create_streaks_csv(streaks: list[Streak]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_HEADERS, lineterminator="\n")
    writer.writeheader()
    for streak in streaks:
        writer.writerow({
            "name": streak.name,
            "emoji": streak.emoji,
            "color": streak.color or "",
            "description": streak.description or "",
            "notes": streak.notes or "",
            "reminderEnabled": "true" if streak.reminder_enabled else "false",
            "reminderTime": streak.reminder_time or "",
            "scheduledDate": streak.scheduled_date or "",
            "scheduledTime": streak.scheduled_time or "",
            "isStarred": "true" if streak.is_starred else "false",
        })
    return buffer.getvalue()


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    if value is None or not value.strip():
        return None
    return value.strip().lower() in _TRUE_VALUES


def parse_streaks_csv(text: str) -> CsvParseResult:
    """Parse CSV text into rows. Row numbers in errors are 1-based file lines."""
    content = text.lstrip("\ufeff")
    if not content.strip():
        return CsvParseResult(errors=["CSV file is empty."])

    # quoted notes and descriptions may span several physical lines
    reader = csv.reader(io.StringIO(content, newline=""))
    header = None
    result = CsvParseResult()
    for cells in reader:
        if not any(cell.strip() for cell in cells):
            continue
        if header is None:
            header = {cell.strip().lower(): i for i, cell in enumerate(cells)}
            if "name" not in header:
                return CsvParseResult(errors=['CSV must include a "name" column.'])
            continue

        def value(column: str) -> Optional[str]:
            index = header.get(column.lower())
            if index is None or index >= len(cells):
                return None
            return cells[index].strip()

        name = value("name")
        if not name:
            result.errors.append(f"Row {reader.line_num}: missing name.")
            continue
        result.rows.append(CsvRow(
            name=name,
            emoji=value("emoji") or None,
            color=value("color") or None,
            description=value("description") or None,
            notes=value("notes") or None,
            reminder_enabled=_parse_bool(value("reminderEnabled")),
            reminder_time=value("reminderTime") or None,
            scheduled_date=value("scheduledDate") or None,
            scheduled_time=value("scheduledTime") or None,
            is_starred=_parse_bool(value("isStarred")),
        ))
    return result


def import_streaks_csv(engine, text: str) -> CsvImportResult:
    """Create one new streak per CSV row through the engine. Rejected rows are reported."""
    parsed = parse_streaks_csv(text)
    result = CsvImportResult(errors=list(parsed.errors))

    for row in parsed.rows:
        try:
            streak = engine.add_streak(
                name=row.name,
                emoji=row.emoji or DEFAULT_IMPORT_EMOJI,
                color=row.color,
                description=row.description,
                notes=row.notes,
                reminder_enabled=bool(row.reminder_enabled),
                reminder_time=row.reminder_time,
            )
            if row.scheduled_date or row.scheduled_time:
                streak = engine.edit_streak(
                    streak.id,
                    scheduled_date=row.scheduled_date,
                    scheduled_time=row.scheduled_time,
                )
            if row.is_starred:
                streak = engine.toggle_star(streak.id)
        except StreakflameException as exc:
            result.errors.append(f"{row.name}: {exc.message}")
            continue
        result.created.append(streak)

    logger.info("CSV import created %d streaks, %d errors", len(result.created), len(result.errors))
    return result
