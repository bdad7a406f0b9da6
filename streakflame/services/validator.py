"""
Data validator for untrusted streak records (imported backups, the primary
store read back on boot).

Policy
------
- Strict about required fields and their types: the first failing rule
  rejects the record (fail-fast, one error per record).
- Lenient about optional fields: wrong-typed values fall back to defaults
  instead of rejecting the record.
- A single malformed entry in `completedDates` rejects the whole record;
  the array is never partially cleaned.
- Nothing here raises. Every public function returns a result value.

Public API
----------
validate_streak(data, index)         -> StreakValid | StreakInvalid
validate_backup_data(data)           -> BatchValidation
format_validation_message(result)    -> str
log_validation_report(result)        -> None   (DEBUG-level report)
"""
from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union

from streakflame.core.dates import is_valid_date_format, is_valid_time_format
from streakflame.schemas.streak import Streak
from streakflame.services.storage import StorageKey

logger = logging.getLogger(__name__)

_FONT_SIZES = ("small", "medium", "large")
_TEXT_ALIGNS = ("left", "center", "right")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class FieldError:
    """A single validation problem. `message` is user-facing, `detail` is for logs."""
    message: str
    detail: Optional[str] = None
    field: Optional[str] = None
    row_index: Optional[int] = None
    type: str = "critical"   # "critical" | "warning"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "detail": self.detail,
            "field": self.field,
            "rowIndex": self.row_index,
        }


@dataclass
class StreakValid:
    streak: Streak
    valid: ClassVar[bool] = True


@dataclass
class StreakInvalid:
    error: FieldError
    valid: ClassVar[bool] = False


ValidationOutcome = Union[StreakValid, StreakInvalid]


@dataclass
class BatchSummary:
    total: int = 0
    valid: int = 0
    invalid: int = 0


@dataclass
class BatchValidation:
    streaks: list[Streak] = field(default_factory=list)
    errors: list[FieldError] = field(default_factory=list)
    warnings: list[FieldError] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _row(index: Optional[int]) -> str:
    return f"Row {index + 1}" if index is not None else "Row unknown"


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _is_count(value: Any) -> bool:
    """Non-negative whole number. Booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and (math.isnan(value) or not value.is_integer()):
        return False
    return value >= 0


def _fail(index: Optional[int], field_name: str, message: str, detail: str) -> StreakInvalid:
    return StreakInvalid(FieldError(
        message=f"{_row(index)}: {message}",
        detail=detail,
        field=field_name,
        row_index=index,
    ))


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _opt_bool(value: Any, default: bool = False) -> bool:
    return value if isinstance(value, bool) else default


# ---------------------------------------------------------------------------
# Public: single record
# ---------------------------------------------------------------------------

def validate_streak(data: Any, index: Optional[int] = None) -> ValidationOutcome:
    """Validate one untyped record. Returns StreakValid with a cleaned Streak, or StreakInvalid."""
    if not isinstance(data, Mapping):
        return StreakInvalid(FieldError(
            message=f"Invalid streak data at {_row(index).lower()}",
            detail=f"Expected object, got {type(data).__name__}",
            row_index=index,
        ))

    # -- required fields --------------------------------------------------
    if not _non_empty_str(data.get("id")):
        return _fail(index, "id", "Missing or invalid Streak ID",
                     'Expected non-empty string for "id" field')

    if not _non_empty_str(data.get("name")):
        return _fail(index, "name", "Missing streak name",
                     'Expected non-empty string for "name" field')
    name = data["name"]

    if not _non_empty_str(data.get("emoji")):
        return _fail(index, "emoji", f'Missing emoji for "{name}"',
                     'Expected non-empty string for "emoji" field')

    created_at = data.get("createdAt")
    if not created_at:
        return _fail(index, "createdAt", f'Missing creation date for "{name}"',
                     'Expected date in "createdAt" field (YYYY-MM-DD format)')
    if not is_valid_date_format(created_at):
        return _fail(index, "createdAt", f'Invalid creation date for "{name}"',
                     f'Got "{created_at}" — expected YYYY-MM-DD format')

    current = data.get("currentStreak")
    if not _is_count(current):
        return _fail(index, "currentStreak", f'Invalid current streak for "{name}"',
                     f"Expected non-negative whole number, got {current!r}")

    best = data.get("bestStreak")
    if not _is_count(best):
        return _fail(index, "bestStreak", f'Invalid best streak for "{name}"',
                     f"Expected non-negative whole number, got {best!r}")

    completed_dates = data.get("completedDates")
    if not isinstance(completed_dates, list):
        return _fail(index, "completedDates", f'Invalid completion history for "{name}"',
                     'Expected array for "completedDates" field')

    # -- integrity --------------------------------------------------------
    if best < current:
        return _fail(index, "bestStreak",
                     f'Corrupted streak data for "{name}" (bestStreak < currentStreak)',
                     f"Best streak ({best}) should never be less than current streak ({current})")

    last_completed = data.get("lastCompletedDate")
    if last_completed is not None:
        if not isinstance(last_completed, str):
            return _fail(index, "lastCompletedDate", f'Invalid last completed date for "{name}"',
                         f"Expected string or null, got {type(last_completed).__name__}")
        if not is_valid_date_format(last_completed):
            return _fail(index, "lastCompletedDate",
                         f'Invalid last completed date format for "{name}"',
                         f'Got "{last_completed}" — expected YYYY-MM-DD format')

    invalid_dates = [str(d) for d in completed_dates if not is_valid_date_format(d)]
    if invalid_dates:
        shown = ", ".join(invalid_dates[:3]) + ("..." if len(invalid_dates) > 3 else "")
        return _fail(index, "completedDates",
                     f'Invalid dates in completion history for "{name}"',
                     f"Invalid date formats: {shown}. Expected YYYY-MM-DD.")

    # -- optional fields: coerce, never reject ----------------------------
    scheduled_date = data.get("scheduledDate")
    font_size = data.get("fontSize")
    text_align = data.get("textAlign")
    reminder_time = data.get("reminderTime")

    cleaned = Streak(
        id=data["id"],
        name=name,
        emoji=data["emoji"],
        created_at=created_at,
        current_streak=int(current),
        best_streak=int(best),
        last_completed_date=last_completed,
        completed_dates=list(completed_dates),
        color=_opt_str(data.get("color")),
        notes=_opt_str(data.get("notes")),
        description=_opt_str(data.get("description")),
        list_id=_opt_str(data.get("listId")),
        is_paused=_opt_bool(data.get("isPaused")),
        is_starred=_opt_bool(data.get("isStarred")),
        paused_at=_opt_str(data.get("pausedAt")),
        archived_at=_opt_str(data.get("archivedAt")),
        scheduled_date=scheduled_date if is_valid_date_format(scheduled_date) else None,
        scheduled_time=_opt_str(data.get("scheduledTime")),
        font_size=font_size if font_size in _FONT_SIZES else None,
        text_align=text_align if text_align in _TEXT_ALIGNS else None,
        reminder_enabled=_opt_bool(data.get("reminderEnabled")),
        reminder_time=reminder_time if is_valid_time_format(reminder_time) else None,
    )
    return StreakValid(cleaned)


# ---------------------------------------------------------------------------
# Public: batch
# ---------------------------------------------------------------------------

def _find_streaks_key(payload: Mapping) -> Optional[str]:
    """Prefer the canonical key, then any *streaks key, then anything mentioning a streak."""
    keys = [k for k in payload.keys() if isinstance(k, str)]
    if StorageKey.STREAKS in keys:
        return StorageKey.STREAKS
    for k in keys:
        if k.lower().endswith("streaks"):
            return k
    for k in keys:
        if "streak" in k or "Streak" in k:
            return k
    return None


def _extract_rows(data: Any) -> Optional[list]:
    if isinstance(data, list):
        return data
    if not isinstance(data, Mapping):
        return None
    payload = data.get("data")
    if not isinstance(payload, Mapping):
        return None
    key = _find_streaks_key(payload)
    if key is None:
        return None
    value = payload[key]
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return None
        if isinstance(parsed, list):
            return parsed
    return None


def validate_backup_data(data: Any) -> BatchValidation:
    """
    Validate a bare list of streaks or a backup object `{"data": {"...streaks": [...]}}`.
    Each row is validated independently; valid rows are kept, invalid rows reported.
    """
    result = BatchValidation()
    rows = _extract_rows(data)

    if rows is None:
        result.errors.append(FieldError(
            message="Invalid backup file format",
            detail="Expected array of streaks or backup object with data.streaks property",
        ))
        return result

    for i, row in enumerate(rows):
        outcome = validate_streak(row, i)
        if isinstance(outcome, StreakValid):
            result.streaks.append(outcome.streak)
        else:
            result.errors.append(outcome.error)

    result.summary = BatchSummary(
        total=len(rows),
        valid=len(result.streaks),
        invalid=len(rows) - len(result.streaks),
    )
    return result


# ---------------------------------------------------------------------------
# Public: reporting
# ---------------------------------------------------------------------------

def _plural(n: int) -> str:
    return "" if n == 1 else "s"


def format_validation_message(result: BatchValidation) -> str:
    """Short multi-line summary safe to show the user as-is."""
    summary = result.summary
    if not result.errors and summary.valid == summary.total:
        return f"✅ All {summary.total} streaks loaded successfully."

    lines: list[str] = []
    if summary.valid > 0:
        lines.append(f"✅ Loaded {summary.valid} streak{_plural(summary.valid)}")
    if summary.invalid > 0:
        lines.append(f"⚠️ Skipped {summary.invalid} invalid streak{_plural(summary.invalid)}")

    if result.errors:
        lines.append("")
        lines.append("Errors:")
        for error in result.errors[:3]:
            lines.append(f"• {error.message}")
        if len(result.errors) > 3:
            lines.append(f"• ...and {len(result.errors) - 3} more errors")

    return "\n".join(lines)


def log_validation_report(result: BatchValidation) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    s = result.summary
    logger.debug("Validation report: total=%d valid=%d invalid=%d", s.total, s.valid, s.invalid)
    for i, error in enumerate(result.errors, start=1):
        logger.debug(
            "%d. [%s] %s | field=%s row=%s detail=%s",
            i, error.type.upper(), error.message, error.field, error.row_index, error.detail,
        )
    for i, warning in enumerate(result.warnings, start=1):
        logger.debug("%d. [WARNING] %s | detail=%s", i, warning.message, warning.detail)
