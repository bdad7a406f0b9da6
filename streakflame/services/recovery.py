"""
Boot-time data recovery.

The application must always boot with usable data. On boot the primary
streak collection is read and validated as a whole:

  1. CLEAN BOOT      primary key absent → zero streaks, nothing recovered.
  2. VALID BOOT      every record validates → use it and overwrite the
                     last-known-good backup snapshot with it.
  3. CORRUPTED BOOT  unparsable blob, or ANY record invalid → the whole
                     collection is distrusted (all-or-nothing):
                       a. backup snapshot validates → restore it and write
                          it back as primary   (reason="backup_restored")
                       b. otherwise → delete the primary key and start
                          empty                 (reason="no_backup")
  4. Any unexpected error → empty collection    (reason="recovery_error")

Every step appends to an audit log (ring buffer, newest last).

Nothing in this module raises to its caller.

Public API
----------
recover_streaks_on_boot(store)        -> RecoveryResult
get_recovery_log(store)               -> list[dict]
clear_recovery_log(store)             -> None
save_manual_backup(store, streaks)    -> None
load_backup_snapshot(store)           -> Optional[dict]
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from streakflame.core.config import settings
from streakflame.schemas.streak import Streak
from streakflame.services.storage import KeyValueStore, StorageKey
from streakflame.services.validator import validate_backup_data

logger = logging.getLogger(__name__)


class RecoveryEventType:
    BOOT_VALIDATION      = "boot_validation"
    CORRUPTED_DETECTED   = "corrupted_detected"
    RESTORED_FROM_BACKUP = "restored_from_backup"
    EMPTY_RECOVERY       = "empty_recovery"


class RecoveryReason:
    BACKUP_RESTORED = "backup_restored"
    NO_BACKUP       = "no_backup"
    RECOVERY_ERROR  = "recovery_error"


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class RecoveryResult:
    """What happened on boot. `message` is always safe to show the user directly."""
    streaks: list[Streak] = field(default_factory=list)
    recovered: bool = False
    message: str = ""
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "streaks": [s.to_storage() for s in self.streaks],
            "recovered": self.recovered,
            "message": self.message,
        }
        if self.reason:
            payload["reason"] = self.reason
        return payload


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


_UNREADABLE = object()


def _load_raw(store: KeyValueStore, key: str) -> Any:
    """None when absent, _UNREADABLE when present but not valid JSON, else the parsed value."""
    raw = store.get_raw(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        logger.warning("Failed to parse stored value under %s", key)
        return _UNREADABLE


def _validate_integrity(data: Any) -> Optional[list[Streak]]:
    """The full list when every record is valid, None otherwise."""
    try:
        result = validate_backup_data(data)
    except Exception:
        logger.warning("Integrity check failed", exc_info=True)
        return None
    if result.errors:
        logger.warning(
            "Corruption detected: %d of %d records invalid (first: %s)",
            len(result.errors), result.summary.total, result.errors[0].message,
        )
        return None
    return result.streaks


def _save_backup(store: KeyValueStore, streaks: list[Streak]) -> None:
    try:
        store.set_json(StorageKey.BACKUP_LATEST, {
            "timestamp": _now_iso(),
            "streaks": [s.to_storage() for s in streaks],
        })
    except Exception:
        # A failed snapshot must not block boot.
        logger.warning("Failed to save backup snapshot", exc_info=True)


def _log_event(
    store: KeyValueStore,
    event_type: str,
    details: str,
    streak_count: Optional[int] = None,
) -> None:
    try:
        log = store.get_json(StorageKey.RECOVERY_LOG, [])
        if not isinstance(log, list):
            log = []
        event: dict[str, Any] = {
            "timestamp": _now_iso(),
            "type": event_type,
            "details": details,
        }
        if streak_count is not None:
            event["streakCount"] = streak_count
        log.append(event)
        limit = settings.RECOVERY_LOG_LIMIT
        if len(log) > limit:
            log = log[-limit:]
        store.set_json(StorageKey.RECOVERY_LOG, log)
    except Exception:
        logger.warning("Failed to write recovery event %s", event_type, exc_info=True)


def load_backup_snapshot(store: KeyValueStore) -> Optional[dict]:
    snapshot = store.get_json(StorageKey.BACKUP_LATEST)
    return snapshot if isinstance(snapshot, dict) else None


def _restore_from_backup(store: KeyValueStore) -> Optional[list[Streak]]:
    try:
        snapshot = load_backup_snapshot(store)
        if snapshot is None:
            logger.info("No backup snapshot available")
            return None
        validated = _validate_integrity(snapshot.get("streaks"))
        if validated is None:
            return None
        _log_event(
            store,
            RecoveryEventType.RESTORED_FROM_BACKUP,
            f"Recovered {len(validated)} streaks from backup",
            len(validated),
        )
        return validated
    except Exception:
        logger.warning("Backup restore failed", exc_info=True)
        return None


# ---------------------------------------------------------------------------
# Public: boot
# ---------------------------------------------------------------------------

def recover_streaks_on_boot(store: KeyValueStore) -> RecoveryResult:
    """Load, validate and if needed recover the streak collection. Never raises."""
    try:
        main_data = _load_raw(store, StorageKey.STREAKS)

        if main_data is None:
            _log_event(store, RecoveryEventType.BOOT_VALIDATION, "Boot validation passed: 0 streaks", 0)
            return RecoveryResult(streaks=[], recovered=False, message="✅ Loaded 0 streaks successfully")

        if main_data is not _UNREADABLE:
            validated = _validate_integrity(main_data)
            if validated is not None:
                _log_event(
                    store,
                    RecoveryEventType.BOOT_VALIDATION,
                    f"Boot validation passed: {len(validated)} streaks",
                    len(validated),
                )
                _save_backup(store, validated)
                logger.info("Boot validation passed: %d streaks", len(validated))
                return RecoveryResult(
                    streaks=validated,
                    recovered=False,
                    message=f"✅ Loaded {len(validated)} streaks successfully",
                )

        logger.warning("Primary streak data corrupted, attempting recovery")
        _log_event(store, RecoveryEventType.CORRUPTED_DETECTED, "Main data corrupted or unreadable")

        restored = _restore_from_backup(store)
        if restored is not None:
            try:
                store.set_json(StorageKey.STREAKS, [s.to_storage() for s in restored])
            except Exception:
                logger.warning("Failed to write recovered data back to primary store", exc_info=True)
            logger.info("Restored %d streaks from backup", len(restored))
            return RecoveryResult(
                streaks=restored,
                recovered=True,
                reason=RecoveryReason.BACKUP_RESTORED,
                message=(
                    f"⚠️  Data was corrupted. Recovered {len(restored)} streaks from backup.\n\n"
                    "Please review your streaks to ensure everything looks correct."
                ),
            )

        logger.info("No usable backup, starting with empty data")
        _log_event(store, RecoveryEventType.EMPTY_RECOVERY, "No backup available, starting with empty data")
        try:
            store.remove(StorageKey.STREAKS)
        except Exception:
            logger.warning("Failed to clear corrupted primary data", exc_info=True)

        return RecoveryResult(
            streaks=[],
            recovered=True,
            reason=RecoveryReason.NO_BACKUP,
            message=(
                "⚠️  Your data could not be recovered. Starting fresh.\n\n"
                "Your streaks will start from today."
            ),
        )
    except Exception:
        logger.exception("Critical error during boot recovery")
        return RecoveryResult(
            streaks=[],
            recovered=True,
            reason=RecoveryReason.RECOVERY_ERROR,
            message="⚠️  An error occurred during recovery. Starting fresh.",
        )


# ---------------------------------------------------------------------------
# Public: audit log and manual backup
# ---------------------------------------------------------------------------

def get_recovery_log(store: KeyValueStore) -> list[dict]:
    try:
        log = store.get_json(StorageKey.RECOVERY_LOG, [])
    except Exception:
        logger.warning("Failed to read recovery log", exc_info=True)
        return []
    return log if isinstance(log, list) else []


def clear_recovery_log(store: KeyValueStore) -> None:
    try:
        store.remove(StorageKey.RECOVERY_LOG)
    except Exception:
        logger.warning("Failed to clear recovery log", exc_info=True)


def save_manual_backup(store: KeyValueStore, streaks: list[Streak]) -> None:
    _save_backup(store, streaks)
    _log_event(
        store,
        RecoveryEventType.BOOT_VALIDATION,
        f"Manual backup saved: {len(streaks)} streaks",
        len(streaks),
    )
