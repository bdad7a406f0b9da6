"""
Key-value persistence over the `kv_store` table.

Every StreakFlame collection is one JSON blob under one key, so a
collection is read and written whole. The store itself does
no validation: `get_raw` hands back whatever text is stored so that the
recovery service can tell "absent" from "present but unreadable".

`get_json` is the forgiving read used by the secondary collections (undo
log, grace tracker, global activity): unreadable content is logged and the
caller's default is returned instead.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from streakflame.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)


class StorageKey:
    STREAKS         = "streakflame_streaks"
    LISTS           = "streakflame_lists"
    ACTION_HISTORY  = "streakflame_action_history"
    BACKUP_LATEST   = "streakflame_backup_latest"
    RECOVERY_LOG    = "streakflame_recovery_log"
    GRACE           = "streakflame_grace"
    GLOBAL_ACTIVITY = "streakflame_global_activity"
    LAST_BACKUP     = "streakflame_last_backup"


# Keys included in an exported backup file, in export order.
BACKUP_KEYS = (
    StorageKey.STREAKS,
    StorageKey.LISTS,
    StorageKey.ACTION_HISTORY,
    StorageKey.GRACE,
    StorageKey.GLOBAL_ACTIVITY,
)


class KeyValueStore:
    """Thin synchronous wrapper around a SQLAlchemy session. Commits on every write."""

    def __init__(self, db: Session):
        self.db = db

    # -- raw text ------------------------------------------------------------

    def get_raw(self, key: str) -> Optional[str]:
        row = self.db.get(KeyValueEntry, key)
        return row.value if row is not None else None

    def set_raw(self, key: str, value: str) -> None:
        try:
            row = self.db.get(KeyValueEntry, key)
            if row is None:
                self.db.add(KeyValueEntry(key=key, value=value))
            else:
                row.value = value
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def remove(self, key: str) -> None:
        try:
            row = self.db.get(KeyValueEntry, key)
            if row is not None:
                self.db.delete(row)
                self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def has(self, key: str) -> bool:
        return self.db.get(KeyValueEntry, key) is not None

    # -- JSON ----------------------------------------------------------------

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_raw(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (ValueError, TypeError):
            logger.warning("Unreadable JSON under %s, using default", key)
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set_raw(key, json.dumps(value, ensure_ascii=False))
