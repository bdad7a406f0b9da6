"""
Action history — the same-day undo log.

Every complete / uncomplete is appended together with the exact streak
state it replaced. An action can be undone only while it is the latest
action for its streak, happened today, and has not been finalized.

On startup `initialize_action_history` first finalizes everything dated
before today (yesterday's completions become permanent), then prunes
entries older than the retention window. Finalization and pruning are
independent: pruning only bounds storage.

Public API
----------
record_action(store, type, streak_id, previous_state, today)  -> DailyAction
get_last_action_for_streak(store, streak_id, date)            -> Optional[DailyAction]
can_undo_action(store, streak_id, today)                      -> UndoAvailability
finalize_old_actions(store, today)                            -> int
cleanup_old_actions(store, today)                             -> int
get_today_actions(store, today)                               -> list[DailyAction]
initialize_action_history(store, today)                       -> None
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from streakflame.core import dates
from streakflame.core.config import settings
from streakflame.schemas.action import ActionType, DailyAction, PreviousState
from streakflame.services.storage import KeyValueStore, StorageKey

logger = logging.getLogger(__name__)


class UndoReason:
    NOT_TODAY         = "not-today"
    ALREADY_FINALIZED = "already-finalized"
    NO_ACTION         = "no-action"


@dataclass
class UndoAvailability:
    can_undo: bool
    reason: Optional[str] = None
    action: Optional[DailyAction] = None


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def _load_actions(store: KeyValueStore) -> list[DailyAction]:
    raw = store.get_json(StorageKey.ACTION_HISTORY, [])
    if not isinstance(raw, list):
        logger.warning("Action history is not a list, ignoring it")
        return []
    actions: list[DailyAction] = []
    for item in raw:
        try:
            actions.append(DailyAction.model_validate(item))
        except ValidationError:
            logger.warning("Dropping malformed action history entry")
    return actions


def _save_actions(store: KeyValueStore, actions: list[DailyAction]) -> None:
    store.set_json(StorageKey.ACTION_HISTORY, [a.model_dump(by_alias=True) for a in actions])


def _generate_action_id() -> str:
    return f"action_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def record_action(
    store: KeyValueStore,
    action_type: ActionType,
    streak_id: str,
    previous_state: PreviousState,
    today: Optional[str] = None,
) -> DailyAction:
    """Append a reversible action stamped with today and the current instant."""
    action = DailyAction(
        id=_generate_action_id(),
        type=action_type,
        streak_id=streak_id,
        date=today or dates.today(),
        timestamp=datetime.now(tz=timezone.utc).isoformat(),
        finalized=False,
        previous_state=previous_state,
    )
    actions = _load_actions(store)
    actions.append(action)
    _save_actions(store, actions)
    return action


def get_last_action_for_streak(
    store: KeyValueStore,
    streak_id: str,
    date: str,
) -> Optional[DailyAction]:
    """Latest action by timestamp; on equal timestamps the later-appended one wins."""
    candidates = [
        (a.timestamp, i, a)
        for i, a in enumerate(_load_actions(store))
        if a.streak_id == streak_id and a.date == date
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda c: (c[0], c[1]))[2]


def can_undo_action(
    store: KeyValueStore,
    streak_id: str,
    today: Optional[str] = None,
) -> UndoAvailability:
    current_day = today or dates.today()
    action = get_last_action_for_streak(store, streak_id, current_day)

    if action is None:
        return UndoAvailability(can_undo=False, reason=UndoReason.NO_ACTION)
    if action.finalized:
        return UndoAvailability(can_undo=False, reason=UndoReason.ALREADY_FINALIZED, action=action)
    if action.date != current_day:
        return UndoAvailability(can_undo=False, reason=UndoReason.NOT_TODAY, action=action)
    return UndoAvailability(can_undo=True, action=action)


def finalize_old_actions(store: KeyValueStore, today: Optional[str] = None) -> int:
    """Lock every action dated before today. Returns how many were finalized."""
    current_day = today or dates.today()
    actions = _load_actions(store)

    count = 0
    for action in actions:
        if action.date < current_day and not action.finalized:
            action.finalized = True
            count += 1

    if count:
        _save_actions(store, actions)
        logger.info("Finalized %d actions from previous days", count)
    return count


def cleanup_old_actions(store: KeyValueStore, today: Optional[str] = None) -> int:
    """Drop actions older than the retention window. Returns how many were removed."""
    cutoff = dates.days_ago(settings.ACTION_RETENTION_DAYS, today)
    actions = _load_actions(store)
    kept = [a for a in actions if a.date >= cutoff]
    removed = len(actions) - len(kept)

    if removed:
        _save_actions(store, kept)
        logger.info("Cleaned up %d old actions", removed)
    return removed


def get_today_actions(store: KeyValueStore, today: Optional[str] = None) -> list[DailyAction]:
    current_day = today or dates.today()
    return [a for a in _load_actions(store) if a.date == current_day]


def initialize_action_history(store: KeyValueStore, today: Optional[str] = None) -> None:
    """Startup sequence: finalize, then clean up. Order matters."""
    finalize_old_actions(store, today)
    cleanup_old_actions(store, today)
