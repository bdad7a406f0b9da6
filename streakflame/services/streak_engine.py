"""
Streak Engine — owns the streak and list collections for one session.

State machine (derived from dates, never stored):

    lastCompletedDate == today       → completed
    lastCompletedDate == yesterday   → pending
    lastCompletedDate is None        → pending
    anything older                   → at-risk

Every mutation is persisted immediately to `streakflame_streaks` /
`streakflame_lists`. Completing records a reversible action first, so the
prior counters can be restored verbatim by `undo_streak`.

Paused and archived streaks are frozen: recalculation leaves their counters
alone and they cannot be completed. Archived streaks are left out of stats
and of name-uniqueness checks.

Collaborators are optional and injected:
  reminders  ReminderRegistry (schedule / unschedule / on_streak_completed)
  feedback   callable(streak) fired after a completion; failures are logged
             and ignored
"""
from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Any, Callable, Optional

from pydantic import ValidationError

from streakflame.core import dates
from streakflame.core.config import settings
from streakflame.core.errors import (
    DefaultListProtectedError,
    DuplicateListNameError,
    DuplicateStreakNameError,
    GraceUnavailableError,
    InvalidEmojiError,
    InvalidListError,
    InvalidReminderTimeError,
    InvalidStreakNameError,
    ListNotFoundError,
    StreakNotFoundError,
    StreakStateError,
)
from streakflame.schemas.action import PreviousState
from streakflame.schemas.streak import (
    DEFAULT_LIST_ID,
    DEFAULT_LIST_NAME,
    LIST_COLORS,
    Streak,
    StreakList,
    StreakStatus,
)
from streakflame.services import action_history, global_activity, grace
from streakflame.services.action_history import UndoAvailability
from streakflame.services.recovery import RecoveryResult, recover_streaks_on_boot
from streakflame.services.reminders import ReminderRegistry, ReminderSpec
from streakflame.services.storage import KeyValueStore, StorageKey
from streakflame.services.validator import log_validation_report, validate_backup_data

logger = logging.getLogger(__name__)

Feedback = Callable[[Streak], None]

# Fields edit_streak accepts; anything else is rejected.
EDITABLE_FIELDS = frozenset({
    "name", "emoji", "color", "notes", "description", "list_id",
    "scheduled_date", "scheduled_time", "font_size", "text_align",
    "reminder_enabled", "reminder_time",
})

# None means "leave as is" for these; every other editable field is cleared by None
REQUIRED_EDIT_FIELDS = frozenset({"name", "emoji", "list_id", "reminder_enabled"})


# ---------------------------------------------------------------------------
# Pure state rules
# ---------------------------------------------------------------------------

def get_streak_status(streak: Streak, today: Optional[str] = None) -> StreakStatus:
    day = today or dates.today()
    last = streak.last_completed_date
    if last == day:
        return StreakStatus.completed
    if last is None or last == dates.yesterday(day):
        return StreakStatus.pending
    return StreakStatus.at_risk


def recalculate_streak(streak: Streak, today: Optional[str] = None) -> Streak:
    """Zero `current_streak` when the run has lapsed. `best_streak` is never touched."""
    day = today or dates.today()
    last = streak.last_completed_date
    if last is None:
        if streak.current_streak == 0:
            return streak
        return streak.model_copy(update={"current_streak": 0})
    if last == day or last == dates.yesterday(day):
        return streak
    if streak.current_streak == 0:
        return streak
    return streak.model_copy(update={"current_streak": 0})


def _run_length_ending_at(completed_dates: list[str], end: str) -> int:
    """Consecutive completed days ending at `end` (inclusive)."""
    days = set(completed_dates)
    length = 0
    cursor = end
    while cursor in days:
        length += 1
        cursor = dates.add_days(cursor, -1)
    return length


def _round_percent(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        return 0
    # half-up, not banker's rounding
    return int(math.floor(numerator * 100 / denominator + 0.5))


def _generate_id() -> str:
    return f"{int(time.time() * 1000)}{uuid.uuid4().hex[:7]}"


def _snapshot(streak: Streak) -> PreviousState:
    return PreviousState(
        current_streak=streak.current_streak,
        last_completed_date=streak.last_completed_date,
        completed_dates=list(streak.completed_dates),
        best_streak=streak.best_streak,
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class StreakEngine:
    def __init__(
        self,
        store: KeyValueStore,
        reminders: Optional[ReminderRegistry] = None,
        feedback: Optional[Feedback] = None,
    ):
        self.store = store
        self.reminders = reminders
        self.feedback = feedback
        self.streaks: list[Streak] = []
        self.lists: list[StreakList] = []

    # -- loading -------------------------------------------------------------

    def boot(self, today: Optional[str] = None) -> RecoveryResult:
        """Recover the primary store, settle the undo log and recalculate everything."""
        result = recover_streaks_on_boot(self.store)
        action_history.initialize_action_history(self.store, today)
        grace.reset_weekly_grace(self.store, today)
        self.lists = self._load_lists()
        self.streaks = list(result.streaks)
        self._recalculate_all(today)
        for streak in self.streaks:
            self._sync_reminder(streak)
        logger.info("Boot complete: %d streaks, %d lists", len(self.streaks), len(self.lists))
        return result

    def load(self, today: Optional[str] = None) -> list[Streak]:
        """Read the primary store without backup fallback; invalid rows are skipped."""
        raw = self.store.get_json(StorageKey.STREAKS)
        if raw is None:
            self.streaks = []
        else:
            result = validate_backup_data(raw)
            if result.errors:
                log_validation_report(result)
                logger.warning("Skipped %d invalid streak records on load", len(result.errors))
            self.streaks = result.streaks
        self.lists = self._load_lists()
        self._recalculate_all(today)
        return self.streaks

    def _recalculate_all(self, today: Optional[str]) -> None:
        changed = False
        recalculated = []
        for streak in self.streaks:
            if streak.is_paused or streak.archived_at:
                recalculated.append(streak)
                continue
            updated = recalculate_streak(streak, today)
            changed = changed or updated is not streak
            recalculated.append(updated)
        self.streaks = recalculated
        if changed:
            self._save_streaks()

    def _load_lists(self) -> list[StreakList]:
        raw = self.store.get_json(StorageKey.LISTS, [])
        lists: list[StreakList] = []
        if isinstance(raw, list):
            for item in raw:
                try:
                    lists.append(StreakList.model_validate(item))
                except ValidationError:
                    logger.warning("Dropping malformed list entry")
        else:
            logger.warning("Stored lists are not a list, ignoring them")

        if not any(lst.id == DEFAULT_LIST_ID for lst in lists):
            lists.insert(0, StreakList(
                id=DEFAULT_LIST_ID,
                name=DEFAULT_LIST_NAME,
                color="fire",
                created_at=dates.today(),
            ))
            self.lists = lists
            self._save_lists()
        return lists

    # -- persistence ---------------------------------------------------------

    def _save_streaks(self) -> None:
        self.store.set_json(StorageKey.STREAKS, [s.to_storage() for s in self.streaks])

    def _save_lists(self) -> None:
        self.store.set_json(StorageKey.LISTS, [lst.model_dump(by_alias=True) for lst in self.lists])

    # -- lookups -------------------------------------------------------------

    def _index_of(self, streak_id: str) -> int:
        for i, streak in enumerate(self.streaks):
            if streak.id == streak_id:
                return i
        raise StreakNotFoundError(streak_id)

    def get_streak(self, streak_id: str) -> Streak:
        return self.streaks[self._index_of(streak_id)]

    def _replace(self, updated: Streak) -> Streak:
        self.streaks[self._index_of(updated.id)] = updated
        self._save_streaks()
        return updated

    def get_streaks(self, include_archived: bool = False) -> list[Streak]:
        if include_archived:
            return list(self.streaks)
        return [s for s in self.streaks if not s.archived_at]

    def get_streak_status(self, streak: Streak, today: Optional[str] = None) -> StreakStatus:
        return get_streak_status(streak, today)

    def recalculate_streak(self, streak: Streak, today: Optional[str] = None) -> Streak:
        return recalculate_streak(streak, today)

    # -- validation ----------------------------------------------------------

    def _check_name(self, name: str, exclude_id: Optional[str] = None) -> str:
        trimmed = (name or "").strip()
        if not trimmed:
            raise InvalidStreakNameError(name, "name must not be empty")
        limit = settings.STREAK_NAME_MAX_LENGTH
        if len(trimmed) > limit:
            raise InvalidStreakNameError(name, f"name must be at most {limit} characters")
        folded = trimmed.casefold()
        for other in self.streaks:
            if other.id == exclude_id or other.archived_at:
                continue
            if other.name.strip().casefold() == folded:
                raise DuplicateStreakNameError(trimmed)
        return trimmed

    @staticmethod
    def _check_emoji(emoji: str) -> str:
        if not emoji or not emoji.strip():
            raise InvalidEmojiError()
        return emoji.strip()

    @staticmethod
    def _check_reminder_time(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not dates.is_valid_time_format(value):
            raise InvalidReminderTimeError(value)
        return value

    def _check_list(self, list_id: str) -> str:
        if not any(lst.id == list_id for lst in self.lists):
            raise ListNotFoundError(list_id)
        return list_id

    # -- reminders -----------------------------------------------------------

    def _sync_reminder(self, streak: Streak) -> None:
        if self.reminders is None:
            return
        if streak.reminder_enabled and streak.reminder_time and not streak.archived_at and not streak.is_paused:
            self.reminders.schedule_reminder(
                streak.id,
                streak.name,
                streak.emoji,
                ReminderSpec(time=streak.reminder_time, description=streak.description or ""),
            )
        else:
            self.reminders.unschedule_reminder(streak.id)

    # -- streak lifecycle ----------------------------------------------------

    def add_streak(
        self,
        name: str,
        emoji: str,
        color: Optional[str] = None,
        list_id: Optional[str] = None,
        description: Optional[str] = None,
        notes: Optional[str] = None,
        reminder_enabled: bool = False,
        reminder_time: Optional[str] = None,
        today: Optional[str] = None,
    ) -> Streak:
        streak = Streak(
            id=_generate_id(),
            name=self._check_name(name),
            emoji=self._check_emoji(emoji),
            created_at=today or dates.today(),
            current_streak=0,
            best_streak=0,
            last_completed_date=None,
            completed_dates=[],
            color=color,
            description=description,
            notes=notes,
            list_id=self._check_list(list_id or DEFAULT_LIST_ID),
            reminder_enabled=reminder_enabled,
            reminder_time=self._check_reminder_time(reminder_time),
        )
        self.streaks.append(streak)
        self._save_streaks()
        self._sync_reminder(streak)
        logger.info("Created streak %s", streak.id)
        return streak

    def complete_streak(self, streak_id: str, today: Optional[str] = None) -> bool:
        """Complete for today. Returns False (and changes nothing) if already completed today."""
        day = today or dates.today()
        streak = self.get_streak(streak_id)
        if streak.archived_at:
            raise StreakStateError(streak_id, "streak is archived")
        if streak.is_paused:
            raise StreakStateError(streak_id, "streak is paused")
        if streak.last_completed_date == day:
            return False

        action_history.record_action(self.store, "complete", streak_id, _snapshot(streak), day)

        if streak.last_completed_date is None or streak.last_completed_date == dates.yesterday(day):
            current = streak.current_streak + 1
        else:
            current = 1
        completed_dates = list(streak.completed_dates)
        if day not in completed_dates:
            completed_dates.append(day)

        updated = self._replace(streak.model_copy(update={
            "current_streak": current,
            "best_streak": max(streak.best_streak, current),
            "last_completed_date": day,
            "completed_dates": completed_dates,
        }))

        global_activity.record_today_activity(self.store, day)
        if self.reminders is not None:
            self.reminders.on_streak_completed(streak_id)
        if self.feedback is not None:
            try:
                self.feedback(updated)
            except Exception:
                logger.warning("Completion feedback failed for %s", streak_id, exc_info=True)
        return True

    def undo_streak(self, streak_id: str, today: Optional[str] = None) -> UndoAvailability:
        """Restore the state captured by the latest undoable action. Refusals are returned, not raised."""
        day = today or dates.today()
        streak = self.get_streak(streak_id)
        availability = action_history.can_undo_action(self.store, streak_id, day)
        if not availability.can_undo:
            return availability

        action_history.record_action(self.store, "uncomplete", streak_id, _snapshot(streak), day)
        previous = availability.action.previous_state
        self._replace(streak.model_copy(update={
            "current_streak": previous.current_streak,
            "best_streak": previous.best_streak,
            "last_completed_date": previous.last_completed_date,
            "completed_dates": list(previous.completed_dates),
        }))
        logger.info("Reverted %s action for streak %s", availability.action.type, streak_id)
        return availability

    def edit_streak(self, streak_id: str, **updates: Any) -> Streak:
        unknown = set(updates) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"edit_streak() got unexpected fields: {', '.join(sorted(unknown))}")

        streak = self.get_streak(streak_id)
        changes = {k: v for k, v in updates.items() if v is not None or k not in REQUIRED_EDIT_FIELDS}
        if "name" in changes:
            changes["name"] = self._check_name(changes["name"], exclude_id=streak_id)
        if "emoji" in changes:
            changes["emoji"] = self._check_emoji(changes["emoji"])
        if "list_id" in changes:
            self._check_list(changes["list_id"])
        if "reminder_time" in changes:
            self._check_reminder_time(changes["reminder_time"])
        if not changes:
            return streak

        updated = self._replace(streak.model_copy(update=changes))
        if {"reminder_enabled", "reminder_time", "name", "emoji", "description"} & changes.keys():
            self._sync_reminder(updated)
        return updated

    def delete_streak(self, streak_id: str) -> None:
        index = self._index_of(streak_id)
        del self.streaks[index]
        self._save_streaks()
        grace.forget_streak(self.store, streak_id)
        if self.reminders is not None:
            self.reminders.unschedule_reminder(streak_id)
        logger.info("Deleted streak %s", streak_id)

    def move_to_list(self, streak_id: str, list_id: str) -> Streak:
        streak = self.get_streak(streak_id)
        return self._replace(streak.model_copy(update={"list_id": self._check_list(list_id)}))

    # -- grace ---------------------------------------------------------------

    def apply_grace(self, streak_id: str, kind: str, today: Optional[str] = None) -> Streak:
        """
        Forgive exactly one missed day: the streak must have been completed the
        day before yesterday. `last_completed_date` becomes yesterday and
        `current_streak` is restored to the run that had just lapsed, raising
        `best_streak` with it if needed. No completion is added.
        """
        day = today or dates.today()
        streak = self.get_streak(streak_id)
        if get_streak_status(streak, day) is not StreakStatus.at_risk:
            raise GraceUnavailableError(streak_id, kind, "streak is not at risk")
        if streak.last_completed_date != dates.days_ago(2, day):
            raise GraceUnavailableError(streak_id, kind, "more than one day was missed")

        if kind == "weekly":
            used = grace.use_weekly_grace(self.store, streak_id, day)
        elif kind == "monthly":
            used = grace.use_monthly_grace(self.store, streak_id, day)
        else:
            raise GraceUnavailableError(streak_id, kind, "unknown grace kind")
        if not used:
            raise GraceUnavailableError(streak_id, kind, "already used in this period")

        lapsed_run = _run_length_ending_at(streak.completed_dates, streak.last_completed_date)
        current = max(streak.current_streak, lapsed_run)
        logger.info("Applied %s grace to streak %s", kind, streak_id)
        return self._replace(streak.model_copy(update={
            "last_completed_date": dates.yesterday(day),
            "current_streak": current,
            "best_streak": max(streak.best_streak, current),
        }))

    # -- pause / archive / star ---------------------------------------------

    def pause_streak(self, streak_id: str, today: Optional[str] = None) -> Streak:
        streak = self.get_streak(streak_id)
        if streak.is_paused:
            return streak
        updated = self._replace(streak.model_copy(update={
            "is_paused": True,
            "paused_at": today or dates.today(),
        }))
        self._sync_reminder(updated)
        return updated

    def resume_streak(self, streak_id: str, today: Optional[str] = None) -> Streak:
        """Unfreeze. A run that lapsed while paused is reset now."""
        streak = self.get_streak(streak_id)
        if not streak.is_paused:
            return streak
        resumed = streak.model_copy(update={"is_paused": False, "paused_at": None})
        updated = self._replace(recalculate_streak(resumed, today))
        self._sync_reminder(updated)
        return updated

    def archive_streak(self, streak_id: str, today: Optional[str] = None) -> Streak:
        streak = self.get_streak(streak_id)
        if streak.archived_at:
            return streak
        updated = self._replace(streak.model_copy(update={"archived_at": today or dates.today()}))
        self._sync_reminder(updated)
        return updated

    def unarchive_streak(self, streak_id: str, today: Optional[str] = None) -> Streak:
        streak = self.get_streak(streak_id)
        if not streak.archived_at:
            return streak
        self._check_name(streak.name, exclude_id=streak_id)
        restored = streak.model_copy(update={"archived_at": None})
        if not restored.is_paused:
            restored = recalculate_streak(restored, today)
        updated = self._replace(restored)
        self._sync_reminder(updated)
        return updated

    def toggle_star(self, streak_id: str) -> Streak:
        streak = self.get_streak(streak_id)
        return self._replace(streak.model_copy(update={"is_starred": not streak.is_starred}))

    # -- stats ---------------------------------------------------------------

    def get_stats(self, today: Optional[str] = None) -> dict[str, int]:
        day = today or dates.today()
        streaks = self.get_streaks()
        count = len(streaks)
        # both ends of the window count, so a perfect record can exceed 100 before the cap
        week_start = dates.days_ago(7, day)
        month_start = dates.days_ago(30, day)

        weekly = sum(1 for s in streaks for d in s.completed_dates if d >= week_start)
        monthly = sum(1 for s in streaks for d in s.completed_dates if d >= month_start)

        return {
            "total_streaks": count,
            "active_streaks": sum(1 for s in streaks if get_streak_status(s, day) is not StreakStatus.at_risk),
            "total_completions": sum(len(s.completed_dates) for s in streaks),
            "longest_streak": max((s.best_streak for s in streaks), default=0),
            "weekly_completion_rate": min(100, _round_percent(weekly, count * 7)),
            "monthly_completion_rate": min(100, _round_percent(monthly, count * 30)),
        }

    # -- lists ---------------------------------------------------------------

    def get_lists(self) -> list[StreakList]:
        return list(self.lists)

    def _find_list(self, list_id: str) -> StreakList:
        for lst in self.lists:
            if lst.id == list_id:
                return lst
        raise ListNotFoundError(list_id)

    def _check_list_name(self, name: str, exclude_id: Optional[str] = None) -> str:
        trimmed = (name or "").strip()
        if not trimmed:
            raise InvalidListError("List name must not be empty.", {"name": name})
        if len(trimmed) > settings.STREAK_NAME_MAX_LENGTH:
            raise InvalidListError(
                f"List name must be at most {settings.STREAK_NAME_MAX_LENGTH} characters.",
                {"name": name},
            )
        folded = trimmed.casefold()
        if any(lst.id != exclude_id and lst.name.strip().casefold() == folded for lst in self.lists):
            raise DuplicateListNameError(trimmed)
        return trimmed

    def create_list(self, name: str, color: str = "fire", today: Optional[str] = None) -> StreakList:
        if color not in LIST_COLORS:
            raise InvalidListError(f"Unknown list color {color!r}.", {"color": color})
        new_list = StreakList(
            id=f"list_{_generate_id()}",
            name=self._check_list_name(name),
            color=color,
            created_at=today or dates.today(),
        )
        self.lists.append(new_list)
        self._save_lists()
        return new_list

    def rename_list(self, list_id: str, name: str) -> StreakList:
        target = self._find_list(list_id)
        renamed = target.model_copy(update={"name": self._check_list_name(name, exclude_id=list_id)})
        self.lists = [renamed if lst.id == list_id else lst for lst in self.lists]
        self._save_lists()
        return renamed

    def delete_list(self, list_id: str) -> int:
        """Delete a list and move its streaks to the default list. Returns how many moved."""
        if list_id == DEFAULT_LIST_ID:
            raise DefaultListProtectedError("deleted")
        self._find_list(list_id)
        self.lists = [lst for lst in self.lists if lst.id != list_id]
        self._save_lists()

        moved = 0
        for i, streak in enumerate(self.streaks):
            if streak.list_id == list_id:
                self.streaks[i] = streak.model_copy(update={"list_id": DEFAULT_LIST_ID})
                moved += 1
        if moved:
            self._save_streaks()
        return moved
