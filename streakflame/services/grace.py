"""
Grace — rate-limited forgiveness for one missed day.

Two independent allowances per streak:
  weekly   at most once per week id (see get_week_id)
  monthly  available again once the calendar month index
           (year * 12 + month) has advanced by at least 1 since last use

Checking availability never consumes it. Using it when unavailable returns
False and leaves the tracker untouched. The tracker is a map
streak_id -> {weeklyUsed, weekId, monthlyUsed} under `streakflame_grace`.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Optional

from streakflame.core import dates
from streakflame.services.storage import KeyValueStore, StorageKey

logger = logging.getLogger(__name__)


@dataclass
class GraceStatus:
    weekly_available: bool
    monthly_available: bool


def get_week_id(day: Optional[str] = None) -> str:
    """
    `YYYY-Www` computed from the year and day of year, with week 1 being the
    (possibly partial) Sunday-started week containing January 1st.
    Independent of locale week-numbering rules.
    """
    d = dates.parse_local_date(day or dates.today())
    jan1 = date(d.year, 1, 1)
    day_of_year0 = (d - jan1).days
    jan1_weekday = (jan1.weekday() + 1) % 7   # Sunday = 0
    week_number = math.ceil((day_of_year0 + jan1_weekday + 1) / 7)
    return f"{d.year}-W{week_number:02d}"


def _month_index(value: str) -> int:
    d = dates.parse_local_date(value)
    return d.year * 12 + (d.month - 1)


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def _load_tracker(store: KeyValueStore) -> dict[str, dict]:
    tracker = store.get_json(StorageKey.GRACE, {})
    if not isinstance(tracker, dict):
        logger.warning("Grace tracker is not a mapping, resetting it")
        return {}
    return {k: v for k, v in tracker.items() if isinstance(v, dict)}


def _save_tracker(store: KeyValueStore, tracker: dict[str, dict]) -> None:
    store.set_json(StorageKey.GRACE, tracker)


# ---------------------------------------------------------------------------
# Public: availability (pure reads)
# ---------------------------------------------------------------------------

def can_use_weekly_grace(store: KeyValueStore, streak_id: str, today: Optional[str] = None) -> bool:
    entry = _load_tracker(store).get(streak_id)
    if not entry:
        return True
    if entry.get("weekId") != get_week_id(today):
        return True
    return not entry.get("weeklyUsed", False)


def can_use_monthly_grace(store: KeyValueStore, streak_id: str, today: Optional[str] = None) -> bool:
    entry = _load_tracker(store).get(streak_id)
    last_use = entry.get("monthlyUsed") if entry else None
    if not last_use or not dates.is_valid_date_format(last_use):
        return True
    return _month_index(today or dates.today()) - _month_index(last_use) >= 1


def get_grace_status(store: KeyValueStore, streak_id: str, today: Optional[str] = None) -> GraceStatus:
    return GraceStatus(
        weekly_available=can_use_weekly_grace(store, streak_id, today),
        monthly_available=can_use_monthly_grace(store, streak_id, today),
    )


# ---------------------------------------------------------------------------
# Public: consumption
# ---------------------------------------------------------------------------

def use_weekly_grace(store: KeyValueStore, streak_id: str, today: Optional[str] = None) -> bool:
    if not can_use_weekly_grace(store, streak_id, today):
        return False
    tracker = _load_tracker(store)
    previous = tracker.get(streak_id, {})
    tracker[streak_id] = {
        "weeklyUsed": True,
        "weekId": get_week_id(today),
        "monthlyUsed": previous.get("monthlyUsed"),
    }
    _save_tracker(store, tracker)
    return True


def use_monthly_grace(store: KeyValueStore, streak_id: str, today: Optional[str] = None) -> bool:
    if not can_use_monthly_grace(store, streak_id, today):
        return False
    tracker = _load_tracker(store)
    previous = tracker.get(streak_id, {})
    tracker[streak_id] = {
        "weeklyUsed": bool(previous.get("weeklyUsed", False)),
        "weekId": previous.get("weekId") or get_week_id(today),
        "monthlyUsed": today or dates.today(),
    }
    _save_tracker(store, tracker)
    return True


def reset_weekly_grace(store: KeyValueStore, today: Optional[str] = None) -> int:
    """Clear weekly flags that belong to a past week. Returns how many entries changed."""
    tracker = _load_tracker(store)
    current_week = get_week_id(today)
    changed = 0
    for entry in tracker.values():
        if entry.get("weekId") != current_week:
            entry["weeklyUsed"] = False
            entry["weekId"] = current_week
            changed += 1
    if changed:
        _save_tracker(store, tracker)
    return changed


def forget_streak(store: KeyValueStore, streak_id: str) -> None:
    """Drop the tracker entry of a deleted streak."""
    tracker = _load_tracker(store)
    if tracker.pop(streak_id, None) is not None:
        _save_tracker(store, tracker)
