"""
Global activity — one cross-habit streak counter.

A day counts once if at least one streak was completed on it, no matter
how many. The set of active days lives under `streakflame_global_activity`
as {"activeDays": [...]} and keeps only the most recent entries.
"""
from __future__ import annotations

import logging
from typing import Optional

from streakflame.core import dates
from streakflame.core.config import settings
from streakflame.services.storage import KeyValueStore, StorageKey

logger = logging.getLogger(__name__)


def get_global_activity(store: KeyValueStore) -> list[str]:
    data = store.get_json(StorageKey.GLOBAL_ACTIVITY)
    if not isinstance(data, dict) or not isinstance(data.get("activeDays"), list):
        return []
    return [d for d in data["activeDays"] if dates.is_valid_date_format(d)]


def record_today_activity(store: KeyValueStore, today: Optional[str] = None) -> bool:
    """Mark today as active. Returns False if it already was."""
    day = today or dates.today()
    active_days = get_global_activity(store)
    if day in active_days:
        return False

    active_days.append(day)
    cap = settings.GLOBAL_ACTIVITY_CAP
    if len(active_days) > cap:
        active_days = sorted(active_days)[-cap:]
    store.set_json(StorageKey.GLOBAL_ACTIVITY, {"activeDays": active_days})
    return True


def calculate_global_streak(store: KeyValueStore, today: Optional[str] = None) -> int:
    """Consecutive active days ending today or yesterday; 0 if the run has lapsed."""
    days = sorted(set(get_global_activity(store)), reverse=True)
    if not days:
        return 0

    if days[0] != (today or dates.today()) and days[0] != dates.yesterday(today):
        return 0

    streak = 1
    expected = days[0]
    for day in days[1:]:
        expected = dates.add_days(expected, -1)
        if day != expected:
            break
        streak += 1
    return streak


def get_best_global_streak(store: KeyValueStore) -> int:
    """Longest run of consecutive active days ever recorded."""
    days = sorted(set(get_global_activity(store)))
    if not days:
        return 0

    best = current = 1
    for previous, day in zip(days, days[1:]):
        if day == dates.add_days(previous, 1):
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best
