"""
Reminder registry — the in-process side of the reminder collaborator.

Delivery (push notifications, OS schedulers) is not done here. The
registry only tracks, per streak, when the next reminder is due and which
callback to run; the host calls `fire_due()` from whatever timer it owns.

The registry is an explicit object owned by the application session
(`start()` / `stop()`), injected into the Streak Engine.

`on_streak_completed` reconciles a user completion against a pending
reminder for the same day: today's reminder is skipped and the next one is
scheduled. Calling it twice, or for a streak with no reminder, is a no-op.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

logger = logging.getLogger(__name__)

OnFire = Callable[[str], None]

EVERY_DAY = (True,) * 7


@dataclass
class ReminderSpec:
    time: str                                    # "HH:MM", local
    repeat_days: tuple[bool, ...] = EVERY_DAY    # Sunday first
    description: str = ""


@dataclass
class ScheduledReminder:
    streak_id: str
    streak_name: str
    streak_emoji: str
    spec: ReminderSpec
    next_fire: datetime
    on_fire: Optional[OnFire] = field(default=None, repr=False)

    @property
    def title(self) -> str:
        return f"{self.streak_emoji} Time for {self.streak_name}"


def _sunday_index(d: datetime) -> int:
    return (d.weekday() + 1) % 7


def calculate_next_reminder_time(
    time: str,
    repeat_days: tuple[bool, ...] = EVERY_DAY,
    now: Optional[datetime] = None,
) -> datetime:
    """Next instant strictly after `now` at HH:MM on an enabled weekday."""
    now = now or datetime.now()
    hours, minutes = (int(part) for part in time.split(":"))
    candidate = now.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)

    if not any(repeat_days):
        return candidate
    for _ in range(7):
        if repeat_days[_sunday_index(candidate)]:
            return candidate
        candidate += timedelta(days=1)
    return candidate


class ReminderRegistry:
    def __init__(self) -> None:
        self._scheduled: dict[str, ScheduledReminder] = {}
        self._running = False

    # -- lifecycle -------------------------------------------------------

    def start(self) -> None:
        self._running = True

    def stop(self) -> None:
        self._running = False
        self._scheduled.clear()

    @property
    def running(self) -> bool:
        return self._running

    # -- collaborator interface -----------------------------------------

    def schedule_reminder(
        self,
        streak_id: str,
        streak_name: str,
        streak_emoji: str,
        spec: ReminderSpec,
        on_fire: Optional[OnFire] = None,
        now: Optional[datetime] = None,
    ) -> ScheduledReminder:
        """Schedule (or replace) the reminder for a streak."""
        reminder = ScheduledReminder(
            streak_id=streak_id,
            streak_name=streak_name,
            streak_emoji=streak_emoji,
            spec=spec,
            next_fire=calculate_next_reminder_time(spec.time, spec.repeat_days, now),
            on_fire=on_fire,
        )
        self._scheduled[streak_id] = reminder
        logger.debug("Scheduled reminder for %s at %s", streak_id, reminder.next_fire.isoformat())
        return reminder

    def unschedule_reminder(self, streak_id: str) -> bool:
        return self._scheduled.pop(streak_id, None) is not None

    def on_streak_completed(self, streak_id: str, now: Optional[datetime] = None) -> bool:
        """Skip today's pending reminder for a streak that was just completed."""
        reminder = self._scheduled.get(streak_id)
        if reminder is None:
            return False
        now = now or datetime.now()
        if reminder.next_fire.date() != now.date():
            return False
        end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=0)
        reminder.next_fire = calculate_next_reminder_time(
            reminder.spec.time, reminder.spec.repeat_days, end_of_day,
        )
        return True

    def get(self, streak_id: str) -> Optional[ScheduledReminder]:
        return self._scheduled.get(streak_id)

    def scheduled(self) -> list[ScheduledReminder]:
        return sorted(self._scheduled.values(), key=lambda r: r.next_fire)

    # -- host timer entry point -----------------------------------------

    def fire_due(self, now: Optional[datetime] = None) -> list[str]:
        """Run callbacks of every reminder due at `now` and reschedule them. Returns streak ids fired."""
        if not self._running:
            return []
        now = now or datetime.now()
        fired: list[str] = []
        for reminder in list(self._scheduled.values()):
            if reminder.next_fire > now:
                continue
            if reminder.on_fire is not None:
                try:
                    reminder.on_fire(reminder.streak_id)
                except Exception:
                    logger.warning("Reminder callback failed for %s", reminder.streak_id, exc_info=True)
            reminder.next_fire = calculate_next_reminder_time(
                reminder.spec.time, reminder.spec.repeat_days, now,
            )
            fired.append(reminder.streak_id)
        return fired
