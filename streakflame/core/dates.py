"""
Local-calendar date helpers.

Every date in StreakFlame is a plain `YYYY-MM-DD` string in the user's
local calendar. Arithmetic goes through `datetime.date`, which carries no
timezone, so a completion logged at 23:30 local time is never shifted to
the next day the way a UTC-normalised timestamp would be.

The format is fixed-width and zero-padded, so plain string comparison
orders dates chronologically.

Helpers that are relative to "today" accept an optional `ref` date string
so callers (and tests) can pin the current day.
"""
from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Optional

_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_TIME_RE = re.compile(r"(?:[01][0-9]|2[0-3]):[0-5][0-9]")


def format_local_date(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_local_date(value: str) -> date:
    """Parse a `YYYY-MM-DD` string. Raises ValueError on anything else."""
    if not isinstance(value, str) or not _DATE_RE.fullmatch(value):
        raise ValueError(f"not a YYYY-MM-DD date: {value!r}")
    year, month, day = (int(part) for part in value.split("-"))
    return date(year, month, day)


def is_valid_date_format(value: object) -> bool:
    """Strict format check plus a real calendar date (no Feb 30, no month 13)."""
    if not value or not isinstance(value, str):
        return False
    try:
        parse_local_date(value)
    except ValueError:
        return False
    return True


def is_valid_time_format(value: object) -> bool:
    """24-hour `HH:MM`, zero-padded."""
    return isinstance(value, str) and _TIME_RE.fullmatch(value) is not None


def today() -> str:
    return format_local_date(date.today())


def _resolve(ref: Optional[str]) -> date:
    return parse_local_date(ref) if ref else date.today()


def add_days(value: str, days: int) -> str:
    return format_local_date(parse_local_date(value) + timedelta(days=days))


def days_ago(days: int, ref: Optional[str] = None) -> str:
    return format_local_date(_resolve(ref) - timedelta(days=days))


def yesterday(ref: Optional[str] = None) -> str:
    return days_ago(1, ref)


def is_today(value: Optional[str], ref: Optional[str] = None) -> bool:
    if not value:
        return False
    return value == (ref or today())


def is_yesterday(value: Optional[str], ref: Optional[str] = None) -> bool:
    if not value:
        return False
    return value == yesterday(ref)


def compare_date_strings(a: str, b: str) -> int:
    """-1 if a < b, 0 if equal, 1 if a > b."""
    if a == b:
        return 0
    return -1 if a < b else 1


def is_date_before(value: str, other: str) -> bool:
    return value < other


def is_date_after(value: str, other: str) -> bool:
    return value > other


def is_date_between(value: str, start: str, end: str) -> bool:
    """Inclusive on both ends."""
    return start <= value <= end
