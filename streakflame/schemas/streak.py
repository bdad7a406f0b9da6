"""
Streak and StreakList schemas.

The persisted / exported JSON uses camelCase keys (`currentStreak`,
`lastCompletedDate` …). Models expose snake_case attributes and read or
write either spelling through camelCase aliases.

GET    /streaks              → list[StreakOut]
POST   /streaks              → CreateStreakRequest → StreakOut
PATCH  /streaks/{id}         → UpdateStreakRequest → StreakOut
GET    /stats                → StreakStatsResponse
GET    /lists                → list[StreakList]
POST   /lists                → CreateListRequest → StreakList
PATCH  /lists/{id}           → RenameListRequest → StreakList
"""
from __future__ import annotations

import enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


FontSize = Literal["small", "medium", "large"]
TextAlign = Literal["left", "center", "right"]
ListColor = Literal["fire", "ocean", "forest", "sunset", "purple", "rose"]

LIST_COLORS: tuple[str, ...] = ("fire", "ocean", "forest", "sunset", "purple", "rose")
DEFAULT_LIST_ID = "default"
DEFAULT_LIST_NAME = "My Streaks"
REMINDER_TIME_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"


class StreakStatus(str, enum.Enum):
    completed = "completed"
    pending = "pending"
    at_risk = "at-risk"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Persisted entities
# ---------------------------------------------------------------------------

class Streak(CamelModel):
    """A tracked habit as persisted under `streakflame_streaks`."""
    id: str
    name: str
    emoji: str
    created_at: str
    current_streak: int = 0
    best_streak: int = 0
    last_completed_date: Optional[str] = None
    completed_dates: list[str] = Field(default_factory=list)

    color: Optional[str] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    list_id: Optional[str] = None
    is_starred: bool = False
    is_paused: bool = False
    paused_at: Optional[str] = None
    archived_at: Optional[str] = None
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    font_size: Optional[FontSize] = None
    text_align: Optional[TextAlign] = None
    reminder_enabled: bool = False
    reminder_time: Optional[str] = None

    def to_storage(self) -> dict[str, Any]:
        """camelCase dict; unset optionals are dropped, lastCompletedDate is always written."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["lastCompletedDate"] = self.last_completed_date
        return data


class StreakList(CamelModel):
    id: str
    name: str
    color: ListColor = "fire"
    created_at: str


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class CreateStreakRequest(CamelModel):
    name: str = Field(min_length=1, max_length=200, examples=["Morning run"])
    emoji: str = Field(min_length=1, examples=["🏃"])
    color: Optional[str] = Field(default=None, examples=["ocean"])
    list_id: Optional[str] = Field(default=None, description="Defaults to the default list.")
    description: Optional[str] = None
    notes: Optional[str] = None
    reminder_enabled: bool = False
    reminder_time: Optional[str] = Field(default=None, pattern=REMINDER_TIME_PATTERN, examples=["08:30"])


class UpdateStreakRequest(CamelModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = None
    emoji: Optional[str] = None
    color: Optional[str] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    list_id: Optional[str] = None
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    font_size: Optional[FontSize] = None
    text_align: Optional[TextAlign] = None
    reminder_enabled: Optional[bool] = None
    reminder_time: Optional[str] = Field(default=None, pattern=REMINDER_TIME_PATTERN)


class GraceRequest(BaseModel):
    kind: Literal["weekly", "monthly"] = Field(examples=["weekly"])


class CreateListRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50, examples=["Health"])
    color: ListColor = "fire"


class RenameListRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class StreakOut(Streak):
    status: StreakStatus = Field(description='"completed" | "pending" | "at-risk"')


class CompleteStreakResponse(BaseModel):
    completed: bool = Field(description="False when the streak was already completed today.")
    streak: StreakOut


class StreakStatsResponse(CamelModel):
    total_streaks: int
    active_streaks: int = Field(description="Streaks that are not at-risk.")
    total_completions: int
    longest_streak: int
    weekly_completion_rate: int = Field(description="Percent, 0–100.")
    monthly_completion_rate: int = Field(description="Percent, 0–100.")


class GlobalStreakResponse(CamelModel):
    current_streak: int
    best_streak: int
    active_days: int


class GraceStatusResponse(CamelModel):
    weekly_available: bool
    monthly_available: bool
