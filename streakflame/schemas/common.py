"""
Error envelope shared by every router.

All failures leave the API as `{code, message, details}`. `code` is the
machine-readable tag (STREAK_NOT_FOUND, UNDO_UNAVAILABLE, INVALID_BACKUP...)
raised by `streakflame.core.errors`; `details` carries the offending ids or,
for request validation, a list of `FieldError` entries.
"""
from typing import Any, Optional

from pydantic import BaseModel


class FieldError(BaseModel):
    """One rejected request field, as reported under `details.errors`."""
    field: str
    message: str
    type: str

    @classmethod
    def from_pydantic(cls, error: dict[str, Any]) -> "FieldError":
        return cls(
            field=".".join(str(loc) for loc in error["loc"] if loc != "body"),
            message=error["msg"],
            type=error["type"],
        )


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None
