"""
Custom exception hierarchy for StreakFlame.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Validator and recovery code never raise these: they return result objects.
Only the Streak Engine raises them, for caller mistakes.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from streakflame.schemas.common import FieldError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class StreakflameException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class StreakNotFoundError(StreakflameException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "STREAK_NOT_FOUND"

    def __init__(self, streak_id: str):
        super().__init__(
            message=f"Streak {streak_id} does not exist.",
            details={"streak_id": streak_id},
        )


class InvalidStreakNameError(StreakflameException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_STREAK_NAME"

    def __init__(self, name: str, reason: str):
        super().__init__(
            message=f"Invalid streak name: {reason}",
            details={"name": name, "reason": reason},
        )


class DuplicateStreakNameError(StreakflameException):
    http_status = status.HTTP_409_CONFLICT
    code = "DUPLICATE_STREAK_NAME"

    def __init__(self, name: str):
        super().__init__(
            message=f'A streak named "{name}" already exists.',
            details={"name": name},
        )


class InvalidEmojiError(StreakflameException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_EMOJI"

    def __init__(self):
        super().__init__(message="Emoji must not be empty.")


class InvalidReminderTimeError(StreakflameException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_REMINDER_TIME"

    def __init__(self, value: str):
        super().__init__(
            message=f"Reminder time must be HH:MM between 00:00 and 23:59, got \"{value}\".",
            details={"reminder_time": value},
        )


class StreakStateError(StreakflameException):
    http_status = status.HTTP_409_CONFLICT
    code = "INVALID_STREAK_STATE"

    def __init__(self, streak_id: str, reason: str):
        super().__init__(
            message=f"Streak {streak_id} cannot be changed: {reason}.",
            details={"streak_id": streak_id, "reason": reason},
        )


class ListNotFoundError(StreakflameException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "LIST_NOT_FOUND"

    def __init__(self, list_id: str):
        super().__init__(
            message=f"List {list_id} does not exist.",
            details={"list_id": list_id},
        )


class DuplicateListNameError(StreakflameException):
    http_status = status.HTTP_409_CONFLICT
    code = "DUPLICATE_LIST_NAME"

    def __init__(self, name: str):
        super().__init__(
            message=f'A list named "{name}" already exists.',
            details={"name": name},
        )


class InvalidListError(StreakflameException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_LIST"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, details=details)


class DefaultListProtectedError(StreakflameException):
    http_status = status.HTTP_409_CONFLICT
    code = "DEFAULT_LIST_PROTECTED"

    def __init__(self, operation: str):
        super().__init__(
            message=f"The default list cannot be {operation}.",
            details={"operation": operation},
        )


class UndoUnavailableError(StreakflameException):
    http_status = status.HTTP_409_CONFLICT
    code = "UNDO_UNAVAILABLE"

    def __init__(self, streak_id: str, reason: str):
        super().__init__(
            message=f"Nothing to undo for streak {streak_id} ({reason}).",
            details={"streak_id": streak_id, "reason": reason},
        )


class GraceUnavailableError(StreakflameException):
    http_status = status.HTTP_409_CONFLICT
    code = "GRACE_UNAVAILABLE"

    def __init__(self, streak_id: str, kind: str, reason: str):
        super().__init__(
            message=f"{kind.capitalize()} grace cannot be used for streak {streak_id}: {reason}.",
            details={"streak_id": streak_id, "kind": kind, "reason": reason},
        )


class InvalidBackupError(StreakflameException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_BACKUP"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(
            message=message,
            details={"errors": errors} if errors else {},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def streakflame_exception_handler(request: Request, exc: StreakflameException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = [FieldError.from_pydantic(error).model_dump() for error in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
