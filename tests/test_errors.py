"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
import pytest

from streakflame.core.errors import (
    DefaultListProtectedError,
    DuplicateStreakNameError,
    GraceUnavailableError,
    InvalidBackupError,
    InvalidReminderTimeError,
    InvalidStreakNameError,
    StreakNotFoundError,
    UndoUnavailableError,
)


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_streak_not_found(self):
        err = StreakNotFoundError("abc")
        assert err.http_status == 404
        assert err.code == "STREAK_NOT_FOUND"
        assert "abc" in err.message
        assert err.to_dict()["details"]["streak_id"] == "abc"

    def test_invalid_name(self):
        err = InvalidStreakNameError("", "name must not be empty")
        assert err.http_status == 422
        assert err.code == "INVALID_STREAK_NAME"
        assert err.details["reason"] == "name must not be empty"

    def test_duplicate_name(self):
        err = DuplicateStreakNameError("Run")
        assert err.http_status == 409
        assert '"Run"' in err.message

    def test_default_list_protected(self):
        err = DefaultListProtectedError("deleted")
        assert err.http_status == 409
        assert err.message == "The default list cannot be deleted."

    def test_undo_unavailable(self):
        err = UndoUnavailableError("s1", "already-finalized")
        assert err.code == "UNDO_UNAVAILABLE"
        assert err.to_dict()["details"] == {"streak_id": "s1", "reason": "already-finalized"}

    def test_grace_unavailable(self):
        err = GraceUnavailableError("s1", "weekly", "already used in this period")
        assert err.message.startswith("Weekly grace")

    def test_invalid_reminder_time(self):
        err = InvalidReminderTimeError("99:99")
        assert err.http_status == 422
        assert err.code == "INVALID_REMINDER_TIME"
        assert err.details == {"reminder_time": "99:99"}

    def test_invalid_backup_without_errors_has_no_details(self):
        d = InvalidBackupError("Invalid backup format.").to_dict()
        assert d == {"code": "INVALID_BACKUP", "message": "Invalid backup format."}


# ---------------------------------------------------------------------------
# HTTP envelope
# ---------------------------------------------------------------------------

class TestErrorResponses:
    def test_validation_error_envelope(self, client):
        resp = client.post("/streaks", json={"emoji": "🏃"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"][0]["field"] == "name"

    def test_bad_reminder_time(self, client):
        resp = client.post("/streaks", json={"name": "Run", "emoji": "🏃", "reminderTime": "7am"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("value", ["99:99", "24:00"])
    def test_out_of_range_reminder_time(self, client, value):
        resp = client.post("/streaks", json={"name": "Run", "emoji": "🏃", "reminderTime": value})
        assert resp.status_code == 422
        assert resp.json()["code"] == "VALIDATION_ERROR"
        assert client.get("/streaks").json() == []

    def test_too_long_name(self, client):
        resp = client.post("/streaks", json={"name": "x" * 51, "emoji": "🏃"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_STREAK_NAME"

    def test_duplicate_name_conflict(self, client):
        client.post("/streaks", json={"name": "Run", "emoji": "🏃"})
        resp = client.post("/streaks", json={"name": "RUN", "emoji": "🏃"})
        assert resp.status_code == 409
        assert resp.json()["code"] == "DUPLICATE_STREAK_NAME"

    def test_unknown_list_on_create(self, client):
        resp = client.post("/streaks", json={"name": "Run", "emoji": "🏃", "listId": "nope"})
        assert resp.status_code == 404
        assert resp.json()["code"] == "LIST_NOT_FOUND"

    @pytest.mark.parametrize("method, path", [
        ("post", "/streaks/missing/complete"),
        ("get", "/streaks/missing/undo"),
        ("get", "/streaks/missing/grace"),
        ("post", "/streaks/missing/star"),
        ("delete", "/streaks/missing"),
    ])
    def test_unknown_streak_everywhere(self, client, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 404
        assert resp.json()["code"] == "STREAK_NOT_FOUND"
