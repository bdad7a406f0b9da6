"""
HTTP-level tests for every router. Responses use camelCase keys.
"""
from streakflame.services.storage import StorageKey


def _create(client, name="Run", emoji="🏃", **extra):
    resp = client.post("/streaks", json={"name": name, "emoji": emoji, **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

class TestStreakEndpoints:
    def test_create(self, client):
        body = _create(client, description="5k", reminderEnabled=True, reminderTime="07:00")
        assert body["name"] == "Run"
        assert body["currentStreak"] == 0
        assert body["lastCompletedDate"] is None
        assert body["listId"] == "default"
        assert body["status"] == "pending"
        assert body["reminderTime"] == "07:00"

    def test_create_schedules_reminder(self, client):
        from streakflame.main import app

        body = _create(client, reminderEnabled=True, reminderTime="07:00")
        assert app.state.reminders.get(body["id"]) is not None

    def test_list_and_get(self, client):
        created = _create(client)
        assert [s["id"] for s in client.get("/streaks").json()] == [created["id"]]
        assert client.get(f"/streaks/{created['id']}").json()["name"] == "Run"

    def test_complete_is_idempotent(self, client):
        streak_id = _create(client)["id"]

        first = client.post(f"/streaks/{streak_id}/complete").json()
        assert first["completed"] is True
        assert first["streak"]["currentStreak"] == 1
        assert first["streak"]["status"] == "completed"

        second = client.post(f"/streaks/{streak_id}/complete").json()
        assert second["completed"] is False
        assert second["streak"]["currentStreak"] == 1

    def test_undo_flow(self, client):
        streak_id = _create(client)["id"]
        client.post(f"/streaks/{streak_id}/complete")

        status = client.get(f"/streaks/{streak_id}/undo").json()
        assert status["canUndo"] is True
        assert status["action"]["type"] == "complete"

        resp = client.post(f"/streaks/{streak_id}/undo")
        assert resp.status_code == 200
        assert resp.json()["currentStreak"] == 0
        assert resp.json()["completedDates"] == []

    def test_undo_unavailable(self, client):
        streak_id = _create(client)["id"]
        resp = client.post(f"/streaks/{streak_id}/undo")
        assert resp.status_code == 409
        assert resp.json()["code"] == "UNDO_UNAVAILABLE"
        assert resp.json()["details"]["reason"] == "no-action"

    def test_patch(self, client):
        streak_id = _create(client)["id"]
        resp = client.patch(f"/streaks/{streak_id}", json={"name": "Jog", "textAlign": "center"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Jog"
        assert resp.json()["textAlign"] == "center"

    def test_patch_null_clears_field(self, client):
        streak_id = _create(client, description="5k", reminderEnabled=True, reminderTime="07:00")["id"]

        resp = client.patch(f"/streaks/{streak_id}", json={"description": None, "reminderTime": None})

        assert resp.status_code == 200
        assert resp.json()["description"] is None
        assert resp.json()["reminderTime"] is None
        assert resp.json()["name"] == "Run"

    def test_delete(self, client):
        streak_id = _create(client)["id"]
        assert client.delete(f"/streaks/{streak_id}").status_code == 204
        resp = client.get(f"/streaks/{streak_id}")
        assert resp.status_code == 404
        assert resp.json()["code"] == "STREAK_NOT_FOUND"

    def test_grace_status_and_refusal(self, client):
        streak_id = _create(client)["id"]
        status = client.get(f"/streaks/{streak_id}/grace").json()
        assert status == {"weeklyAvailable": True, "monthlyAvailable": True}

        resp = client.post(f"/streaks/{streak_id}/grace", json={"kind": "weekly"})
        assert resp.status_code == 409
        assert resp.json()["code"] == "GRACE_UNAVAILABLE"

    def test_flags(self, client):
        streak_id = _create(client)["id"]
        assert client.post(f"/streaks/{streak_id}/star").json()["isStarred"] is True
        assert client.post(f"/streaks/{streak_id}/pause").json()["isPaused"] is True

        resp = client.post(f"/streaks/{streak_id}/complete")
        assert resp.status_code == 409
        assert resp.json()["code"] == "INVALID_STREAK_STATE"

        assert client.post(f"/streaks/{streak_id}/resume").json()["isPaused"] is False
        assert client.post(f"/streaks/{streak_id}/archive").json()["archivedAt"] is not None
        assert client.get("/streaks").json() == []
        assert len(client.get("/streaks", params={"include_archived": True}).json()) == 1
        assert client.post(f"/streaks/{streak_id}/unarchive").json()["archivedAt"] is None


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

class TestStatsEndpoints:
    def test_stats(self, client):
        a = _create(client, "A", "🅰️")["id"]
        _create(client, "B", "🅱️")
        client.post(f"/streaks/{a}/complete")

        stats = client.get("/stats").json()
        assert stats["totalStreaks"] == 2
        assert stats["activeStreaks"] == 2
        assert stats["totalCompletions"] == 1
        assert stats["longestStreak"] == 1
        assert stats["weeklyCompletionRate"] == 7

    def test_global(self, client):
        a = _create(client, "A", "🅰️")["id"]
        b = _create(client, "B", "🅱️")["id"]
        client.post(f"/streaks/{a}/complete")
        client.post(f"/streaks/{b}/complete")

        body = client.get("/stats/global").json()
        assert body == {"currentStreak": 1, "bestStreak": 1, "activeDays": 1}


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------

class TestListEndpoints:
    def test_crud(self, client):
        assert [l["id"] for l in client.get("/lists").json()] == ["default"]

        resp = client.post("/lists", json={"name": "Health", "color": "ocean"})
        assert resp.status_code == 201
        list_id = resp.json()["id"]
        assert resp.json()["createdAt"]

        assert client.patch(f"/lists/{list_id}", json={"name": "Fitness"}).json()["name"] == "Fitness"

        streak_id = _create(client, listId=list_id)["id"]
        assert client.delete(f"/lists/{list_id}").json() == {"deleted": list_id, "moved": 1}
        assert client.get(f"/streaks/{streak_id}").json()["listId"] == "default"

    def test_default_list_protected(self, client):
        resp = client.delete("/lists/default")
        assert resp.status_code == 409
        assert resp.json()["code"] == "DEFAULT_LIST_PROTECTED"

    def test_bad_color_rejected_by_schema(self, client):
        resp = client.post("/lists", json={"name": "Health", "color": "neon"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# Backup
# ---------------------------------------------------------------------------

class TestBackupEndpoints:
    def test_export_then_import(self, client):
        _create(client)
        exported = client.get("/backup/export").json()
        assert exported["version"] == "1.0.0"
        assert len(exported["data"][StorageKey.STREAKS]) == 1

        resp = client.post("/backup/import", json=exported)
        assert resp.status_code == 200
        assert resp.json()["imported"] == 1

    def test_import_garbage(self, client):
        resp = client.post("/backup/import", json={"hello": "world"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_BACKUP"

    def test_import_bare_list_reports_skipped(self, client):
        rows = [
            {"id": "a", "name": "A", "emoji": "🅰️", "createdAt": "2026-01-01",
             "currentStreak": 0, "bestStreak": 0, "lastCompletedDate": None, "completedDates": []},
            {"id": "b", "name": "B"},
        ]
        body = client.post("/backup/import", json=rows).json()
        assert body["imported"] == 1
        assert body["skipped"] == 1
        assert body["errors"][0]["rowIndex"] == 1
        assert [s["id"] for s in client.get("/streaks").json()] == ["a"]

    def test_csv_export(self, client):
        _create(client)
        resp = client.get("/backup/csv")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.text.splitlines()[1].startswith("Run,🏃")

    def test_csv_import(self, client):
        body = client.post("/backup/csv", json={"content": "name,emoji\nRun,🏃\n,📚\n"}).json()
        assert [s["name"] for s in body["created"]] == ["Run"]
        assert body["errors"] == ["Row 3: missing name."]


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------

class TestRecoveryEndpoints:
    def test_clean_boot(self, client):
        body = client.get("/recovery/boot").json()
        assert body["recovered"] is False
        assert body["message"] == "✅ Loaded 0 streaks successfully"
        assert body["streakCount"] == 0

    def test_corrupted_boot_is_reported(self, store, client):
        store.set_raw(StorageKey.STREAKS, "{{ definitely not json")

        body = client.get("/recovery/boot").json()

        assert body["recovered"] is True
        assert body["reason"] == "no_backup"
        assert "Starting fresh" in body["message"]
        assert client.get("/streaks").json() == []

    def test_boot_runs_once(self, client):
        client.get("/streaks")
        client.get("/streaks")
        log = client.get("/recovery/log").json()
        assert [e["type"] for e in log] == ["boot_validation"]

    def test_clear_log(self, client):
        client.get("/streaks")
        assert client.delete("/recovery/log").status_code == 204
        assert client.get("/recovery/log").json() == []

    def test_manual_backup(self, client):
        _create(client)
        body = client.post("/recovery/backup").json()
        assert body["saved"] == 1
        assert body["timestamp"]
