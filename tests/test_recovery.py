"""
Tests for boot-time data recovery.

Covered scenarios:
  1. clean boot        — nothing stored
  2. valid boot        — data used as-is and snapshot refreshed
  3. corrupted + backup    — snapshot restored and written back
  4. corrupted, no backup  — primary removed, empty start
  5. partial corruption    — one bad record distrusts the whole collection
  6. unexpected failure    — never raises
  + audit log cap, manual backup, clearing the log
"""
import json

import pytest

from streakflame.core.config import settings
from streakflame.services import recovery
from streakflame.services.recovery import RecoveryEventType, RecoveryReason, RecoveryResult
from streakflame.services.storage import StorageKey


def _record(streak_id="s1", **overrides):
    data = {
        "id": streak_id,
        "name": f"Habit {streak_id}",
        "emoji": "🔥",
        "createdAt": "2026-01-01",
        "currentStreak": 1,
        "bestStreak": 3,
        "lastCompletedDate": "2026-02-01",
        "completedDates": ["2026-02-01"],
    }
    data.update(overrides)
    return data


def _event_types(store):
    return [e["type"] for e in recovery.get_recovery_log(store)]


class TestBootRecovery:
    def test_clean_boot(self, store):
        result = recovery.recover_streaks_on_boot(store)
        assert result.streaks == []
        assert result.recovered is False
        assert result.message == "✅ Loaded 0 streaks successfully"
        assert _event_types(store) == [RecoveryEventType.BOOT_VALIDATION]

    def test_valid_boot_refreshes_backup(self, store):
        store.set_json(StorageKey.STREAKS, [_record("a"), _record("b")])
        result = recovery.recover_streaks_on_boot(store)

        assert result.recovered is False
        assert result.message == "✅ Loaded 2 streaks successfully"
        snapshot = recovery.load_backup_snapshot(store)
        assert [s["id"] for s in snapshot["streaks"]] == ["a", "b"]
        assert "timestamp" in snapshot

    def test_corrupted_json_restores_from_backup(self, store):
        store.set_json(StorageKey.BACKUP_LATEST, {"timestamp": "t", "streaks": [_record("good")]})
        store.set_raw(StorageKey.STREAKS, "{not json")

        result = recovery.recover_streaks_on_boot(store)

        assert result.recovered is True
        assert result.reason == RecoveryReason.BACKUP_RESTORED
        assert "Recovered 1 streaks from backup" in result.message
        assert [s.id for s in result.streaks] == ["good"]
        assert json.loads(store.get_raw(StorageKey.STREAKS))[0]["id"] == "good"
        assert _event_types(store) == [
            RecoveryEventType.CORRUPTED_DETECTED,
            RecoveryEventType.RESTORED_FROM_BACKUP,
        ]

    def test_corrupted_without_backup_starts_fresh(self, store):
        store.set_raw(StorageKey.STREAKS, "garbage")

        result = recovery.recover_streaks_on_boot(store)

        assert result.recovered is True
        assert result.reason == RecoveryReason.NO_BACKUP
        assert "Starting fresh" in result.message
        assert result.streaks == []
        assert store.get_raw(StorageKey.STREAKS) is None
        assert _event_types(store)[-1] == RecoveryEventType.EMPTY_RECOVERY

    @pytest.mark.parametrize("raw", ["", '[{"id": "a"', "42", '"str"', "{}", "true"])
    def test_unusable_primary_never_raises(self, store, raw):
        store.set_raw(StorageKey.STREAKS, raw)

        result = recovery.recover_streaks_on_boot(store)

        assert isinstance(result, RecoveryResult)
        assert result.recovered is True
        assert result.reason == RecoveryReason.NO_BACKUP
        assert result.streaks == []
        assert store.get_raw(StorageKey.STREAKS) is None

    def test_invalid_backup_counts_as_no_backup(self, store):
        store.set_json(StorageKey.BACKUP_LATEST, {"timestamp": "t", "streaks": [_record(emoji="")]})
        store.set_raw(StorageKey.STREAKS, "garbage")

        result = recovery.recover_streaks_on_boot(store)
        assert result.reason == RecoveryReason.NO_BACKUP

    def test_one_bad_record_distrusts_whole_collection(self, store):
        store.set_json(StorageKey.BACKUP_LATEST, {"timestamp": "t", "streaks": [_record("old")]})
        store.set_json(StorageKey.STREAKS, [_record("new"), _record("bad", currentStreak=9, bestStreak=1)])

        result = recovery.recover_streaks_on_boot(store)

        assert result.reason == RecoveryReason.BACKUP_RESTORED
        assert [s.id for s in result.streaks] == ["old"]

    def test_unexpected_error_never_raises(self, store, monkeypatch):
        def boom(key):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(store, "get_raw", boom)
        result = recovery.recover_streaks_on_boot(store)

        assert result.recovered is True
        assert result.reason == RecoveryReason.RECOVERY_ERROR
        assert result.message == "⚠️  An error occurred during recovery. Starting fresh."
        assert result.streaks == []


class TestRecoveryLog:
    def test_log_is_capped(self, store, monkeypatch):
        monkeypatch.setattr(settings, "RECOVERY_LOG_LIMIT", 3)
        for _ in range(5):
            recovery.recover_streaks_on_boot(store)
        assert len(recovery.get_recovery_log(store)) == 3

    def test_streak_count_recorded(self, store):
        store.set_json(StorageKey.STREAKS, [_record("a")])
        recovery.recover_streaks_on_boot(store)
        assert recovery.get_recovery_log(store)[-1]["streakCount"] == 1

    def test_clear_log(self, store):
        recovery.recover_streaks_on_boot(store)
        recovery.clear_recovery_log(store)
        assert recovery.get_recovery_log(store) == []

    def test_unreadable_log_reads_as_empty(self, store):
        store.set_raw(StorageKey.RECOVERY_LOG, "[[[")
        assert recovery.get_recovery_log(store) == []


class TestManualBackup:
    def test_save_manual_backup(self, store):
        from streakflame.services.validator import validate_streak

        streak = validate_streak(_record("m")).streak
        recovery.save_manual_backup(store, [streak])

        snapshot = recovery.load_backup_snapshot(store)
        assert snapshot["streaks"][0]["id"] == "m"
        assert snapshot["streaks"][0]["lastCompletedDate"] == "2026-02-01"
        assert "Manual backup saved" in recovery.get_recovery_log(store)[-1]["details"]
