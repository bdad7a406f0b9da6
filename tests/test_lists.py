"""
Tests for streak lists: default-list protection, uniqueness, reassignment.
"""
import json

import pytest

from streakflame.core.errors import (
    DefaultListProtectedError,
    DuplicateListNameError,
    InvalidListError,
    ListNotFoundError,
)
from streakflame.schemas.streak import DEFAULT_LIST_ID
from streakflame.services.storage import StorageKey
from streakflame.services.streak_engine import StreakEngine


class TestLists:
    def test_default_list_always_present(self, streak_engine):
        lists = streak_engine.get_lists()
        assert lists[0].id == DEFAULT_LIST_ID
        assert lists[0].color == "fire"

    def test_default_list_restored_if_missing_from_storage(self, store):
        store.set_json(StorageKey.LISTS, [
            {"id": "l1", "name": "Health", "color": "ocean", "createdAt": "2026-01-01"},
        ])
        engine = StreakEngine(store)
        engine.load(today="2026-02-01")
        assert [lst.id for lst in engine.get_lists()] == [DEFAULT_LIST_ID, "l1"]

    def test_create_and_persist(self, streak_engine, store):
        lst = streak_engine.create_list("Health", "forest")
        stored = json.loads(store.get_raw(StorageKey.LISTS))
        assert stored[-1]["id"] == lst.id
        assert stored[-1]["color"] == "forest"
        assert "createdAt" in stored[-1]

    def test_duplicate_name_case_insensitive(self, streak_engine):
        streak_engine.create_list("Health")
        with pytest.raises(DuplicateListNameError):
            streak_engine.create_list("  HEALTH ")

    def test_default_name_is_taken(self, streak_engine):
        with pytest.raises(DuplicateListNameError):
            streak_engine.create_list("my streaks")

    def test_unknown_color(self, streak_engine):
        with pytest.raises(InvalidListError):
            streak_engine.create_list("Health", "neon")

    def test_rename(self, streak_engine):
        lst = streak_engine.create_list("Health")
        assert streak_engine.rename_list(lst.id, "Fitness").name == "Fitness"
        assert [l.name for l in streak_engine.get_lists()] == ["My Streaks", "Fitness"]

    def test_rename_default_to_empty_refused(self, streak_engine):
        with pytest.raises(InvalidListError):
            streak_engine.rename_list(DEFAULT_LIST_ID, "   ")

    def test_rename_default_allowed(self, streak_engine):
        assert streak_engine.rename_list(DEFAULT_LIST_ID, "Everything").name == "Everything"

    def test_rename_unknown(self, streak_engine):
        with pytest.raises(ListNotFoundError):
            streak_engine.rename_list("nope", "x")

    def test_default_cannot_be_deleted(self, streak_engine):
        with pytest.raises(DefaultListProtectedError):
            streak_engine.delete_list(DEFAULT_LIST_ID)

    def test_delete_moves_streaks_to_default(self, streak_engine):
        lst = streak_engine.create_list("Health")
        a = streak_engine.add_streak("Run", "🏃", list_id=lst.id)
        b = streak_engine.add_streak("Read", "📚")

        assert streak_engine.delete_list(lst.id) == 1

        assert streak_engine.get_streak(a.id).list_id == DEFAULT_LIST_ID
        assert streak_engine.get_streak(b.id).list_id == DEFAULT_LIST_ID
        assert [l.id for l in streak_engine.get_lists()] == [DEFAULT_LIST_ID]
