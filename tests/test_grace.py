"""
Tests for weekly / monthly grace.
"""
import pytest

from streakflame.services import grace


class TestWeekId:
    @pytest.mark.parametrize("day, expected", [
        ("2026-01-01", "2026-W01"),   # Thursday
        ("2026-01-03", "2026-W01"),   # Saturday
        ("2026-01-04", "2026-W02"),   # Sunday starts a new week
        ("2026-02-02", "2026-W06"),
        ("2026-02-07", "2026-W06"),
        ("2026-02-08", "2026-W07"),
    ])
    def test_sunday_based_week_id(self, day, expected):
        assert grace.get_week_id(day) == expected

    def test_deterministic(self):
        assert grace.get_week_id("2026-06-15") == grace.get_week_id("2026-06-15")


class TestWeeklyGrace:
    def test_available_by_default(self, store):
        assert grace.can_use_weekly_grace(store, "s1", "2026-02-03") is True

    def test_checking_does_not_consume(self, store):
        for _ in range(3):
            assert grace.can_use_weekly_grace(store, "s1", "2026-02-03") is True

    def test_once_per_week(self, store):
        assert grace.use_weekly_grace(store, "s1", "2026-02-03") is True
        assert grace.use_weekly_grace(store, "s1", "2026-02-05") is False
        assert grace.can_use_weekly_grace(store, "s1", "2026-02-07") is False

    def test_failed_use_does_not_mutate(self, store):
        grace.use_weekly_grace(store, "s1", "2026-02-03")
        before = store.get_raw("streakflame_grace")
        grace.use_weekly_grace(store, "s1", "2026-02-04")
        assert store.get_raw("streakflame_grace") == before

    def test_available_again_next_week(self, store):
        grace.use_weekly_grace(store, "s1", "2026-02-07")
        assert grace.can_use_weekly_grace(store, "s1", "2026-02-08") is True

    def test_independent_per_streak(self, store):
        grace.use_weekly_grace(store, "s1", "2026-02-03")
        assert grace.can_use_weekly_grace(store, "s2", "2026-02-03") is True

    def test_reset_weekly_grace(self, store):
        grace.use_weekly_grace(store, "s1", "2026-02-03")
        assert grace.reset_weekly_grace(store, "2026-02-03") == 0
        assert grace.reset_weekly_grace(store, "2026-02-10") == 1
        assert grace.can_use_weekly_grace(store, "s1", "2026-02-10") is True


class TestMonthlyGrace:
    def test_once_per_calendar_month(self, store):
        assert grace.use_monthly_grace(store, "s1", "2026-02-27") is True
        assert grace.use_monthly_grace(store, "s1", "2026-02-28") is False

    def test_next_calendar_month_even_if_one_day_later(self, store):
        grace.use_monthly_grace(store, "s1", "2026-02-28")
        assert grace.can_use_monthly_grace(store, "s1", "2026-03-01") is True

    def test_across_year_boundary(self, store):
        grace.use_monthly_grace(store, "s1", "2025-12-31")
        assert grace.can_use_monthly_grace(store, "s1", "2026-01-01") is True

    def test_weekly_and_monthly_are_independent(self, store):
        grace.use_weekly_grace(store, "s1", "2026-02-03")
        assert grace.use_monthly_grace(store, "s1", "2026-02-03") is True
        status = grace.get_grace_status(store, "s1", "2026-02-03")
        assert status.weekly_available is False
        assert status.monthly_available is False

    def test_status_is_pure_read(self, store):
        grace.get_grace_status(store, "s1", "2026-02-03")
        assert store.get_raw("streakflame_grace") is None


class TestForget:
    def test_forget_streak(self, store):
        grace.use_weekly_grace(store, "s1", "2026-02-03")
        grace.forget_streak(store, "s1")
        assert grace.can_use_weekly_grace(store, "s1", "2026-02-03") is True
