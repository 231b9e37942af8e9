"""
Tests for StatsService.

Tests cover:
1. Streak arithmetic (consecutive, gap, backfill)
2. Authoritative log resolution
3. Completion rates and period buckets
4. Mood aggregates
"""
import pytest
from datetime import date, datetime, timedelta
from types import SimpleNamespace

from habitbloom.services.date_service import DateRange
from habitbloom.services.stats_service import StatsService, round_half_up


def log(log_id, log_date, status="completed", habit_id=1):
    return SimpleNamespace(id=log_id, habit_id=habit_id, log_date=log_date, status=status)


def mood(level, label="Neutral", logged_at=None, energy=None, stress=None):
    return SimpleNamespace(
        mood_level=level,
        mood_label=label,
        energy_level=energy,
        stress_level=stress,
        logged_at=logged_at or datetime(2026, 1, 30, 9, 0)
    )


class TestRoundHalfUp:
    """Tests for round_half_up helper"""

    def test_rounds_half_away_from_zero(self):
        """2.5 should round to 3, unlike round()"""
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1

    def test_rounds_to_one_decimal(self):
        assert round_half_up(0.25, 1) == 0.3
        assert round_half_up(66.666, 1) == 66.7


class TestNextStreak:
    """Tests for next_streak"""

    def test_first_completion_starts_at_one(self, today):
        assert StatsService.next_streak(0, None, today) == 1

    def test_consecutive_day_extends(self, today, yesterday):
        """Completing the day after the last completion adds one"""
        assert StatsService.next_streak(4, yesterday, today) == 5

    def test_gap_resets_to_one(self, today):
        """Any missed day starts the streak over"""
        two_days_ago = today - timedelta(days=2)
        assert StatsService.next_streak(10, two_days_ago, today) == 1


class TestStreakAfterCompletion:
    """Tests for out-of-order completions"""

    def test_backfill_bridges_gap(self, today):
        """Backfilling the missing middle day recounts the whole run"""
        d1, d2, d3 = today - timedelta(days=2), today - timedelta(days=1), today
        result = StatsService.streak_after_completion(1, d3, d2, [d1, d2, d3])
        assert result == 3

    def test_backfill_outside_run_keeps_streak(self, today):
        """Backfilling an old isolated day does not change the current run"""
        old_day = today - timedelta(days=10)
        completed = [today - timedelta(days=1), today, old_day]
        result = StatsService.streak_after_completion(2, today, old_day, completed)
        assert result == 2

    def test_in_order_completion_uses_next_streak(self, today, yesterday):
        result = StatsService.streak_after_completion(3, yesterday, today, [yesterday, today])
        assert result == 4


class TestRuns:
    """Tests for streak_ending_at and longest_run"""

    def test_streak_ending_at_counts_back(self, today):
        days = [today - timedelta(days=i) for i in range(4)]
        assert StatsService.streak_ending_at(days, today) == 4

    def test_streak_ending_at_missing_end(self, today, yesterday):
        assert StatsService.streak_ending_at([yesterday], today) == 0

    def test_longest_run(self, today):
        days = [today - timedelta(days=i) for i in (0, 1, 5, 6, 7, 20)]
        assert StatsService.longest_run(days) == 3

    def test_longest_run_empty(self):
        assert StatsService.longest_run([]) == 0


class TestAuthoritativeLogs:
    """Tests for resolving duplicate entries per (habit, day)"""

    def test_completed_entry_wins(self, today):
        """A completed entry beats a newer non-completed one"""
        logs = [log(2, today, "missed"), log(1, today, "completed")]
        result = StatsService.authoritative_logs(logs)
        assert [entry.id for entry in result] == [1]

    def test_newest_wins_without_completion(self, today):
        logs = [log(3, today, "pending"), log(7, today, "missed")]
        result = StatsService.authoritative_logs(logs)
        assert [entry.id for entry in result] == [7]

    def test_different_habits_are_separate(self, today):
        logs = [log(1, today, habit_id=1), log(2, today, habit_id=2)]
        assert len(StatsService.authoritative_logs(logs)) == 2

    def test_preserves_input_order(self, today, yesterday):
        logs = [log(5, today), log(4, yesterday), log(3, yesterday, "missed")]
        result = StatsService.authoritative_logs(logs)
        assert [entry.id for entry in result] == [5, 4]


class TestCompletionRate:
    """Tests for completion_rate and completion_summary"""

    def test_zero_logs_is_zero(self):
        assert StatsService.completion_rate(0, 0) == 0

    def test_three_of_four(self):
        assert StatsService.completion_rate(3, 4) == 75

    def test_rounds_half_up(self):
        """1/8 = 12.5% rounds to 13"""
        assert StatsService.completion_rate(1, 8) == 13

    def test_summary_counts_statuses(self, today):
        logs = [
            log(1, today),
            log(2, today - timedelta(days=1)),
            log(3, today - timedelta(days=2), "missed"),
            log(4, today - timedelta(days=3), "pending"),
        ]
        summary = StatsService.completion_summary(logs)

        assert summary["completed"] == 2
        assert summary["missed"] == 1
        assert summary["pending"] == 1
        assert summary["total"] == 4
        assert summary["completion_rate"] == 50

    def test_summary_ignores_duplicates(self, today):
        """Duplicate rows for the same day count once"""
        logs = [log(1, today), log(2, today, "missed")]
        summary = StatsService.completion_summary(logs)
        assert summary["total"] == 1
        assert summary["completion_rate"] == 100


class TestBucketCompletions:
    """Tests for period aggregation"""

    def test_daily_buckets_for_a_week(self, today, yesterday):
        window = DateRange.last_days(7, today)
        logs = [log(1, today), log(2, yesterday), log(3, yesterday, habit_id=2)]

        buckets = StatsService.bucket_completions(logs, window)

        assert len(buckets) == 7
        assert buckets[0] == ((today - timedelta(days=6)).isoformat(), 0)
        assert buckets[-1] == (today.isoformat(), 1)
        assert buckets[-2] == (yesterday.isoformat(), 2)

    def test_weekly_buckets_for_long_windows(self, today):
        """Windows longer than a month are grouped per 7 days"""
        window = DateRange.last_days(90, today)
        logs = [log(1, window.start), log(2, window.start + timedelta(days=6))]

        buckets = StatsService.bucket_completions(logs, window)

        assert len(buckets) == 13
        assert buckets[0] == (window.start.isoformat(), 2)
        assert sum(count for _, count in buckets) == 2

    def test_ignores_non_completed_and_outside(self, today):
        window = DateRange.last_days(7, today)
        logs = [log(1, today, "missed"), log(2, today - timedelta(days=30))]

        buckets = StatsService.bucket_completions(logs, window)

        assert all(count == 0 for _, count in buckets)


class TestMoodAggregates:
    """Tests for mood summaries"""

    def test_average_mood(self):
        """Moods 3, 4, 5 average to 4.0"""
        moods = [mood(3, "Happy"), mood(4, "Happy"), mood(5, "Calm")]
        summary = StatsService.summarize_moods(moods)

        assert summary["avg_mood_level"] == 4.0
        assert summary["total_logs"] == 3
        assert summary["most_common_mood"] == "Happy"

    def test_distribution_sums_to_hundred(self):
        moods = [mood(3, "Happy"), mood(4, "Happy"), mood(5, "Calm")]
        distribution = StatsService.mood_distribution(moods)

        assert [d["label"] for d in distribution] == ["Happy", "Calm"]
        assert [d["percentage"] for d in distribution] == [66.7, 33.3]
        assert sum(d["percentage"] for d in distribution) == pytest.approx(100.0)

    def test_distribution_ties_keep_first_seen(self):
        moods = [mood(3, "Sad"), mood(4, "Calm")]
        distribution = StatsService.mood_distribution(moods)
        assert [d["label"] for d in distribution] == ["Sad", "Calm"]

    def test_optional_levels_average_present_values(self):
        """Missing energy/stress values are left out of their averages"""
        moods = [mood(5, energy=8), mood(5, energy=None, stress=2), mood(5, energy=5)]
        summary = StatsService.summarize_moods(moods)

        assert summary["avg_energy_level"] == 6.5
        assert summary["avg_stress_level"] == 2.0

    def test_empty_summary(self):
        summary = StatsService.summarize_moods([])

        assert summary["avg_mood_level"] == 0.0
        assert summary["total_logs"] == 0
        assert summary["most_common_mood"] is None
        assert summary["distribution"] == []

    def test_best_and_worst_ties_go_to_latest(self):
        early = mood(8, logged_at=datetime(2026, 1, 28, 9, 0))
        late = mood(8, logged_at=datetime(2026, 1, 29, 9, 0))
        low = mood(2, logged_at=datetime(2026, 1, 27, 9, 0))

        best, worst = StatsService.best_and_worst([early, late, low])

        assert best is late
        assert worst is low

    def test_best_and_worst_empty(self):
        assert StatsService.best_and_worst([]) == (None, None)

    def test_daily_trends_in_date_order(self):
        moods = [
            mood(6, logged_at=datetime(2026, 1, 30, 20, 0)),
            mood(4, logged_at=datetime(2026, 1, 30, 8, 0)),
            mood(7, logged_at=datetime(2026, 1, 29, 8, 0)),
        ]
        trends = StatsService.daily_mood_trends(moods)

        assert [t["date"] for t in trends] == ["2026-01-29", "2026-01-30"]
        assert trends[1]["avg_mood_level"] == 5.0
        assert trends[1]["count"] == 2

    def test_mood_correlation(self, today, yesterday):
        logs = [log(1, today)]
        moods = [
            mood(8, logged_at=datetime(2026, 1, 30, 9, 0)),
            mood(4, logged_at=datetime(2026, 1, 29, 9, 0)),
        ]
        result = StatsService.mood_correlation(logs, moods)

        assert result == {"with_completions": 8.0, "without_completions": 4.0, "difference": 4.0}
