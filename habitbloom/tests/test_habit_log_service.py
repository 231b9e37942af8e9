"""
Tests for HabitLogService.

Tests cover:
1. Check-in cycle and streak counters
2. Duplicate rejection and in-place corrections
3. Backfills (single and bulk)
4. Achievement unlocks during check-in
5. Ledger queries and hard-deleted habits
"""
import pytest
from datetime import date, timedelta

from habitbloom.exceptions import (
    AlreadyCompletedException, HabitLogNotFoundException, HabitNotFoundException, ValidationException
)
from habitbloom.repositories.habit_repository import UserStatsRepository
from habitbloom.services.achievement_service import AchievementService
from habitbloom.services.habit_log_service import HabitLogService
from habitbloom.services.habit_service import HabitService


def check_in(service, user_id, habit, day, status="completed", **fields):
    return service.log_completion(user_id, {"habit_id": habit.id, "log_date": day, "status": status, **fields})


class TestCheckInCycle:
    """Tests for the day-by-day check-in flow"""

    def test_drink_water_cycle(self, make_habit, db_session, user_id, today):
        """Three consecutive days build a streak; a gap resets it"""
        habit = make_habit("Drink Water")
        service = HabitLogService(db_session)

        for offset, expected in ((2, 1), (1, 2), (0, 3)):
            result = check_in(service, user_id, habit, today - timedelta(days=offset))
            assert result.streak == expected

        result = check_in(service, user_id, habit, today + timedelta(days=2))

        assert result.habit.current_streak == 1
        assert result.habit.longest_streak == 3
        assert result.habit.total_completions == 4
        assert result.habit.last_completed_date == today + timedelta(days=2)

    def test_duplicate_rejected_without_changes(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        check_in(service, user_id, habit, today)

        with pytest.raises(AlreadyCompletedException):
            check_in(service, user_id, habit, today)

        refreshed = HabitService(db_session).get_habit(habit.id, user_id)
        assert refreshed.total_completions == 1
        assert refreshed.current_streak == 1
        assert len(service.get_habit_logs(habit.id, user_id)) == 1

    def test_missed_entry_leaves_counters(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)

        result = check_in(service, user_id, habit, today, status="missed")

        assert result.log.status == "missed"
        assert result.habit.total_completions == 0
        assert result.achievements == []

    def test_pending_corrected_in_place(self, make_habit, db_session, user_id, today):
        """A pending entry becomes the completion instead of a second row"""
        habit = make_habit()
        service = HabitLogService(db_session)
        pending = check_in(service, user_id, habit, today, status="pending")

        result = check_in(service, user_id, habit, today, note="done")

        assert result.log.id == pending.log.id
        assert result.log.status == "completed"
        assert result.habit.total_completions == 1
        assert len(service.get_habit_logs(habit.id, user_id)) == 1

    def test_updates_user_counters(self, make_habit, db_session, user_id, today, yesterday):
        habit = make_habit()
        service = HabitLogService(db_session)
        check_in(service, user_id, habit, yesterday)
        check_in(service, user_id, habit, today)

        stats = UserStatsRepository.get(db_session, user_id)
        assert stats.total_completions == 2
        assert stats.streak_longest == 2

    def test_unknown_habit(self, db_session, user_id, today):
        with pytest.raises(HabitNotFoundException):
            HabitLogService(db_session).log_completion(user_id, {"habit_id": 999, "log_date": today})

    def test_other_users_habit(self, make_habit, db_session, other_user_id, today):
        habit = make_habit()
        with pytest.raises(HabitNotFoundException):
            check_in(HabitLogService(db_session), other_user_id, habit, today)

    def test_invalid_status(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        with pytest.raises(ValidationException):
            check_in(HabitLogService(db_session), user_id, habit, today, status="done")


class TestBackfill:
    """Tests for out-of-order completions"""

    def test_backfill_bridges_gap(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        check_in(service, user_id, habit, today - timedelta(days=2))
        check_in(service, user_id, habit, today)

        result = check_in(service, user_id, habit, today - timedelta(days=1))

        assert result.habit.current_streak == 3
        assert result.habit.longest_streak == 3
        assert result.habit.last_completed_date == today

    def test_backfill_joins_earlier_run(self, make_habit, db_session, user_id, today):
        """Backfilling the day before an older run makes that run the longest"""
        habit = make_habit()
        service = HabitLogService(db_session)
        for offset in (4, 3, 0):
            check_in(service, user_id, habit, today - timedelta(days=offset))

        result = check_in(service, user_id, habit, today - timedelta(days=5))

        assert result.habit.current_streak == 1
        assert result.habit.longest_streak == 3
        assert UserStatsRepository.get(db_session, user_id).streak_longest == 3

    def test_bulk_create_sorted_and_skips_duplicates(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        check_in(service, user_id, habit, today - timedelta(days=3))

        results = service.bulk_create_logs(user_id, [
            {"habit_id": habit.id, "log_date": today - timedelta(days=1)},
            {"habit_id": habit.id, "log_date": today - timedelta(days=3)},
            {"habit_id": habit.id, "log_date": today - timedelta(days=2)},
        ])

        assert len(results) == 2
        refreshed = HabitService(db_session).get_habit(habit.id, user_id)
        assert refreshed.current_streak == 3
        assert refreshed.total_completions == 3

    def test_bulk_create_validates_before_writing(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)

        with pytest.raises(ValidationException):
            service.bulk_create_logs(user_id, [
                {"habit_id": habit.id, "log_date": today},
                {"habit_id": habit.id, "log_date": today, "value": -5},
            ])

        assert service.get_habit_logs(habit.id, user_id) == []


class TestAchievementsOnCheckIn:
    """Tests for achievements unlocked by check-ins"""

    def test_week_streak_unlocks_once(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        start = today - timedelta(days=7)

        unlocked = []
        for offset in range(8):
            result = check_in(service, user_id, habit, start + timedelta(days=offset))
            unlocked.append([a.key for a in result.achievements])

        assert unlocked[6] == ["7_DAY_STREAK"]
        assert unlocked[7] == []
        assert all(keys == [] for keys in unlocked[:6])

        achievements = AchievementService(db_session)
        streak_achievements = achievements.get_by_type(user_id, "streak")
        assert len(streak_achievements) == 1
        assert streak_achievements[0].linked_habit_id == habit.id


class TestUpdateAndDelete:
    """Tests for corrections and deletions"""

    def test_correction_into_completed_counts(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        missed = check_in(service, user_id, habit, today, status="missed")

        log = service.update_log(missed.log.id, user_id, {"status": "completed"})

        assert log.status == "completed"
        refreshed = HabitService(db_session).get_habit(habit.id, user_id)
        assert refreshed.total_completions == 1
        assert refreshed.current_streak == 1

    def test_correction_out_of_completed_keeps_total(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        done = check_in(service, user_id, habit, today)

        service.update_log(done.log.id, user_id, {"status": "missed", "note": "oops"})

        assert HabitService(db_session).get_habit(habit.id, user_id).total_completions == 1
        assert service.get_for_date(habit.id, user_id, today).note == "oops"

    def test_delete_log_keeps_counters(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        log_id = check_in(service, user_id, habit, today).log.id

        service.delete_log(log_id, user_id)

        with pytest.raises(HabitLogNotFoundException):
            service.get_log(log_id, user_id)
        assert HabitService(db_session).get_habit(habit.id, user_id).total_completions == 1

    def test_other_users_log_not_found(self, make_habit, db_session, user_id, other_user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        done = check_in(service, user_id, habit, today)

        with pytest.raises(HabitLogNotFoundException):
            service.delete_log(done.log.id, other_user_id)

    def test_null_status_rejected(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        pending = check_in(service, user_id, habit, today, status="pending")

        with pytest.raises(ValidationException):
            service.update_log(pending.log.id, user_id, {"status": None})

        assert service.get_log(pending.log.id, user_id).status == "pending"


class TestQueries:
    """Tests for ledger reads"""

    def test_is_logged_today(self, make_habit, db_session, user_id, today, yesterday):
        habit = make_habit()
        service = HabitLogService(db_session)
        check_in(service, user_id, habit, yesterday)

        assert not service.is_logged_today(habit.id, user_id, today)
        check_in(service, user_id, habit, today)
        assert service.is_logged_today(habit.id, user_id, today)

    def test_todays_logs(self, make_habit, db_session, user_id, today, yesterday):
        water, walk = make_habit("Water"), make_habit("Walk")
        service = HabitLogService(db_session)
        check_in(service, user_id, water, today)
        check_in(service, user_id, walk, today)
        check_in(service, user_id, walk, yesterday)

        assert len(service.get_todays(user_id, today)) == 2
        assert len(service.get_by_date_range(user_id, yesterday, today)) == 3

    def test_completion_stats(self, make_habit, db_session, user_id, today):
        habit = make_habit()
        service = HabitLogService(db_session)
        for offset in range(3):
            check_in(service, user_id, habit, today - timedelta(days=offset))
        check_in(service, user_id, habit, today - timedelta(days=3), status="missed")

        stats = service.get_completion_stats(user_id, habit.id)

        assert stats["completed"] == 3
        assert stats["total"] == 4
        assert stats["completion_rate"] == 75

    def test_completion_rate_for_empty_period(self, make_habit, db_session, user_id, today):
        make_habit()
        result = HabitLogService(db_session).get_completion_rate_for_period(
            user_id, today - timedelta(days=6), today
        )
        assert result["rate"] == 0
        assert result["total"] == 0

    def test_streak_calendar(self, make_habit, db_session, user_id, today, yesterday):
        habit = make_habit()
        service = HabitLogService(db_session)
        check_in(service, user_id, habit, today, mood="Happy")
        check_in(service, user_id, habit, yesterday, status="missed")

        calendar = service.get_streak_calendar(habit.id, user_id, today, days=7)

        assert calendar[today.isoformat()] == {"status": "completed", "note": None, "mood": "Happy"}
        assert calendar[yesterday.isoformat()]["status"] == "missed"
        assert len(calendar) == 2

    def test_logs_with_mood(self, make_habit, db_session, user_id, today, yesterday):
        habit = make_habit()
        service = HabitLogService(db_session)
        check_in(service, user_id, habit, today, mood="Happy")
        check_in(service, user_id, habit, yesterday)

        logs = service.get_logs_with_mood(user_id)
        assert [log.log_date for log in logs] == [today]

    def test_hard_deleted_habit_history(self, make_habit, db_session, user_id, today):
        """Logs stay as history but are no longer reachable per habit"""
        habit = make_habit()
        habit_id = habit.id
        service = HabitLogService(db_session)
        check_in(service, user_id, habit, today)

        HabitService(db_session).hard_delete_habit(habit_id, user_id)

        with pytest.raises(HabitNotFoundException):
            service.get_habit_logs(habit_id, user_id)
        with pytest.raises(HabitNotFoundException):
            service.get_completion_stats(user_id, habit_id)
        assert len(service.get_by_date_range(user_id, today, today)) == 1

    def test_new_habit_after_hard_delete_starts_clean(self, make_habit, db_session, user_id, today):
        """A habit created after a hard delete never inherits the deleted habit's logs"""
        old = make_habit("Old")
        old_id = old.id
        service = HabitLogService(db_session)
        check_in(service, user_id, old, today)
        HabitService(db_session).hard_delete_habit(old_id, user_id)

        new = make_habit("New")

        assert new.id != old_id
        assert service.get_habit_logs(new.id, user_id) == []
        assert service.get_completion_stats(user_id, new.id)["total"] == 0
        result = check_in(service, user_id, new, today)
        assert result.habit.total_completions == 1
