"""
Completion log service.
The only place that decides whether a habit was completed on a given day.
Orchestrates check-ins: duplicate check, insert, streak counters and
achievement evaluation all run in one transaction.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from habitbloom.config import HISTORY_LIMIT, CALENDAR_DAYS
from habitbloom.constants import (
    LOG_STATUS_COMPLETED, ACHIEVEMENT_STREAK, ACHIEVEMENT_COMPLETION
)
from habitbloom.database import transaction
from habitbloom.exceptions import AlreadyCompletedException, HabitLogNotFoundException
from habitbloom.models import Achievement, Habit, HabitLog
from habitbloom.repositories.habit_log_repository import HabitLogRepository
from habitbloom.repositories.habit_repository import HabitRepository, UserStatsRepository
from habitbloom.schemas import HabitLogCreate, HabitLogUpdate, validated
from habitbloom.services.achievement_service import AchievementService
from habitbloom.services.date_service import DateRange, DateService
from habitbloom.services.habit_service import HabitService
from habitbloom.services.stats_service import StatsService

logger = logging.getLogger("habitbloom.logs")


@dataclass
class CheckInResult:
    log: HabitLog
    habit: Habit
    achievements: List[Achievement] = field(default_factory=list)

    @property
    def streak(self) -> int:
        return self.habit.current_streak


class HabitLogService:
    """Service for the completion ledger"""

    def __init__(self, db: Session):
        self.db = db
        self.log_repo = HabitLogRepository()
        self.habit_repo = HabitRepository()
        self.user_stats_repo = UserStatsRepository()
        self.date_service = DateService()
        self.stats = StatsService()
        self.habit_service = HabitService(db)
        self.achievement_service = AchievementService(db)

    # Writes

    def log_completion(self, user_id: int, data) -> CheckInResult:
        """
        Log a habit's status for a day (a check-in or a backfill).

        A day that is already completed is never overwritten: the call raises
        AlreadyCompletedException and nothing changes. A pending or missed
        entry for that day is corrected in place instead of duplicated.

        Args:
            user_id: Owner
            data: HabitLogCreate or dict with habit_id, log_date, status,
                value, note, mood

        Returns:
            CheckInResult with the log, the updated habit and any achievements
            unlocked by this check-in
        """
        log_data = validated(HabitLogCreate, data)
        with transaction(self.db, "log completion"):
            return self._log_completion(user_id, log_data)

    def bulk_create_logs(self, user_id: int, entries: list) -> List[CheckInResult]:
        """
        Backfill several entries in one transaction, oldest day first.

        Days that are already completed are skipped.
        """
        payloads = [validated(HabitLogCreate, entry) for entry in entries]
        payloads.sort(key=lambda p: p.log_date)

        results = []
        with transaction(self.db, "bulk log completions"):
            for payload in payloads:
                try:
                    results.append(self._log_completion(user_id, payload))
                except AlreadyCompletedException as e:
                    logger.info(f"Skipping backfill entry: {e}")
        return results

    def _log_completion(self, user_id: int, log_data: HabitLogCreate) -> CheckInResult:
        habit = self.habit_service.get_habit(log_data.habit_id, user_id)

        existing = self._authoritative(
            self.log_repo.get_for_date(self.db, habit.id, user_id, log_data.log_date)
        )
        if existing and existing.status == LOG_STATUS_COMPLETED:
            logger.info(f"Habit {habit.id} already completed on {log_data.log_date}")
            raise AlreadyCompletedException(habit.id, log_data.log_date)

        if existing:
            for key, value in log_data.model_dump(exclude={"habit_id", "log_date"}).items():
                setattr(existing, key, value)
            log = self.log_repo.update(self.db, existing)
        else:
            log = self.log_repo.create(self.db, HabitLog(user_id=user_id, **log_data.model_dump()))

        achievements = []
        if log.status == LOG_STATUS_COMPLETED:
            habit, achievements = self._record_completion(habit, user_id, log.log_date)

        return CheckInResult(log=log, habit=habit, achievements=achievements)

    def _record_completion(self, habit: Habit, user_id: int, completed_on: date) -> tuple:
        """Streak arithmetic, counter bookkeeping and achievement checks for a completed day"""
        completed_dates = self.log_repo.get_completed_dates(self.db, habit.id, user_id)
        new_streak = self.stats.streak_after_completion(
            habit.current_streak or 0,
            habit.last_completed_date,
            completed_on,
            completed_dates
        )
        # A backfill can join older runs into one longer than both
        longest_candidate = None
        if habit.last_completed_date is not None and completed_on < habit.last_completed_date:
            longest_candidate = self.stats.longest_run(completed_dates)
        habit = self.habit_service.apply_completion(
            habit.id, user_id, new_streak, completed_on, longest_candidate=longest_candidate
        )

        user_stats = self.user_stats_repo.get(self.db, user_id)
        user_stats.total_completions += 1
        user_stats.streak_current = habit.current_streak
        user_stats.streak_longest = max(user_stats.streak_longest or 0, habit.longest_streak)
        self.user_stats_repo.update(self.db, user_stats)

        logger.info(
            f"Habit {habit.id} completed on {completed_on}: "
            f"streak {habit.current_streak}, total {habit.total_completions}"
        )

        achievements = self.achievement_service.evaluate(
            user_id, ACHIEVEMENT_STREAK, habit.current_streak, linked_habit_id=habit.id
        )
        achievements += self.achievement_service.evaluate(
            user_id, ACHIEVEMENT_COMPLETION, user_stats.total_completions
        )
        return habit, achievements

    def update_log(self, log_id: int, user_id: int, data) -> HabitLog:
        """
        Correct an entry's status, note, value or mood.

        Turning an entry into a completion runs the normal completion path.
        Corrections away from completed leave counters as they are, since
        total completions never decrease.
        """
        update_data = validated(HabitLogUpdate, data).model_dump(exclude_unset=True)

        with transaction(self.db, "update log"):
            log = self.get_log(log_id, user_id)
            becomes_completed = (
                log.status != LOG_STATUS_COMPLETED
                and update_data.get("status") == LOG_STATUS_COMPLETED
            )

            if becomes_completed:
                same_day = self.log_repo.get_for_date(self.db, log.habit_id, user_id, log.log_date)
                if any(other.id != log.id and other.status == LOG_STATUS_COMPLETED for other in same_day):
                    raise AlreadyCompletedException(log.habit_id, log.log_date)

            for key, value in update_data.items():
                setattr(log, key, value)
            self.log_repo.update(self.db, log)

            if becomes_completed:
                habit = self.habit_repo.get_by_id(self.db, log.habit_id, user_id)
                # Orphaned history (habit hard-deleted) does not feed counters
                if habit:
                    self._record_completion(habit, user_id, log.log_date)

        return log

    def delete_log(self, log_id: int, user_id: int) -> None:
        """Remove an entry; counters are left untouched"""
        with transaction(self.db, "delete log"):
            log = self.get_log(log_id, user_id)
            self.log_repo.delete(self.db, log)
        logger.info(f"Deleted log {log_id}")

    # Reads

    def get_log(self, log_id: int, user_id: int) -> HabitLog:
        log = self.log_repo.get_by_id(self.db, log_id, user_id)
        if not log:
            raise HabitLogNotFoundException(log_id)
        return log

    def get_for_date(self, habit_id: int, user_id: int, target_date: date) -> Optional[HabitLog]:
        """The authoritative entry for a habit on a day, if any"""
        return self._authoritative(
            self.log_repo.get_for_date(self.db, habit_id, user_id, target_date)
        )

    def get_by_date_range(self, user_id: int, start: date, end: date) -> List[HabitLog]:
        """Entries from start to end (both days included), newest first"""
        return self.log_repo.get_by_date_range(self.db, user_id, DateRange.inclusive(start, end))

    def get_todays(self, user_id: int, today: Optional[date] = None) -> List[HabitLog]:
        today = today or self.date_service.today()
        return self.log_repo.get_by_date_range(self.db, user_id, DateRange.single_day(today))

    def get_habit_logs(self, habit_id: int, user_id: int, limit: int = HISTORY_LIMIT) -> List[HabitLog]:
        """Most recent entries of an existing habit"""
        habit = self.habit_service.get_habit(habit_id, user_id)
        return self.log_repo.get_for_habit(self.db, habit.id, user_id, limit)

    def get_logs_with_mood(self, user_id: int, limit: int = HISTORY_LIMIT) -> List[HabitLog]:
        return self.log_repo.get_with_mood(self.db, user_id, limit)

    def is_logged_today(self, habit_id: int, user_id: int, today: Optional[date] = None) -> bool:
        today = today or self.date_service.today()
        return self.get_for_date(habit_id, user_id, today) is not None

    def get_completion_stats(self, user_id: int, habit_id: Optional[int] = None) -> dict:
        """Completed/missed/pending counts and rate over all history"""
        if habit_id is not None:
            self.habit_service.get_habit(habit_id, user_id)
        logs = self.log_repo.get_all(self.db, user_id, habit_id)
        return self.stats.completion_summary(logs)

    def get_completion_rate_for_period(
        self,
        user_id: int,
        start: date,
        end: date,
        habit_id: Optional[int] = None
    ) -> dict:
        """
        Completion rate between two days (both included).

        Returns:
            Dict with completed, total, rate (integer percent) and the period
        """
        if habit_id is not None:
            self.habit_service.get_habit(habit_id, user_id)
        date_range = DateRange.inclusive(start, end)
        summary = self.stats.completion_summary(
            self.log_repo.get_by_date_range(self.db, user_id, date_range, habit_id)
        )
        return {
            "completed": summary["completed"],
            "total": summary["total"],
            "rate": summary["completion_rate"],
            "period": {"start": start, "end": end}
        }

    def get_streak_calendar(
        self,
        habit_id: int,
        user_id: int,
        today: Optional[date] = None,
        days: int = CALENDAR_DAYS
    ) -> Dict[str, dict]:
        """Per-day status map (ISO date keys) for a habit's calendar view"""
        today = today or self.date_service.today()
        habit = self.habit_service.get_habit(habit_id, user_id)
        logs = self.log_repo.get_by_date_range(
            self.db, user_id, DateRange.last_days(days, today), habit.id
        )
        return {
            log.log_date.isoformat(): {
                "status": log.status,
                "note": log.note or None,
                "mood": log.mood or None
            }
            for log in self.stats.authoritative_logs(logs)
        }

    def _authoritative(self, logs: List[HabitLog]) -> Optional[HabitLog]:
        resolved = self.stats.authoritative_logs(logs)
        return resolved[0] if resolved else None
