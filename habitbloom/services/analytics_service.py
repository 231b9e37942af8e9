"""
Period analytics.
Combines the completion ledger, mood entries and habits into one report for
the last week, month or year.
"""
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session

from habitbloom.constants import PERIOD_DAYS
from habitbloom.exceptions import ValidationException
from habitbloom.repositories.habit_log_repository import HabitLogRepository
from habitbloom.repositories.habit_repository import HabitRepository
from habitbloom.repositories.mood_repository import MoodRepository
from habitbloom.services.date_service import DateRange, DateService
from habitbloom.services.stats_service import StatsService


class AnalyticsService:
    """Service for cross-entity analytics"""

    def __init__(self, db: Session):
        self.db = db
        self.habit_repo = HabitRepository()
        self.log_repo = HabitLogRepository()
        self.mood_repo = MoodRepository()
        self.date_service = DateService()
        self.stats = StatsService()

    def get_analytics(self, user_id: int, period: str = "week", today: Optional[date] = None) -> dict:
        """
        Build the analytics report for a period.

        Args:
            user_id: Owner
            period: "week", "month" or "year" (7, 30 or 365 days ending today)
            today: Reference day, defaults to the current UTC day

        Returns:
            Dict with period, completion_trend, mood_correlation,
            habit_performance and summary
        """
        if period not in PERIOD_DAYS:
            raise ValidationException("period", f"must be one of {', '.join(PERIOD_DAYS)}")

        today = today or self.date_service.today()
        date_range = DateRange.last_days(PERIOD_DAYS[period], today)

        logs = self.stats.authoritative_logs(
            self.log_repo.get_by_date_range(self.db, user_id, date_range)
        )
        moods = self.mood_repo.get_by_date_range(self.db, user_id, date_range)
        summary = self.stats.completion_summary(logs)
        avg_mood = self.stats.summarize_moods(moods)["avg_mood_level"]

        return {
            "period": period,
            "date_range": date_range,
            "completion_trend": self.stats.bucket_completions(logs, date_range),
            "mood_correlation": self.stats.mood_correlation(logs, moods),
            "habit_performance": self._habit_performance(user_id, logs),
            "summary": {
                "total_completions": summary["completed"],
                "total_missed": summary["missed"],
                "avg_mood_level": avg_mood,
                "active_habits": len(self.habit_repo.get_active(self.db, user_id))
            }
        }

    def _habit_performance(self, user_id: int, logs: list) -> list:
        """Per-habit completion rate in the window, best first"""
        by_habit = {}
        for log in logs:
            by_habit.setdefault(log.habit_id, []).append(log)

        performance = []
        for habit in self.habit_repo.get_all(self.db, user_id):
            summary = self.stats.completion_summary(by_habit.get(habit.id, []))
            performance.append({
                "habit_id": habit.id,
                "title": habit.title,
                "completed": summary["completed"],
                "total": summary["total"],
                "completion_rate": summary["completion_rate"],
                "streak": habit.current_streak
            })

        return sorted(performance, key=lambda p: -p["completion_rate"])
