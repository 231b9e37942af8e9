"""
Mood log service.
Append-mostly mood entries plus the windowed aggregates shown on the mood
screens. Logging a mood evaluates mood-count achievements.
"""
import logging
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from habitbloom.config import HISTORY_LIMIT
from habitbloom.constants import ACHIEVEMENT_MOOD
from habitbloom.database import transaction
from habitbloom.exceptions import MoodNotFoundException, ValidationException
from habitbloom.models import Mood
from habitbloom.repositories.mood_repository import MoodRepository
from habitbloom.schemas import MoodCreate, MoodUpdate, validated
from habitbloom.services.achievement_service import AchievementService
from habitbloom.services.date_service import DateRange, DateService
from habitbloom.services.stats_service import StatsService

logger = logging.getLogger("habitbloom.moods")

DEFAULT_WINDOW_DAYS = 30


class MoodService:
    """Service for mood entries and mood aggregates"""

    def __init__(self, db: Session):
        self.db = db
        self.mood_repo = MoodRepository()
        self.date_service = DateService()
        self.stats = StatsService()
        self.achievement_service = AchievementService(db)

    def log_mood(self, user_id: int, data) -> Mood:
        """
        Record a mood entry.

        Several entries per day are allowed. logged_at defaults to now (UTC).

        Args:
            user_id: Owner
            data: MoodCreate or dict with its fields

        Returns:
            Created mood
        """
        mood_data = validated(MoodCreate, data)
        fields = mood_data.model_dump()
        fields["logged_at"] = fields["logged_at"] or self.date_service.utc_now()

        with transaction(self.db, "log mood"):
            mood = self.mood_repo.create(self.db, Mood(user_id=user_id, **fields))
            self.achievement_service.evaluate(
                user_id, ACHIEVEMENT_MOOD, self.mood_repo.count(self.db, user_id)
            )

        logger.info(f"User {user_id} logged mood {mood.mood_level} ({mood.mood_label})")
        return mood

    def get_mood(self, mood_id: int, user_id: int) -> Mood:
        mood = self.mood_repo.get_by_id(self.db, mood_id, user_id)
        if not mood:
            raise MoodNotFoundException(mood_id)
        return mood

    def update_mood(self, mood_id: int, user_id: int, data) -> Mood:
        update_data = validated(MoodUpdate, data).model_dump(exclude_unset=True)
        with transaction(self.db, "update mood"):
            mood = self.get_mood(mood_id, user_id)
            for key, value in update_data.items():
                setattr(mood, key, value)
            return self.mood_repo.update(self.db, mood)

    def delete_mood(self, mood_id: int, user_id: int) -> None:
        with transaction(self.db, "delete mood"):
            mood = self.get_mood(mood_id, user_id)
            self.mood_repo.delete(self.db, mood)
        logger.info(f"Deleted mood {mood_id}")

    def get_mood_history(self, user_id: int, limit: int = HISTORY_LIMIT) -> List[Mood]:
        """Most recent entries, newest first"""
        return self.mood_repo.get_history(self.db, user_id, limit)

    def get_moods_by_date_range(self, user_id: int, start: date, end: date) -> List[Mood]:
        """Entries logged from start to end (both days included), newest first"""
        return self.mood_repo.get_by_date_range(self.db, user_id, DateRange.inclusive(start, end))

    def get_mood_for_date(self, user_id: int, target_date: date) -> Optional[Mood]:
        """The latest entry logged on a day"""
        return self.mood_repo.get_latest_in_range(self.db, user_id, DateRange.single_day(target_date))

    def get_todays_mood(self, user_id: int, today: Optional[date] = None) -> Optional[Mood]:
        return self.get_mood_for_date(user_id, today or self.date_service.today())

    def is_mood_logged_today(self, user_id: int, today: Optional[date] = None) -> bool:
        return self.get_todays_mood(user_id, today) is not None

    # Aggregates over the last N days (today included)

    def get_mood_stats(self, user_id: int, days: int = DEFAULT_WINDOW_DAYS, today: Optional[date] = None) -> dict:
        """Average mood/energy/stress, entry count, most common label and distribution"""
        return self.stats.summarize_moods(self._window(user_id, days, today))

    def get_mood_trends(self, user_id: int, days: int = DEFAULT_WINDOW_DAYS, today: Optional[date] = None) -> List[dict]:
        """Daily averages in date order"""
        return self.stats.daily_mood_trends(self._window(user_id, days, today))

    def get_mood_distribution(self, user_id: int, days: int = DEFAULT_WINDOW_DAYS, today: Optional[date] = None) -> List[dict]:
        return self.stats.mood_distribution(self._window(user_id, days, today))

    def get_best_and_worst_days(self, user_id: int, days: int = DEFAULT_WINDOW_DAYS, today: Optional[date] = None) -> dict:
        best, worst = self.stats.best_and_worst(self._window(user_id, days, today))
        return {
            "best_day": self._day_summary(best),
            "worst_day": self._day_summary(worst)
        }

    def get_mood_insights(self, user_id: int, days: int = DEFAULT_WINDOW_DAYS, today: Optional[date] = None) -> dict:
        """Stats, trends, distribution and best/worst days for one window"""
        moods = self._window(user_id, days, today)
        summary = self.stats.summarize_moods(moods)
        best, worst = self.stats.best_and_worst(moods)
        return {
            "stats": summary,
            "trends": self.stats.daily_mood_trends(moods),
            "distribution": summary["distribution"],
            "best_day": self._day_summary(best),
            "worst_day": self._day_summary(worst)
        }

    def _window(self, user_id: int, days: int, today: Optional[date]) -> List[Mood]:
        if days < 1:
            raise ValidationException("days", "window must cover at least one day")
        today = today or self.date_service.today()
        return self.mood_repo.get_by_date_range(self.db, user_id, DateRange.last_days(days, today))

    @staticmethod
    def _day_summary(mood: Optional[Mood]) -> Optional[dict]:
        if mood is None:
            return None
        return {
            "date": mood.logged_at,
            "mood_level": mood.mood_level,
            "mood_label": mood.mood_label,
            "note": mood.note
        }
