"""
Achievement evaluation service.
Maps freshly computed aggregates onto a static rule catalog and unlocks each
rule key at most once per user.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional
from sqlalchemy.orm import Session

from habitbloom.database import transaction
from habitbloom.exceptions import AchievementNotFoundException, ValidationException
from habitbloom.models import Achievement
from habitbloom.repositories.achievement_repository import AchievementRepository
from habitbloom.schemas import AchievementCreate, validated
from habitbloom.services.date_service import DateService
from habitbloom.services.stats_service import round_half_up
from habitbloom.constants import (
    ACHIEVEMENT_STREAK, ACHIEVEMENT_COMPLETION, ACHIEVEMENT_HABIT_COUNT,
    ACHIEVEMENT_MOOD, ACHIEVEMENT_MISC, ACHIEVEMENT_TYPES
)

logger = logging.getLogger("habitbloom.achievements")


@dataclass(frozen=True)
class AchievementRule:
    key: str
    title: str
    points: int
    type: str
    threshold: int


# Bump when rules are added or thresholds change
CATALOG_VERSION = 1

ACHIEVEMENT_CATALOG = (
    # Streak achievements (consecutive days on a single habit)
    AchievementRule("7_DAY_STREAK", "Week Warrior", 50, ACHIEVEMENT_STREAK, 7),
    AchievementRule("30_DAY_STREAK", "Monthly Master", 200, ACHIEVEMENT_STREAK, 30),
    AchievementRule("100_DAY_STREAK", "Centurion", 1000, ACHIEVEMENT_STREAK, 100),
    AchievementRule("365_DAY_STREAK", "Year Champion", 5000, ACHIEVEMENT_STREAK, 365),

    # Completion achievements (lifetime completions)
    AchievementRule("50_COMPLETIONS", "Getting Started", 100, ACHIEVEMENT_COMPLETION, 50),
    AchievementRule("500_COMPLETIONS", "Habit Hero", 500, ACHIEVEMENT_COMPLETION, 500),
    AchievementRule("1000_COMPLETIONS", "Master of Habits", 2000, ACHIEVEMENT_COMPLETION, 1000),

    # Habit count achievements (lifetime habits created)
    AchievementRule("5_HABITS_CREATED", "Building Momentum", 25, ACHIEVEMENT_HABIT_COUNT, 5),
    AchievementRule("10_HABITS_CREATED", "Habit Collector", 75, ACHIEVEMENT_HABIT_COUNT, 10),
    AchievementRule("25_HABITS_CREATED", "Habit Master", 250, ACHIEVEMENT_HABIT_COUNT, 25),

    # Mood achievements (moods logged)
    AchievementRule("30_MOODS_LOGGED", "Emotional Awareness", 100, ACHIEVEMENT_MOOD, 30),
    AchievementRule("100_MOODS_LOGGED", "Mood Tracker", 300, ACHIEVEMENT_MOOD, 100),
)

EVALUATED_METRICS = (
    ACHIEVEMENT_STREAK, ACHIEVEMENT_COMPLETION, ACHIEVEMENT_HABIT_COUNT, ACHIEVEMENT_MOOD
)


class AchievementService:
    """Service for unlocking and querying achievements"""

    def __init__(self, db: Session):
        self.db = db
        self.achievement_repo = AchievementRepository()
        self.date_service = DateService()

    def unlock(self, user_id: int, data) -> Achievement:
        """
        Unlock an achievement for a user.

        Idempotent: if the user already holds the rule key, the existing row is
        returned unchanged and nothing is written.

        Args:
            user_id: Owner
            data: AchievementCreate or dict with its fields

        Returns:
            The unlocked (or previously unlocked) achievement
        """
        payload = validated(AchievementCreate, data)
        with transaction(self.db, "unlock achievement"):
            achievement, _ = self._unlock(user_id, payload)
        return achievement

    def bulk_unlock(self, user_id: int, items: list) -> List[Achievement]:
        """Unlock several achievements in one transaction"""
        payloads = [validated(AchievementCreate, item) for item in items]
        with transaction(self.db, "bulk unlock achievements"):
            return [self._unlock(user_id, payload)[0] for payload in payloads]

    def evaluate(
        self,
        user_id: int,
        metric: str,
        value: int,
        linked_habit_id: Optional[int] = None
    ) -> List[Achievement]:
        """
        Attempt every catalog rule of a metric whose threshold value has reached.

        The caller decides when to evaluate and passes the fresh aggregate.

        Args:
            user_id: Owner
            metric: "streak", "completion", "habit_count" or "mood"
            value: Current aggregate value for that metric
            linked_habit_id: Habit that produced the value, if any

        Returns:
            Achievements created by this call (already held ones are skipped)
        """
        if metric not in EVALUATED_METRICS:
            raise ValidationException("metric", f"unknown achievement metric '{metric}'")

        unlocked = []
        with transaction(self.db, "evaluate achievements"):
            for rule in ACHIEVEMENT_CATALOG:
                if rule.type != metric or value < rule.threshold:
                    continue
                payload = AchievementCreate(
                    key=rule.key,
                    title=rule.title,
                    points=rule.points,
                    type=rule.type,
                    linked_habit_id=linked_habit_id
                )
                achievement, created = self._unlock(user_id, payload)
                if created:
                    unlocked.append(achievement)
        return unlocked

    def _unlock(self, user_id: int, payload: AchievementCreate) -> tuple[Achievement, bool]:
        """Insert unless (user, key) exists. Returns (achievement, created)"""
        existing = self.achievement_repo.get_by_key(self.db, user_id, payload.key)
        if existing:
            return existing, False

        fields = payload.model_dump()
        fields["achieved_at"] = fields["achieved_at"] or self.date_service.utc_now()
        achievement = self.achievement_repo.create(
            self.db, Achievement(user_id=user_id, **fields)
        )
        logger.info(f"User {user_id} unlocked {achievement.key} (+{achievement.points} points)")
        return achievement, True

    def get_achievements(self, user_id: int) -> List[Achievement]:
        """Get all achievements, most recent first"""
        return self.achievement_repo.get_all(self.db, user_id)

    def get_achievement(self, achievement_id: int, user_id: int) -> Achievement:
        achievement = self.achievement_repo.get_by_id(self.db, achievement_id, user_id)
        if not achievement:
            raise AchievementNotFoundException(achievement_id)
        return achievement

    def get_by_type(self, user_id: int, achievement_type: str) -> List[Achievement]:
        if achievement_type not in ACHIEVEMENT_TYPES:
            raise ValidationException("type", f"unknown achievement type '{achievement_type}'")
        return self.achievement_repo.get_all(self.db, user_id, achievement_type=achievement_type)

    def get_by_habit(self, user_id: int, habit_id: int) -> List[Achievement]:
        return self.achievement_repo.get_all(self.db, user_id, linked_habit_id=habit_id)

    def get_recent(self, user_id: int, limit: int = 5) -> List[Achievement]:
        return self.achievement_repo.get_all(self.db, user_id, limit=limit)

    def get_unlocked_since(self, user_id: int, days: int) -> List[Achievement]:
        """Achievements unlocked in the last N days (7 for a week, 30 for a month)"""
        since = self.date_service.utc_now() - timedelta(days=days)
        return self.achievement_repo.get_all(self.db, user_id, since=since)

    def is_unlocked(self, user_id: int, key: str) -> bool:
        return self.achievement_repo.get_by_key(self.db, user_id, key.upper()) is not None

    def get_total_points(self, user_id: int) -> int:
        """Sum of points over every unlocked achievement"""
        return sum(a.points or 0 for a in self.get_achievements(user_id))

    def get_achievement_count(self, user_id: int) -> int:
        return len(self.get_achievements(user_id))

    def get_achievement_stats(self, user_id: int) -> dict:
        """Counts per type, total and average points, latest unlock"""
        achievements = self.get_achievements(user_id)
        total_points = sum(a.points or 0 for a in achievements)
        by_type = {achievement_type: 0 for achievement_type in ACHIEVEMENT_TYPES}
        for achievement in achievements:
            by_type[achievement.type or ACHIEVEMENT_MISC] += 1

        return {
            "total": len(achievements),
            "total_points": total_points,
            "avg_points": int(round_half_up(total_points / len(achievements))) if achievements else 0,
            "by_type": by_type,
            "latest": achievements[0] if achievements else None
        }

    def get_progress(self, user_id: int) -> List[dict]:
        """Full catalog with unlock state, for display"""
        unlocked = {a.key: a for a in self.get_achievements(user_id)}
        return [
            {
                "key": rule.key,
                "title": rule.title,
                "points": rule.points,
                "type": rule.type,
                "threshold": rule.threshold,
                "unlocked": rule.key in unlocked,
                "unlocked_at": unlocked[rule.key].achieved_at if rule.key in unlocked else None
            }
            for rule in ACHIEVEMENT_CATALOG
        ]

    def delete_achievement(self, achievement_id: int, user_id: int) -> None:
        """Delete one achievement (part of a user data reset)"""
        with transaction(self.db, "delete achievement"):
            achievement = self.get_achievement(achievement_id, user_id)
            self.achievement_repo.delete(self.db, achievement)

    def reset_achievements(self, user_id: int) -> int:
        """Delete every achievement of a user"""
        with transaction(self.db, "reset achievements"):
            removed = self.achievement_repo.delete_all(self.db, user_id)
        logger.info(f"Reset {removed} achievements for user {user_id}")
        return removed
