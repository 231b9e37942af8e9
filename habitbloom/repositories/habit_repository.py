"""
Habit repository - Data access layer for Habit and UserStats models.
Every query is scoped by user_id.
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_

from habitbloom.models import Habit, UserStats


class HabitRepository:
    """Repository for Habit data access"""

    @staticmethod
    def get_by_id(db: Session, habit_id: int, user_id: int) -> Optional[Habit]:
        """Get habit by ID, only if owned by user"""
        return db.query(Habit).filter(
            and_(
                Habit.id == habit_id,
                Habit.user_id == user_id
            )
        ).first()

    @staticmethod
    def get_all(db: Session, user_id: int, include_archived: bool = False) -> List[Habit]:
        """Get user's habits, newest first"""
        query = db.query(Habit).filter(Habit.user_id == user_id)
        if not include_archived:
            query = query.filter(Habit.is_archived == False)
        return query.order_by(Habit.created_at.desc(), Habit.id.desc()).all()

    @staticmethod
    def get_active(db: Session, user_id: int) -> List[Habit]:
        """Get habits that are neither paused nor archived"""
        return db.query(Habit).filter(
            and_(
                Habit.user_id == user_id,
                Habit.is_archived == False,
                Habit.is_paused == False
            )
        ).order_by(Habit.created_at.desc(), Habit.id.desc()).all()

    @staticmethod
    def get_by_category(db: Session, user_id: int, category: str) -> List[Habit]:
        """Get non-archived habits in a category"""
        return db.query(Habit).filter(
            and_(
                Habit.user_id == user_id,
                Habit.category == category,
                Habit.is_archived == False
            )
        ).all()

    @staticmethod
    def get_many(db: Session, user_id: int, habit_ids: List[int]) -> List[Habit]:
        """Get owned habits among the given IDs"""
        if not habit_ids:
            return []
        return db.query(Habit).filter(
            and_(
                Habit.user_id == user_id,
                Habit.id.in_(habit_ids)
            )
        ).all()

    @staticmethod
    def create(db: Session, habit: Habit) -> Habit:
        """Stage a new habit (committed by the surrounding transaction)"""
        db.add(habit)
        db.flush()
        return habit

    @staticmethod
    def update(db: Session, habit: Habit) -> Habit:
        """Flush pending changes on a habit"""
        db.flush()
        return habit

    @staticmethod
    def delete(db: Session, habit: Habit) -> None:
        """Physically remove a habit"""
        db.delete(habit)
        db.flush()


class UserStatsRepository:
    """Repository for per-user lifetime counters"""

    @staticmethod
    def get(db: Session, user_id: int) -> UserStats:
        """
        Get user counters (creates with zeros if not exists).

        Returns:
            UserStats object
        """
        stats = db.query(UserStats).filter(UserStats.user_id == user_id).first()
        if not stats:
            stats = UserStats(
                user_id=user_id,
                total_habits_created=0,
                total_completions=0,
                streak_current=0,
                streak_longest=0
            )
            db.add(stats)
            db.flush()
        return stats

    @staticmethod
    def update(db: Session, stats: UserStats) -> UserStats:
        db.flush()
        return stats
