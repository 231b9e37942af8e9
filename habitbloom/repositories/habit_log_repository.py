"""
Habit log repository - Data access layer for the completion ledger.
All reads are date-range filtered and ordered by log date descending.
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_

from habitbloom.models import HabitLog
from habitbloom.services.date_service import DateRange


class HabitLogRepository:
    """Repository for HabitLog data access"""

    @staticmethod
    def get_by_id(db: Session, log_id: int, user_id: int) -> Optional[HabitLog]:
        """Get log by ID, only if owned by user"""
        return db.query(HabitLog).filter(
            and_(
                HabitLog.id == log_id,
                HabitLog.user_id == user_id
            )
        ).first()

    @staticmethod
    def get_for_date(db: Session, habit_id: int, user_id: int, target_date: date) -> List[HabitLog]:
        """
        Get every entry for a habit on one day.

        Uniqueness per (habit, day) is not enforced by the store, so this may
        return more than one row; callers resolve the authoritative one.
        """
        day = DateRange.single_day(target_date)
        return db.query(HabitLog).filter(
            and_(
                HabitLog.habit_id == habit_id,
                HabitLog.user_id == user_id,
                HabitLog.log_date >= day.start,
                HabitLog.log_date < day.end
            )
        ).order_by(HabitLog.id.desc()).all()

    @staticmethod
    def get_by_date_range(
        db: Session,
        user_id: int,
        date_range: DateRange,
        habit_id: Optional[int] = None
    ) -> List[HabitLog]:
        """Get logs in a date range, optionally for one habit"""
        query = db.query(HabitLog).filter(
            and_(
                HabitLog.user_id == user_id,
                HabitLog.log_date >= date_range.start,
                HabitLog.log_date < date_range.end
            )
        )

        if habit_id is not None:
            query = query.filter(HabitLog.habit_id == habit_id)

        return query.order_by(HabitLog.log_date.desc(), HabitLog.id.desc()).all()

    @staticmethod
    def get_for_habit(
        db: Session,
        habit_id: int,
        user_id: int,
        limit: Optional[int] = None
    ) -> List[HabitLog]:
        """Get a habit's most recent logs"""
        query = db.query(HabitLog).filter(
            and_(
                HabitLog.habit_id == habit_id,
                HabitLog.user_id == user_id
            )
        ).order_by(HabitLog.log_date.desc(), HabitLog.id.desc())

        if limit is not None:
            query = query.limit(limit)

        return query.all()

    @staticmethod
    def get_all(db: Session, user_id: int, habit_id: Optional[int] = None) -> List[HabitLog]:
        """Get all logs of a user, optionally for one habit"""
        query = db.query(HabitLog).filter(HabitLog.user_id == user_id)
        if habit_id is not None:
            query = query.filter(HabitLog.habit_id == habit_id)
        return query.order_by(HabitLog.log_date.desc(), HabitLog.id.desc()).all()

    @staticmethod
    def get_with_mood(db: Session, user_id: int, limit: int) -> List[HabitLog]:
        """Get logs that carry a mood tag"""
        return db.query(HabitLog).filter(
            and_(
                HabitLog.user_id == user_id,
                HabitLog.mood.isnot(None),
                HabitLog.mood != ""
            )
        ).order_by(HabitLog.log_date.desc(), HabitLog.id.desc()).limit(limit).all()

    @staticmethod
    def get_completed_dates(db: Session, habit_id: int, user_id: int) -> List[date]:
        """Distinct days on which a habit has a completed entry"""
        rows = db.query(HabitLog.log_date).filter(
            and_(
                HabitLog.habit_id == habit_id,
                HabitLog.user_id == user_id,
                HabitLog.status == "completed"
            )
        ).distinct().all()
        return [row[0] for row in rows]

    @staticmethod
    def create(db: Session, log: HabitLog) -> HabitLog:
        """Stage a new log entry"""
        db.add(log)
        db.flush()
        return log

    @staticmethod
    def update(db: Session, log: HabitLog) -> HabitLog:
        db.flush()
        return log

    @staticmethod
    def delete(db: Session, log: HabitLog) -> None:
        db.delete(log)
        db.flush()
