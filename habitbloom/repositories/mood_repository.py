"""
Mood repository - Data access layer for Mood model.
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_

from habitbloom.models import Mood
from habitbloom.services.date_service import DateRange


class MoodRepository:
    """Repository for Mood data access"""

    @staticmethod
    def get_by_id(db: Session, mood_id: int, user_id: int) -> Optional[Mood]:
        """Get mood by ID, only if owned by user"""
        return db.query(Mood).filter(
            and_(
                Mood.id == mood_id,
                Mood.user_id == user_id
            )
        ).first()

    @staticmethod
    def get_history(db: Session, user_id: int, limit: int) -> List[Mood]:
        """Get most recent moods"""
        return db.query(Mood).filter(
            Mood.user_id == user_id
        ).order_by(Mood.logged_at.desc(), Mood.id.desc()).limit(limit).all()

    @staticmethod
    def get_by_date_range(db: Session, user_id: int, date_range: DateRange) -> List[Mood]:
        """Get moods logged within a date range, newest first"""
        start, end = date_range.datetime_bounds()
        return db.query(Mood).filter(
            and_(
                Mood.user_id == user_id,
                Mood.logged_at >= start,
                Mood.logged_at < end
            )
        ).order_by(Mood.logged_at.desc(), Mood.id.desc()).all()

    @staticmethod
    def get_latest_in_range(db: Session, user_id: int, date_range: DateRange) -> Optional[Mood]:
        """Get the most recently logged mood within a date range"""
        start, end = date_range.datetime_bounds()
        return db.query(Mood).filter(
            and_(
                Mood.user_id == user_id,
                Mood.logged_at >= start,
                Mood.logged_at < end
            )
        ).order_by(Mood.logged_at.desc(), Mood.id.desc()).first()

    @staticmethod
    def count(db: Session, user_id: int) -> int:
        """Count all moods a user has logged"""
        return db.query(Mood).filter(Mood.user_id == user_id).count()

    @staticmethod
    def create(db: Session, mood: Mood) -> Mood:
        db.add(mood)
        db.flush()
        return mood

    @staticmethod
    def update(db: Session, mood: Mood) -> Mood:
        db.flush()
        return mood

    @staticmethod
    def delete(db: Session, mood: Mood) -> None:
        db.delete(mood)
        db.flush()
