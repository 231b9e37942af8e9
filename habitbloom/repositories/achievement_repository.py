"""
Achievement repository - Data access layer for Achievement model.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_

from habitbloom.models import Achievement


class AchievementRepository:
    """Repository for Achievement data access"""

    @staticmethod
    def get_by_id(db: Session, achievement_id: int, user_id: int) -> Optional[Achievement]:
        """Get achievement by ID, only if owned by user"""
        return db.query(Achievement).filter(
            and_(
                Achievement.id == achievement_id,
                Achievement.user_id == user_id
            )
        ).first()

    @staticmethod
    def get_by_key(db: Session, user_id: int, key: str) -> Optional[Achievement]:
        """Get a user's achievement by rule key"""
        return db.query(Achievement).filter(
            and_(
                Achievement.user_id == user_id,
                Achievement.key == key
            )
        ).first()

    @staticmethod
    def get_all(
        db: Session,
        user_id: int,
        achievement_type: Optional[str] = None,
        linked_habit_id: Optional[int] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[Achievement]:
        """Get a user's achievements, most recent first"""
        query = db.query(Achievement).filter(Achievement.user_id == user_id)

        if achievement_type is not None:
            query = query.filter(Achievement.type == achievement_type)
        if linked_habit_id is not None:
            query = query.filter(Achievement.linked_habit_id == linked_habit_id)
        if since is not None:
            query = query.filter(Achievement.achieved_at >= since)

        query = query.order_by(Achievement.achieved_at.desc(), Achievement.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def create(db: Session, achievement: Achievement) -> Achievement:
        db.add(achievement)
        db.flush()
        return achievement

    @staticmethod
    def delete(db: Session, achievement: Achievement) -> None:
        db.delete(achievement)
        db.flush()

    @staticmethod
    def delete_all(db: Session, user_id: int) -> int:
        """Remove every achievement of a user, returning how many were removed"""
        count = db.query(Achievement).filter(
            Achievement.user_id == user_id
        ).delete(synchronize_session=False)
        db.flush()
        return count
