from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Text, Index, UniqueConstraint
from datetime import datetime
import json

from habitbloom.database import Base


class Habit(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    # Core habit data
    title = Column(String(100), nullable=False)
    description = Column(String(500), default="")
    category = Column(String(50), default="general")

    # Scheduling
    frequency = Column(String(20), default="daily")  # daily, weekly, custom, monthly, once
    custom_days = Column(String, nullable=True)  # JSON array like "[0,2,4]" (Mon, Wed, Fri)
    start_time = Column(String(5), nullable=True)  # HH:MM
    end_time = Column(String(5), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    # Goals and tracking
    goal_per_day = Column(Integer, default=1)
    total_completions = Column(Integer, default=0)
    current_streak = Column(Integer, default=0)
    longest_streak = Column(Integer, default=0)
    last_completed_at = Column(DateTime, nullable=True)
    last_completed_date = Column(Date, nullable=True)  # Day of latest completed log, drives streaks

    # Collaborator references (opaque ids)
    in_calendar = Column(Boolean, default=False)
    calendar_event_id = Column(String, nullable=True)
    reminder_id = Column(String, nullable=True)

    # Customization
    color_tag = Column(String(7), default="#A78BFA")
    icon = Column(String(10), default="✨")
    difficulty = Column(String(10), default="medium")  # easy, medium, hard

    # State
    is_archived = Column(Boolean, default=False)
    is_paused = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Ids are never reused: logs of a hard-deleted habit keep pointing at it
    __table_args__ = {"sqlite_autoincrement": True}

    @property
    def weekdays(self) -> list[int]:
        """Parsed custom_days (Monday=0)"""
        if not self.custom_days:
            return []
        try:
            return [int(d) for d in json.loads(self.custom_days)]
        except (json.JSONDecodeError, TypeError, ValueError):
            return []

    @property
    def is_active(self) -> bool:
        return not self.is_archived and not self.is_paused


class HabitLog(Base):
    __tablename__ = "habit_logs"

    id = Column(Integer, primary_key=True, index=True)
    # No foreign key: logs of a hard-deleted habit are kept as history
    habit_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=False, index=True)

    log_date = Column(Date, nullable=False)  # Calendar day being logged
    status = Column(String(10), default="pending")  # completed, missed, pending
    note = Column(String(500), default="")
    value = Column(Integer, default=1)  # Amount toward goal_per_day
    mood = Column(String(50), default="")
    auto_generated = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_habit_logs_habit_date", "habit_id", "log_date"),
    )


class Mood(Base):
    __tablename__ = "moods"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    mood_level = Column(Integer, nullable=False)  # 1-10
    mood_label = Column(String(20), default="Neutral")
    note = Column(Text, default="")
    emoji = Column(String(10), default="")

    energy_level = Column(Integer, nullable=True)  # 1-10
    stress_level = Column(Integer, nullable=True)  # 1-10

    logged_at = Column(DateTime, default=datetime.utcnow, index=True)  # UTC

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    key = Column(String(50), nullable=False)  # e.g. "7_DAY_STREAK"
    title = Column(String(100), nullable=False)
    description = Column(String(500), default="")
    icon = Column(String(10), default="🏆")
    points = Column(Integer, default=10)
    type = Column(String(20), default="misc")  # streak, completion, habit_count, mood, misc
    linked_habit_id = Column(Integer, nullable=True)

    achieved_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "key", name="uq_achievement_user_key"),
    )


class UserStats(Base):
    __tablename__ = "user_stats"

    user_id = Column(Integer, primary_key=True)

    total_habits_created = Column(Integer, default=0)  # Lifetime, never decremented
    total_completions = Column(Integer, default=0)
    streak_current = Column(Integer, default=0)
    streak_longest = Column(Integer, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
