"""
Habit registry service.
Handles habit CRUD, lifecycle state (active/paused/archived) and the
denormalized streak counters read by the UI.
"""
import json
import logging
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from habitbloom.constants import ACHIEVEMENT_HABIT_COUNT
from habitbloom.database import transaction
from habitbloom.exceptions import HabitNotFoundException, ValidationException
from habitbloom.models import Habit
from habitbloom.repositories.habit_repository import HabitRepository, UserStatsRepository
from habitbloom.schemas import HabitCreate, HabitUpdate, validated
from habitbloom.services.achievement_service import AchievementService
from habitbloom.services.date_service import DateService
from habitbloom.services.integrations import CalendarSync, NotificationScheduler, ReminderPlanner

logger = logging.getLogger("habitbloom.habits")


class HabitService:
    """Service for habit management"""

    def __init__(self, db: Session):
        self.db = db
        self.habit_repo = HabitRepository()
        self.user_stats_repo = UserStatsRepository()
        self.date_service = DateService()
        self.achievement_service = AchievementService(db)
        self.reminder_planner = ReminderPlanner()

    def get_habit(self, habit_id: int, user_id: int) -> Habit:
        """Get an owned habit or raise HabitNotFoundException"""
        habit = self.habit_repo.get_by_id(self.db, habit_id, user_id)
        if not habit:
            raise HabitNotFoundException(habit_id)
        return habit

    def get_habits(self, user_id: int, include_archived: bool = False) -> List[Habit]:
        return self.habit_repo.get_all(self.db, user_id, include_archived)

    def get_active_habits(self, user_id: int) -> List[Habit]:
        """Habits that are neither paused nor archived"""
        return self.habit_repo.get_active(self.db, user_id)

    def get_habits_by_category(self, user_id: int, category: str) -> List[Habit]:
        return self.habit_repo.get_by_category(self.db, user_id, category)

    def get_habits_due_today(self, user_id: int, today: Optional[date] = None) -> List[Habit]:
        """Active habits whose schedule falls on today"""
        today = today or self.date_service.today()
        return [
            habit for habit in self.get_active_habits(user_id)
            if self.date_service.is_scheduled_on(
                habit.frequency, today, habit.weekdays, habit.start_date, habit.end_date
            )
        ]

    def create_habit(self, user_id: int, data) -> Habit:
        """
        Create a new habit.

        Counters start at zero. The user's lifetime habit counter increments
        and habit-count achievements are evaluated in the same transaction.

        Args:
            user_id: Owner
            data: HabitCreate or dict with its fields

        Returns:
            Created habit
        """
        habit_data = validated(HabitCreate, data)

        fields = habit_data.model_dump()
        fields["custom_days"] = self._dump_days(fields["custom_days"])
        if fields["start_date"] is None:
            fields["start_date"] = self.date_service.today()

        with transaction(self.db, "create habit"):
            habit = self.habit_repo.create(self.db, Habit(
                user_id=user_id,
                total_completions=0,
                current_streak=0,
                longest_streak=0,
                is_archived=False,
                is_paused=False,
                **fields
            ))

            stats = self.user_stats_repo.get(self.db, user_id)
            stats.total_habits_created += 1
            self.user_stats_repo.update(self.db, stats)

            self.achievement_service.evaluate(
                user_id, ACHIEVEMENT_HABIT_COUNT, stats.total_habits_created
            )

        logger.info(f"User {user_id} created habit {habit.id} '{habit.title}'")
        return habit

    def update_habit(self, habit_id: int, user_id: int, data) -> Habit:
        """Update descriptive and schedule fields (counters are not editable)"""
        habit_update = validated(HabitUpdate, data)
        update_data = habit_update.model_dump(exclude_unset=True)

        with transaction(self.db, "update habit"):
            habit = self.get_habit(habit_id, user_id)

            # Cross-field rules are checked on the merged result before any change
            current = {field: getattr(habit, field) for field in HabitUpdate.model_fields}
            current["custom_days"] = habit.weekdays or None
            validated(HabitCreate, {**current, **update_data})

            if "custom_days" in update_data:
                update_data["custom_days"] = self._dump_days(update_data["custom_days"])
            for key, value in update_data.items():
                setattr(habit, key, value)

            return self.habit_repo.update(self.db, habit)

    def archive_habit(self, habit_id: int, user_id: int) -> Habit:
        """Soft delete: counters and logs are untouched"""
        with transaction(self.db, "archive habit"):
            habit = self.get_habit(habit_id, user_id)
            habit.is_archived = True
            self.habit_repo.update(self.db, habit)
        logger.info(f"Archived habit {habit_id}")
        return habit

    def archive_multiple(self, user_id: int, habit_ids: List[int]) -> int:
        """Archive several habits; IDs not owned by the user are ignored"""
        with transaction(self.db, "archive habits"):
            habits = self.habit_repo.get_many(self.db, user_id, habit_ids)
            for habit in habits:
                habit.is_archived = True
            self.db.flush()
        return len(habits)

    def hard_delete_habit(self, habit_id: int, user_id: int) -> None:
        """
        Physically remove a habit.

        Its completion logs are kept as history; with the habit gone they can
        no longer be reached through per-habit queries.
        """
        with transaction(self.db, "delete habit"):
            habit = self.get_habit(habit_id, user_id)
            self.habit_repo.delete(self.db, habit)
        logger.info(f"Deleted habit {habit_id}")

    def toggle_pause(self, habit_id: int, user_id: int) -> bool:
        """Flip the paused flag, returning the new state"""
        with transaction(self.db, "toggle pause"):
            habit = self.get_habit(habit_id, user_id)
            habit.is_paused = not habit.is_paused
            self.habit_repo.update(self.db, habit)
        return habit.is_paused

    def apply_completion(
        self,
        habit_id: int,
        user_id: int,
        new_streak: int,
        completed_on: date,
        longest_candidate: Optional[int] = None
    ) -> Habit:
        """
        Record a completion on the habit's counters.

        The only sanctioned way to change streak counters. The streak value is
        computed by the caller; this only keeps longest_streak as a running max
        and increments total_completions.

        Args:
            habit_id: Habit that was completed
            user_id: Owner
            new_streak: Streak value computed by StatsService
            completed_on: Day of the completion
            longest_candidate: Longest run recounted from the ledger after a backfill

        Returns:
            Updated habit
        """
        if new_streak < 0:
            raise ValidationException("new_streak", "streak must not be negative")

        with transaction(self.db, "apply completion"):
            habit = self.get_habit(habit_id, user_id)
            habit.current_streak = new_streak
            habit.longest_streak = max(habit.longest_streak or 0, new_streak, longest_candidate or 0)
            habit.total_completions = (habit.total_completions or 0) + 1
            habit.last_completed_at = self.date_service.utc_now()
            if habit.last_completed_date is None or completed_on > habit.last_completed_date:
                habit.last_completed_date = completed_on
            return self.habit_repo.update(self.db, habit)

    def schedule_reminder(
        self,
        habit_id: int,
        user_id: int,
        scheduler: NotificationScheduler,
        on_date: Optional[date] = None
    ) -> Optional[str]:
        """
        Ask the notification scheduler for a reminder, if the habit needs one.

        Returns:
            Opaque schedule id, or None when no reminder is due that day
        """
        on_date = on_date or self.date_service.today()
        habit = self.get_habit(habit_id, user_id)
        trigger_at = self.reminder_planner.reminder_time(habit, on_date)
        if trigger_at is None:
            return None

        title, body = self.reminder_planner.reminder_text(habit)
        reminder_id = scheduler.schedule(title, body, trigger_at)
        with transaction(self.db, "store reminder"):
            habit.reminder_id = reminder_id
            self.habit_repo.update(self.db, habit)
        logger.info(f"Scheduled reminder {reminder_id} for habit {habit_id} at {trigger_at}")
        return reminder_id

    def sync_to_calendar(
        self,
        habit_id: int,
        user_id: int,
        calendar: CalendarSync,
        on_date: Optional[date] = None
    ) -> Optional[str]:
        """Create a calendar event for the habit's time window, if it has one"""
        on_date = on_date or self.date_service.today()
        habit = self.get_habit(habit_id, user_id)
        window = self.reminder_planner.event_window(habit, on_date)
        if window is None:
            return None

        event_id = calendar.create_event(habit.title, *window)
        with transaction(self.db, "store calendar event"):
            habit.calendar_event_id = event_id
            habit.in_calendar = True
            self.habit_repo.update(self.db, habit)
        return event_id

    @staticmethod
    def _dump_days(days: Optional[List[int]]) -> Optional[str]:
        return json.dumps(days) if days else None
