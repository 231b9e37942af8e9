"""
Collaborator interfaces consumed by the core.
The core only decides that a reminder or calendar event should exist; delivery
and device permissions belong to the implementations behind these protocols.
"""
from datetime import date, datetime, timedelta
from typing import Optional, Protocol

from habitbloom.models import Habit
from habitbloom.services.date_service import DateService

DEFAULT_EVENT_MINUTES = 30


class NotificationScheduler(Protocol):
    def schedule(self, title: str, body: str, trigger_at: datetime) -> str:
        """Schedule a notification and return an opaque schedule id"""
        ...


class CalendarSync(Protocol):
    def create_event(self, title: str, start: datetime, end: datetime) -> str:
        """Create a calendar event and return an opaque event id"""
        ...


class ReminderPlanner:
    """Decides when a habit should remind the user"""

    def __init__(self):
        self.date_service = DateService()

    def reminder_time(self, habit: Habit, on_date: date) -> Optional[datetime]:
        """
        Trigger time for a habit's reminder on a given day.

        Returns None when the habit has no start time, is not active, or is
        not scheduled on that day.
        """
        if not habit.start_time or not habit.is_active:
            return None
        if not self.date_service.is_scheduled_on(
            habit.frequency, on_date, habit.weekdays, habit.start_date, habit.end_date
        ):
            return None
        return self.date_service.at_time(on_date, habit.start_time)

    def event_window(self, habit: Habit, on_date: date) -> Optional[tuple[datetime, datetime]]:
        """Calendar window for a habit: start_time to end_time (or a default length)"""
        start = self.reminder_time(habit, on_date)
        if start is None:
            return None
        if habit.end_time:
            end = self.date_service.at_time(on_date, habit.end_time)
            if end > start:
                return start, end
        return start, start + timedelta(minutes=DEFAULT_EVENT_MINUTES)

    @staticmethod
    def reminder_text(habit: Habit) -> tuple[str, str]:
        title = f"Time for {habit.title}"
        if habit.current_streak:
            body = f"Keep your {habit.current_streak}-day streak going!"
        else:
            body = "Start a new streak today."
        return title, body
