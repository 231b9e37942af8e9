"""
Date calculation service.
Owns the single timezone policy (UTC calendar days) and the DateRange value type.
"""
import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, date
from typing import Iterator, Optional

from habitbloom.constants import (
    FREQUENCY_DAILY, FREQUENCY_WEEKLY, FREQUENCY_CUSTOM, FREQUENCY_MONTHLY, FREQUENCY_ONCE
)


@dataclass(frozen=True)
class DateRange:
    """
    Half-open range of UTC calendar days: start inclusive, end exclusive.
    """
    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"DateRange end {self.end} is before start {self.start}")

    @classmethod
    def single_day(cls, day: date) -> "DateRange":
        return cls(day, day + timedelta(days=1))

    @classmethod
    def last_days(cls, days: int, today: date) -> "DateRange":
        """The `days` calendar days ending with (and including) today"""
        return cls(today - timedelta(days=days - 1), today + timedelta(days=1))

    @classmethod
    def inclusive(cls, first: date, last: date) -> "DateRange":
        return cls(first, last + timedelta(days=1))

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def __contains__(self, day: date) -> bool:
        return self.start <= day < self.end

    def __iter__(self) -> Iterator[date]:
        for offset in range(self.days):
            yield self.start + timedelta(days=offset)

    def datetime_bounds(self) -> tuple[datetime, datetime]:
        """Naive UTC datetimes for querying timestamp columns"""
        return (
            datetime.combine(self.start, datetime.min.time()),
            datetime.combine(self.end, datetime.min.time())
        )


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def today() -> date:
        """Current UTC calendar day"""
        return datetime.utcnow().date()

    @staticmethod
    def utc_now() -> datetime:
        return datetime.utcnow()

    @staticmethod
    def day_of(moment: datetime) -> date:
        """Calendar day a stored (naive UTC) timestamp falls on"""
        return moment.date()

    @staticmethod
    def is_scheduled_on(
        frequency: str,
        target_date: date,
        weekdays: Optional[list[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> bool:
        """
        Check whether a habit's schedule falls on a given day.

        Args:
            frequency: "daily", "weekly", "custom", "monthly" or "once"
            target_date: Day to check
            weekdays: For "weekly"/"custom", weekday numbers (Monday=0)
            start_date: First scheduled day (anchor for weekly/monthly/once)
            end_date: Last scheduled day, if any

        Returns:
            True if the habit is due on target_date
        """
        if start_date and target_date < start_date:
            return False
        if end_date and target_date > end_date:
            return False

        if frequency == FREQUENCY_DAILY:
            return True

        if frequency in (FREQUENCY_WEEKLY, FREQUENCY_CUSTOM):
            if weekdays:
                return target_date.weekday() in weekdays
            # Weekly without explicit days repeats on the start weekday
            anchor = start_date or target_date
            return frequency == FREQUENCY_WEEKLY and target_date.weekday() == anchor.weekday()

        if frequency == FREQUENCY_MONTHLY:
            anchor_day = (start_date or target_date).day
            last_day = calendar.monthrange(target_date.year, target_date.month)[1]
            return target_date.day == min(anchor_day, last_day)

        if frequency == FREQUENCY_ONCE:
            return start_date is not None and target_date == start_date

        return False

    @staticmethod
    def parse_time(time_str: str) -> tuple[int, int]:
        """
        Parse time string into hour and minute.

        Args:
            time_str: Time string in "HH:MM" format

        Returns:
            Tuple of (hour, minute)

        Raises:
            ValueError: If time string is invalid
        """
        parts = time_str.split(":")
        hour = int(parts[0])
        minute = int(parts[1])
        return hour, minute

    @staticmethod
    def at_time(day: date, time_str: str) -> datetime:
        """Combine a day with an "HH:MM" time"""
        hour, minute = DateService.parse_time(time_str)
        return datetime.combine(day, datetime.min.time()).replace(hour=hour, minute=minute)
