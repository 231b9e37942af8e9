"""
Streak and statistics engine.
Pure functions over completion logs and mood entries: no database access,
so every rule here can be exercised with plain objects.
"""
from collections import Counter, OrderedDict
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence

from habitbloom.constants import (
    LOG_STATUS_COMPLETED, LOG_STATUS_MISSED, LOG_STATUS_PENDING,
    BUCKET_DAY, BUCKET_WEEK, WEEK_BUCKET_THRESHOLD_DAYS
)
from habitbloom.services.date_service import DateRange, DateService


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a person would (2.5 -> 3), unlike the banker's round()"""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return round_half_up(sum(values) / len(values), 1)


class StatsService:
    """Derivation rules for streaks, rates, buckets and mood aggregates"""

    # Streaks

    @staticmethod
    def next_streak(
        current_streak: int,
        last_completed_date: Optional[date],
        completed_on: date
    ) -> int:
        """
        Streak value after a new completion.

        Extends the streak only when completed_on is exactly the day after the
        last completion; any gap (or a first completion) starts over at 1.

        Args:
            current_streak: Habit's current streak
            last_completed_date: Day of the latest completion, None if never
            completed_on: Day of the new completion

        Returns:
            New streak value (>= 1)
        """
        if last_completed_date is None:
            return 1

        days_since_last = (completed_on - last_completed_date).days

        if days_since_last == 1:
            return (current_streak or 0) + 1
        if days_since_last == 0:
            # Same-day completions are rejected upstream as duplicates
            return max(current_streak or 0, 1)
        return 1

    @staticmethod
    def streak_after_completion(
        current_streak: int,
        last_completed_date: Optional[date],
        completed_on: date,
        completed_dates: Iterable[date]
    ) -> int:
        """
        Streak value after a completion that may have arrived out of order.

        A backfilled day earlier than the last completion cannot extend the
        streak forward, so the streak is recounted as the run of consecutive
        completed days ending at the last completion.

        Args:
            current_streak: Habit's current streak
            last_completed_date: Day of the latest completion, None if never
            completed_on: Day of the new completion
            completed_dates: All completed days of the habit, including completed_on

        Returns:
            New streak value
        """
        if last_completed_date is not None and completed_on < last_completed_date:
            return StatsService.streak_ending_at(completed_dates, last_completed_date)
        return StatsService.next_streak(current_streak, last_completed_date, completed_on)

    @staticmethod
    def streak_ending_at(completed_dates: Iterable[date], end: date) -> int:
        """Count consecutive completed days going back from end"""
        days = set(completed_dates)
        streak = 0
        cursor = end
        while cursor in days:
            streak += 1
            cursor -= timedelta(days=1)
        return streak

    @staticmethod
    def longest_run(completed_dates: Iterable[date]) -> int:
        """Longest run of consecutive completed days"""
        days = sorted(set(completed_dates))
        longest = 0
        run = 0
        previous = None
        for day in days:
            run = run + 1 if previous and (day - previous).days == 1 else 1
            longest = max(longest, run)
            previous = day
        return longest

    # Completion logs

    @staticmethod
    def authoritative_logs(logs: Iterable) -> List:
        """
        Keep one entry per (habit, day).

        A completed entry wins; otherwise the most recently created (highest
        id) entry is kept. Input order is preserved.
        """
        logs = list(logs)
        chosen = {}
        for log in logs:
            key = (log.habit_id, log.log_date)
            current = chosen.get(key)
            if current is None:
                chosen[key] = log
                continue
            current_done = current.status == LOG_STATUS_COMPLETED
            log_done = log.status == LOG_STATUS_COMPLETED
            if (log_done and not current_done) or (
                log_done == current_done and (log.id or 0) > (current.id or 0)
            ):
                chosen[key] = log

        kept = {id(log) for log in chosen.values()}
        return [log for log in logs if id(log) in kept]

    @staticmethod
    def completion_rate(completed: int, total: int) -> int:
        """Percent of logged entries that are completed; 0 when nothing is logged"""
        if total <= 0:
            return 0
        return int(round_half_up(completed / total * 100))

    @staticmethod
    def completion_summary(logs: Iterable) -> dict:
        """Counts per status and the completion rate"""
        resolved = StatsService.authoritative_logs(logs)
        counts = Counter(log.status for log in resolved)
        total = len(resolved)
        completed = counts.get(LOG_STATUS_COMPLETED, 0)
        return {
            "completed": completed,
            "missed": counts.get(LOG_STATUS_MISSED, 0),
            "pending": counts.get(LOG_STATUS_PENDING, 0),
            "total": total,
            "completion_rate": StatsService.completion_rate(completed, total)
        }

    @staticmethod
    def bucket_completions(
        logs: Iterable,
        date_range: DateRange,
        bucket: Optional[str] = None
    ) -> List[tuple[str, int]]:
        """
        Completed counts per day (or per 7-day bucket) across a window.

        The output always has one entry per bucket in the window, in date
        order, with empty buckets reported as 0.

        Args:
            logs: Completion log entries
            date_range: Window to partition
            bucket: "day" or "week"; defaults to "week" for windows longer
                than a month, "day" otherwise

        Returns:
            List of (label, completed_count), label being the bucket's first
            day in ISO format
        """
        if bucket is None:
            bucket = BUCKET_WEEK if date_range.days > WEEK_BUCKET_THRESHOLD_DAYS else BUCKET_DAY
        size = 7 if bucket == BUCKET_WEEK else 1

        counts = OrderedDict()
        for offset in range(0, date_range.days, size):
            counts[date_range.start + timedelta(days=offset)] = 0

        for log in StatsService.authoritative_logs(logs):
            if log.status != LOG_STATUS_COMPLETED or log.log_date not in date_range:
                continue
            offset = (log.log_date - date_range.start).days
            counts[date_range.start + timedelta(days=offset - offset % size)] += 1

        return [(day.isoformat(), count) for day, count in counts.items()]

    # Moods

    @staticmethod
    def mood_distribution(moods: Sequence) -> List[dict]:
        """
        Share of each mood label, most frequent first.

        Ties keep first-encountered order. Percentages are rounded to one
        decimal place.
        """
        if not moods:
            return []
        counts = Counter(mood.mood_label for mood in moods)
        first_seen = {}
        for index, mood in enumerate(moods):
            first_seen.setdefault(mood.mood_label, index)
        ordered = sorted(counts, key=lambda label: (-counts[label], first_seen[label]))
        total = len(moods)
        return [
            {
                "label": label,
                "count": counts[label],
                "percentage": round_half_up(counts[label] / total * 100, 1)
            }
            for label in ordered
        ]

    @staticmethod
    def summarize_moods(moods: Sequence) -> dict:
        """Averages, most common label and distribution over a set of moods"""
        if not moods:
            return {
                "avg_mood_level": 0.0,
                "avg_energy_level": 0.0,
                "avg_stress_level": 0.0,
                "total_logs": 0,
                "most_common_mood": None,
                "distribution": []
            }

        distribution = StatsService.mood_distribution(moods)
        return {
            "avg_mood_level": _mean([m.mood_level for m in moods]),
            "avg_energy_level": _mean([m.energy_level for m in moods if m.energy_level is not None]),
            "avg_stress_level": _mean([m.stress_level for m in moods if m.stress_level is not None]),
            "total_logs": len(moods),
            "most_common_mood": distribution[0]["label"],
            "distribution": distribution
        }

    @staticmethod
    def best_and_worst(moods: Sequence) -> tuple:
        """
        Entries with the highest and lowest mood level.

        Ties go to the most recently logged entry.

        Returns:
            Tuple of (best, worst), both None when there are no moods
        """
        if not moods:
            return None, None
        best = max(moods, key=lambda m: (m.mood_level, m.logged_at))
        worst = max(moods, key=lambda m: (-m.mood_level, m.logged_at))
        return best, worst

    @staticmethod
    def daily_mood_trends(moods: Sequence) -> List[dict]:
        """Per-day averages, in date order"""
        by_day = {}
        for mood in moods:
            by_day.setdefault(DateService.day_of(mood.logged_at), []).append(mood)

        return [
            {
                "date": day.isoformat(),
                "avg_mood_level": _mean([m.mood_level for m in day_moods]),
                "avg_energy_level": _mean([m.energy_level for m in day_moods if m.energy_level is not None]),
                "avg_stress_level": _mean([m.stress_level for m in day_moods if m.stress_level is not None]),
                "count": len(day_moods)
            }
            for day, day_moods in sorted(by_day.items())
        ]

    @staticmethod
    def mood_correlation(logs: Iterable, moods: Sequence) -> dict:
        """Average mood on days with at least one completion vs days without"""
        completion_days = {
            log.log_date for log in logs if log.status == LOG_STATUS_COMPLETED
        }
        with_completions = [m.mood_level for m in moods if DateService.day_of(m.logged_at) in completion_days]
        without_completions = [m.mood_level for m in moods if DateService.day_of(m.logged_at) not in completion_days]

        avg_with = _mean(with_completions)
        avg_without = _mean(without_completions)
        return {
            "with_completions": avg_with,
            "without_completions": avg_without,
            "difference": round_half_up(avg_with - avg_without, 1)
        }
