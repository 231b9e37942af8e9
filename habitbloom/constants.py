"""
Domain constants for habits, completion logs, moods and achievements.
"""

# Habit frequencies
FREQUENCY_DAILY = "daily"
FREQUENCY_WEEKLY = "weekly"
FREQUENCY_CUSTOM = "custom"
FREQUENCY_MONTHLY = "monthly"
FREQUENCY_ONCE = "once"
FREQUENCIES = (
    FREQUENCY_DAILY, FREQUENCY_WEEKLY, FREQUENCY_CUSTOM, FREQUENCY_MONTHLY, FREQUENCY_ONCE
)

DIFFICULTIES = ("easy", "medium", "hard")

# Completion log statuses
LOG_STATUS_COMPLETED = "completed"
LOG_STATUS_MISSED = "missed"
LOG_STATUS_PENDING = "pending"
LOG_STATUSES = (LOG_STATUS_COMPLETED, LOG_STATUS_MISSED, LOG_STATUS_PENDING)

# Mood scale
MOOD_LEVEL_MIN = 1
MOOD_LEVEL_MAX = 10
DEFAULT_MOOD_LABEL = "Neutral"

MOOD_LABELS = (
    # Positive / energized
    "Happy", "Relaxed", "Motivated", "Focused", "Grateful", "Calm",
    "Excited", "Confident", "Proud", "Content", "Inspired", "Optimistic", "Loved",
    # Neutral / mixed
    "Neutral", "Reflective", "Bored", "Indifferent",
    # Negative / low energy
    "Tired", "Sad", "Anxious", "Angry", "Stressed", "Overwhelmed",
    "Lonely", "Frustrated", "Disappointed", "Guilty", "Worried",
)

# Achievement types
ACHIEVEMENT_STREAK = "streak"
ACHIEVEMENT_COMPLETION = "completion"
ACHIEVEMENT_HABIT_COUNT = "habit_count"
ACHIEVEMENT_MOOD = "mood"
ACHIEVEMENT_MISC = "misc"
ACHIEVEMENT_TYPES = (
    ACHIEVEMENT_STREAK, ACHIEVEMENT_COMPLETION, ACHIEVEMENT_HABIT_COUNT,
    ACHIEVEMENT_MOOD, ACHIEVEMENT_MISC
)

# Analytics periods (days)
PERIOD_DAYS = {"week": 7, "month": 30, "year": 365}

# Bucket sizes for charting
BUCKET_DAY = "day"
BUCKET_WEEK = "week"
WEEK_BUCKET_THRESHOLD_DAYS = 31  # Longer windows are bucketed per week
