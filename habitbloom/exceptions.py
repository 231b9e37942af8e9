"""
Custom exceptions for the habit tracking core.
Provides specific exception types so callers can tell validation, ownership,
conflict and storage failures apart.
"""
from datetime import date


class HabitBloomException(Exception):
    """Base exception for the habit tracking core"""
    pass


class ValidationException(HabitBloomException):
    """Raised when input data validation fails (before any write)"""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Validation error for {field}: {message}")


class NotFoundException(HabitBloomException):
    """Raised when a record does not exist or belongs to another user"""
    entity = "Record"

    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"{self.entity} with ID {record_id} not found")


class HabitNotFoundException(NotFoundException):
    """Raised when a habit is not found"""
    entity = "Habit"


class HabitLogNotFoundException(NotFoundException):
    """Raised when a completion log entry is not found"""
    entity = "Habit log"


class MoodNotFoundException(NotFoundException):
    """Raised when a mood entry is not found"""
    entity = "Mood"


class AchievementNotFoundException(NotFoundException):
    """Raised when an achievement is not found"""
    entity = "Achievement"


class ConflictException(HabitBloomException):
    """Raised when a write collides with existing state"""
    pass


class AlreadyCompletedException(ConflictException):
    """Raised when a habit is checked in twice for the same day"""
    def __init__(self, habit_id: int, log_date: date):
        self.habit_id = habit_id
        self.log_date = log_date
        super().__init__(f"Habit {habit_id} already completed on {log_date.isoformat()}")


class DatabaseException(HabitBloomException):
    """Raised when database operations fail"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Database {operation} failed: {details}")
