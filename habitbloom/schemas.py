from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, ValidationError, model_validator
from dataclasses import dataclass
from datetime import datetime, date, timezone
from typing import Annotated, Generic, List, Literal, Optional, Type, TypeVar, Union

from habitbloom.constants import MOOD_LABELS, DEFAULT_MOOD_LABEL
from habitbloom.exceptions import ValidationException

TIME_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

Frequency = Literal["daily", "weekly", "custom", "monthly", "once"]
Difficulty = Literal["easy", "medium", "hard"]
LogStatus = Literal["completed", "missed", "pending"]
AchievementType = Literal["streak", "completion", "habit_count", "mood", "misc"]


def _to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _to_day(value):
    # Datetimes are reduced to their UTC calendar day
    if isinstance(value, datetime):
        return _to_utc_naive(value).date()
    return value


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _weekdays(value: List[int]) -> List[int]:
    if any(d < 0 or d > 6 for d in value):
        raise ValueError("custom days must be weekday numbers 0-6")
    return sorted(set(value))


def _reject_null(value):
    # Omitted fields keep their value; an explicit None would clear a required column
    if value is None:
        raise ValueError("must not be null")
    return value


def _known_mood_label(value: str) -> str:
    if value not in MOOD_LABELS:
        raise ValueError(f"unknown mood label '{value}'")
    return value


Title = Annotated[str, Field(min_length=1, max_length=100), AfterValidator(_not_blank)]
Weekdays = Annotated[List[int], AfterValidator(_weekdays)]
Day = Annotated[date, BeforeValidator(_to_day)]
UtcDateTime = Annotated[datetime, AfterValidator(_to_utc_naive)]
MoodLabel = Annotated[str, AfterValidator(_known_mood_label)]

# For update fields: omitted keeps the stored value, None is rejected
NotNull = BeforeValidator(_reject_null)


# Habit schemas
class HabitBase(BaseModel):
    title: Title
    description: str = Field(default="", max_length=500)
    category: str = Field(default="general", min_length=1, max_length=50)

    # Scheduling
    frequency: Frequency = "daily"
    custom_days: Optional[Weekdays] = None  # Monday=0
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    start_date: Optional[Day] = None
    end_date: Optional[Day] = None

    goal_per_day: int = Field(default=1, ge=1, le=100)
    in_calendar: bool = False

    color_tag: str = Field(default="#A78BFA", pattern=COLOR_PATTERN)
    icon: str = Field(default="✨", max_length=10)
    difficulty: Difficulty = "medium"

    @model_validator(mode="after")
    def check_schedule(self):
        if self.frequency == "custom" and not self.custom_days:
            raise ValueError("custom frequency requires at least one custom day")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class HabitCreate(HabitBase):
    pass


class HabitUpdate(BaseModel):
    title: Optional[Title] = None
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    frequency: Optional[Frequency] = None
    custom_days: Optional[Weekdays] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    start_date: Optional[Day] = None
    end_date: Optional[Day] = None
    goal_per_day: Optional[int] = Field(None, ge=1, le=100)
    in_calendar: Optional[bool] = None
    color_tag: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=10)
    difficulty: Optional[Difficulty] = None


# Completion log schemas
class HabitLogCreate(BaseModel):
    habit_id: int = Field(..., gt=0)
    log_date: Day
    status: LogStatus = "completed"
    value: int = Field(default=1, ge=0)
    note: str = Field(default="", max_length=500)
    mood: str = Field(default="", max_length=50)
    auto_generated: bool = False


class HabitLogUpdate(BaseModel):
    status: Annotated[Optional[LogStatus], NotNull] = None
    value: Annotated[Optional[int], NotNull] = Field(None, ge=0)
    note: Annotated[Optional[str], NotNull] = Field(None, max_length=500)
    mood: Annotated[Optional[str], NotNull] = Field(None, max_length=50)


# Mood schemas
class MoodCreate(BaseModel):
    mood_level: int = Field(..., ge=1, le=10)
    mood_label: MoodLabel = DEFAULT_MOOD_LABEL
    note: str = Field(default="", max_length=1000)
    emoji: str = Field(default="", max_length=10)
    energy_level: Optional[int] = Field(None, ge=1, le=10)
    stress_level: Optional[int] = Field(None, ge=1, le=10)
    logged_at: Optional[UtcDateTime] = None


class MoodUpdate(BaseModel):
    mood_level: Annotated[Optional[int], NotNull] = Field(None, ge=1, le=10)
    mood_label: Annotated[Optional[MoodLabel], NotNull] = None
    note: Annotated[Optional[str], NotNull] = Field(None, max_length=1000)
    emoji: Annotated[Optional[str], NotNull] = Field(None, max_length=10)
    energy_level: Optional[int] = Field(None, ge=1, le=10)  # None clears it
    stress_level: Optional[int] = Field(None, ge=1, le=10)
    logged_at: Annotated[Optional[UtcDateTime], NotNull] = None


# Achievement schemas
class AchievementCreate(BaseModel):
    key: Annotated[str, Field(min_length=2, max_length=50), AfterValidator(str.upper)]
    title: Title
    description: str = Field(default="", max_length=500)
    icon: str = Field(default="🏆", max_length=10)
    points: int = Field(default=10, ge=0)
    type: AchievementType = "misc"
    linked_habit_id: Optional[int] = Field(None, gt=0)
    achieved_at: Optional[UtcDateTime] = None


# Boundary validation result
T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ValidationException


Result = Union[Ok[T], Err]


def validate(schema: Type[M], data) -> Result:
    """
    Validate raw input against a schema.

    Args:
        schema: pydantic model class
        data: dict of raw fields, or an already-built instance of schema

    Returns:
        Ok(model) on success, Err(ValidationException) naming the first bad field
    """
    if isinstance(data, schema):
        return Ok(data)
    try:
        return Ok(schema.model_validate(data))
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or schema.__name__
        return Err(ValidationException(field, first["msg"]))


def validated(schema: Type[M], data) -> M:
    """Validate and unwrap, raising the ValidationException on Err"""
    result = validate(schema, data)
    if isinstance(result, Err):
        raise result.error
    return result.value
