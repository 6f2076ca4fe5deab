"""
Domain models for the temporal health-event engine.

Two families live here:
- Records: what the external record store persists (medications, meals, ...)
- Derived views: what the engine computes from records (scheduled doses,
  appointment partitions, nutrition totals, session state)

Records are validated with Pydantic but carry no behaviour; derived views are
frozen so callers can cache and compare them freely.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MealType(str, Enum):
    """Meal slots a user can log against."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class OccurrenceStatus(str, Enum):
    """Where a scheduled dose sits relative to now."""

    UPCOMING = "upcoming"
    DUE = "due"
    ELAPSED = "elapsed"


class AppointmentStatus(str, Enum):
    UPCOMING = "upcoming"
    PAST = "past"


class CourseStatus(str, Enum):
    """Whether a medication course covers a given day."""

    ACTIVE = "active"
    EXPIRED = "expired"
    NOT_YET_STARTED = "not_yet_started"


class SessionPhase(str, Enum):
    """Phases of a guided exercise session."""

    IDLE = "idle"  # no exercise selected
    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class DayPart(str, Enum):
    """Part of the day used to pick the dashboard greeting."""

    MORNING = "morning"  # before 12:00
    AFTERNOON = "afternoon"  # 12:00 to 17:59
    EVENING = "evening"


class SessionCommandKind(str, Enum):
    SELECT = "select"
    START = "start"
    TOGGLE = "toggle"
    PAUSE = "pause"
    TICK = "tick"
    RESET = "reset"


# ---------- records ----------


class Profile(BaseModel):
    """User profile. One per user, created at registration, never hard-deleted."""

    id: str
    username: str | None = None
    full_name: str | None = None
    gender: str | None = None
    birth_date: date | None = None
    height: float | None = None  # cm
    weight: float | None = None  # kg
    health_goals: list[str] = Field(default_factory=list)
    chronic_conditions: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class HealthMetric(BaseModel):
    """Daily health metrics. At most one per (user_id, date)."""

    id: str | None = None
    user_id: str
    date: date
    weight: float | None = None  # kg
    sleep_hours: float | None = None
    heart_rate: int | None = None  # bpm
    steps: int | None = None
    water_intake: float | None = None  # ml
    mood: str | None = None
    stress_level: int | None = Field(default=None, ge=1, le=10)
    notes: str | None = None
    created_at: datetime | None = None


class Meal(BaseModel):
    """A logged meal. Many per day are permitted."""

    id: str | None = None
    user_id: str
    date: date
    meal_type: MealType
    food_items: list[str] = Field(default_factory=list)
    calories: float | None = None
    protein: float | None = None  # grams
    carbs: float | None = None  # grams
    fat: float | None = None  # grams
    notes: str | None = None
    created_at: datetime | None = None


class Medication(BaseModel):
    """
    A medication course with recurring daily reminders.

    reminder_times holds the raw persisted values, normally "HH:MM" strings.
    Entries are neither validated nor deduplicated here: nulls, numbers and
    malformed strings are kept as stored and skipped at expansion time.
    `frequency` is informational only.
    """

    id: str
    user_id: str
    name: str
    dosage: str | None = None
    frequency: str | None = None
    start_date: date
    end_date: date | None = None  # open-ended when absent
    reminder_times: list[Any] = Field(default_factory=list)
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Appointment(BaseModel):
    """A medical appointment at a wall-clock date and time."""

    id: str
    user_id: str
    title: str
    doctor_name: str | None = None
    specialty: str | None = None
    location: str | None = None
    date: date
    time: time
    notes: str | None = None
    reminder_sent: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def scheduled_at(self) -> datetime:
        return datetime.combine(self.date, self.time)


class HealthArticle(BaseModel):
    """Read-only educational content."""

    id: str
    title: str
    content: str
    author: str | None = None
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None
    published_at: datetime | None = None
    is_featured: bool = False


class MentalExercise(BaseModel):
    """Read-only guided relaxation exercise. duration is in minutes."""

    id: str
    title: str
    description: str = ""
    category: str | None = None
    duration: int | None = None
    instructions: str | None = None
    audio_url: str | None = None
    image_url: str | None = None


class NutritionPlan(BaseModel):
    """Read-only nutrition plan template."""

    id: str
    title: str
    description: str = ""
    goal: str | None = None
    daily_calories: int | None = None
    protein_percentage: float | None = None
    carbs_percentage: float | None = None
    fat_percentage: float | None = None
    image_url: str | None = None


# ---------- derived views ----------


class Occurrence(BaseModel):
    """One concrete reminder of a medication on a specific date."""

    model_config = ConfigDict(frozen=True)

    scheduled_date: date
    time_of_day: time
    medication: Medication

    @property
    def scheduled_at(self) -> datetime:
        return datetime.combine(self.scheduled_date, self.time_of_day)


class ScheduledDose(BaseModel):
    """An occurrence with its status at the moment it was classified."""

    model_config = ConfigDict(frozen=True)

    occurrence: Occurrence
    status: OccurrenceStatus

    @property
    def medication(self) -> Medication:
        return self.occurrence.medication

    @property
    def formatted_time(self) -> str:
        return self.occurrence.time_of_day.strftime("%H:%M")


class AppointmentPartition(BaseModel):
    """
    Appointments split around now.

    upcoming is ascending by instant, past is descending (most recent first).
    """

    model_config = ConfigDict(frozen=True)

    upcoming: list[Appointment] = Field(default_factory=list)
    past: list[Appointment] = Field(default_factory=list)


class NutritionTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0


class GoalProgress(BaseModel):
    """Percent progress (0-100) towards the daily water and step goals."""

    model_config = ConfigDict(frozen=True)

    water_percent: float = Field(default=0.0, ge=0.0, le=100.0)
    steps_percent: float = Field(default=0.0, ge=0.0, le=100.0)


class SessionState(BaseModel):
    """Snapshot of a guided exercise session. elapsed and max_time are seconds."""

    model_config = ConfigDict(frozen=True)

    phase: SessionPhase = SessionPhase.IDLE
    exercise: MentalExercise | None = None
    elapsed: int = Field(default=0, ge=0)
    max_time: int = Field(default=0, ge=0)
    updated_at: datetime | None = None


class SessionCommand(BaseModel):
    """An intent from the UI. exercise is only read by SELECT."""

    model_config = ConfigDict(frozen=True)

    kind: SessionCommandKind
    exercise: MentalExercise | None = None

    @classmethod
    def select(cls, exercise: MentalExercise) -> "SessionCommand":
        return cls(kind=SessionCommandKind.SELECT, exercise=exercise)

    @classmethod
    def of(cls, kind: SessionCommandKind) -> "SessionCommand":
        return cls(kind=kind)


class SessionTransition(BaseModel):
    """Result of applying one command. just_completed is set on exactly one transition."""

    model_config = ConfigDict(frozen=True)

    state: SessionState
    just_completed: bool = False


class DailyOverview(BaseModel):
    """Everything the dashboard derives for one user on one day."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    day: date
    generated_at: datetime
    day_part: DayPart
    doses: list[ScheduledDose]
    appointments: AppointmentPartition
    nutrition: NutritionTotals
    goals: GoalProgress
    metric: HealthMetric | None = None
