from enum import Enum

from sqlmodel import Field, SQLModel


class Frequency(str, Enum):
    daily = "daily"
    weekly = "weekly"


class Slot(SQLModel, table=True):
    """One persisted record: an opaque key holding a JSON document."""

    key: str = Field(primary_key=True)
    value: str


class User(SQLModel):
    id: str
    name: str
    email: str  # stored lowercased
    password: str  # plain text, see DESIGN.md


class Habit(SQLModel):
    id: str
    name: str
    frequency: Frequency = Frequency.daily
    created_at: str  # ISO datetime
    completed_dates: list[str] = Field(default_factory=list)  # YYYY-MM-DD, no duplicates


class AuthSession(SQLModel):
    user_id: str
    login_time: str  # ISO datetime
    is_logged_in: bool = True


# --- Analytics results ---


class DayStats(SQLModel):
    date: str
    completed: int = 0
    total: int = 0
    percentage: int = 0


class CalendarDay(SQLModel):
    date: str
    day_of_month: int
    is_current_month: bool
    is_today: bool
    completed_count: int = 0
    total_habits: int = 0
    percentage: int = 0


class HabitProgress(SQLModel):
    habit_id: str
    name: str
    frequency: Frequency
    current_streak: int = 0
    total_completed: int = 0
    completion_rate: int = 0


class ProgressReport(SQLModel):
    today: DayStats
    weekly_progress: list[DayStats] = Field(default_factory=list)
    weekly_average: int = 0
    longest_streak: int = 0
    total_habits: int = 0
    habits: list[HabitProgress] = Field(default_factory=list)
