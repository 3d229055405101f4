"""Derived statistics over a habit collection.

Everything here is pure: callers load habits from the repository and pass
them in together with the reference day. Only daily habits count towards
day totals, streak records and the calendar heatmap.
"""

import math
from datetime import date, timedelta
from typing import Optional

from habit_tracker.dates import DateLike, days_back, to_date, today_local
from habit_tracker.models import (
    CalendarDay,
    DayStats,
    Frequency,
    Habit,
    HabitProgress,
    ProgressReport,
)

DEFAULT_LOOKBACK = 365
LIST_LOOKBACK = 30  # habit list cards only look back a month
GRID_CELLS = 42  # 6 rows x 7 days
HABIT_FILTERS = ("all", "today", "completed")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return _round_half_up(part / total * 100)


def daily_habits(habits: list[Habit]) -> list[Habit]:
    return [h for h in habits if h.frequency == Frequency.daily]


def is_completed_on(habit: Habit, day: DateLike) -> bool:
    return to_date(day).isoformat() in habit.completed_dates


def current_streak(habit: Habit, today: DateLike, max_lookback: int = DEFAULT_LOOKBACK) -> int:
    """Consecutive completed days ending today or yesterday.

    Today not being done yet does not break the streak; any earlier gap does.
    """
    today = to_date(today)
    done = set(habit.completed_dates)
    streak = 0
    for offset in range(max_lookback):
        if days_back(today, offset).isoformat() in done:
            streak += 1
        elif offset == 0:
            continue
        else:
            break
    return streak


def day_stats(habits: list[Habit], day: DateLike) -> DayStats:
    day = to_date(day)
    daily = daily_habits(habits)
    completed = sum(1 for h in daily if is_completed_on(h, day))
    return DayStats(
        date=day.isoformat(),
        completed=completed,
        total=len(daily),
        percentage=percentage(completed, len(daily)),
    )


def today_stats(habits: list[Habit], today: DateLike) -> DayStats:
    return day_stats(habits, today)


def weekly_progress(habits: list[Habit], today: DateLike) -> list[DayStats]:
    """Seven entries from today-6 through today, oldest first."""
    today = to_date(today)
    return [day_stats(habits, days_back(today, offset)) for offset in range(6, -1, -1)]


def weekly_average(progress: list[DayStats]) -> int:
    if not progress:
        return 0
    return _round_half_up(sum(d.percentage for d in progress) / len(progress))


def longest_streak(habits: list[Habit], today: DateLike) -> int:
    return max((current_streak(h, today, DEFAULT_LOOKBACK) for h in daily_habits(habits)), default=0)


def completion_rate(habit: Habit, today: DateLike) -> int:
    days_since_created = (to_date(today) - to_date(habit.created_at)).days
    if days_since_created <= 0:
        return 0
    return _round_half_up(len(habit.completed_dates) / days_since_created * 100)


def habit_progress(habit: Habit, today: DateLike) -> HabitProgress:
    return HabitProgress(
        habit_id=habit.id,
        name=habit.name,
        frequency=habit.frequency,
        current_streak=current_streak(habit, today),
        total_completed=len(habit.completed_dates),
        completion_rate=completion_rate(habit, today),
    )


def progress_report(habits: list[Habit], today: DateLike) -> ProgressReport:
    week = weekly_progress(habits, today)
    return ProgressReport(
        today=today_stats(habits, today),
        weekly_progress=week,
        weekly_average=weekly_average(week),
        longest_streak=longest_streak(habits, today),
        total_habits=len(habits),
        habits=[habit_progress(h, today) for h in habits],
    )


# --- Calendar ---


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def calendar_grid(habits: list[Habit], year: int, month: int, today: Optional[DateLike] = None) -> list[CalendarDay]:
    """42 cells for a Sunday-first month view, padded with the neighbouring months."""
    today = to_date(today) if today is not None else today_local()
    daily = daily_habits(habits)
    first = date(year, month, 1)
    leading = (first.weekday() + 1) % 7  # 0=Sunday .. 6=Saturday
    start = first - timedelta(days=leading)

    cells = []
    for i in range(GRID_CELLS):
        day = start + timedelta(days=i)
        stats = day_stats(daily, day)
        cells.append(CalendarDay(
            date=stats.date,
            day_of_month=day.day,
            is_current_month=(day.year == year and day.month == month),
            is_today=(day == today),
            completed_count=stats.completed,
            total_habits=stats.total,
            percentage=stats.percentage,
        ))
    return cells


def habits_on(habits: list[Habit], day: DateLike) -> list[tuple[Habit, bool]]:
    """Daily habits with their completion state on ``day`` (calendar day details)."""
    return [(h, is_completed_on(h, day)) for h in daily_habits(habits)]


def filter_habits(habits: list[Habit], kind: str, today: DateLike) -> list[Habit]:
    if kind == "all":
        return list(habits)
    if kind == "today":
        return daily_habits(habits)
    if kind == "completed":
        return [h for h in habits if is_completed_on(h, today)]
    raise ValueError(f"Unknown habit filter {kind!r}, expected one of {', '.join(HABIT_FILTERS)}")
