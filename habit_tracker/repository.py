"""Habit CRUD over the record store.

Every mutation is a full read-modify-write of the habits slot. It is not
atomic: if two mutations overlap, the later write wins. Callers finish one
mutation before issuing the next.
"""

import logging
from typing import Optional

from habit_tracker.dates import DateLike, to_iso
from habit_tracker.models import Habit
from habit_tracker.store import RecordStore

logger = logging.getLogger(__name__)


class HabitRepository:
    def __init__(self, store: RecordStore):
        self.store = store

    def list_habits(self) -> list[Habit]:
        return self.store.get_habits()

    def get_habit(self, habit_id: str) -> Optional[Habit]:
        for habit in self.store.get_habits():
            if habit.id == habit_id:
                return habit
        return None

    def add_habit(self, habit: Habit) -> None:
        # No id collision check; ids come from validators.next_habit_id.
        habits, unreadable = self.store.load_habits()
        habits.append(habit)
        self.store.save_habits(habits, unreadable)
        logger.info("Added habit %s (%s)", habit.id, habit.name)

    def update_habit(self, habit: Habit) -> None:
        habits, unreadable = self.store.load_habits()
        if not any(h.id == habit.id for h in habits):
            logger.debug("update_habit: no habit %s, writing collection unchanged", habit.id)
        updated = [habit if h.id == habit.id else h for h in habits]
        self.store.save_habits(updated, unreadable)

    def delete_habit(self, habit_id: str) -> None:
        habits, unreadable = self.store.load_habits()
        remaining = [h for h in habits if h.id != habit_id]
        # unreadable items can still be deleted by their raw id
        kept = [item for item in unreadable if not (isinstance(item, dict) and str(item.get("id")) == habit_id)]
        self.store.save_habits(remaining, kept)
        if len(remaining) != len(habits) or len(kept) != len(unreadable):
            logger.info("Deleted habit %s", habit_id)

    def mark_complete(self, habit_id: str, day: DateLike) -> None:
        day = to_iso(day)
        habit = self.get_habit(habit_id)
        if habit is None:
            logger.debug("mark_complete: no habit %s", habit_id)
            return
        if day in habit.completed_dates:
            return
        habit.completed_dates.append(day)
        self.update_habit(habit)

    def mark_incomplete(self, habit_id: str, day: DateLike) -> None:
        day = to_iso(day)
        habit = self.get_habit(habit_id)
        if habit is None:
            logger.debug("mark_incomplete: no habit %s", habit_id)
            return
        habit.completed_dates = [d for d in habit.completed_dates if d != day]
        self.update_habit(habit)

    def toggle_completion(self, habit_id: str, day: DateLike) -> Optional[bool]:
        """Flip completion for ``day``. Returns the new state, or None if the habit is missing."""
        day = to_iso(day)
        habit = self.get_habit(habit_id)
        if habit is None:
            return None
        if day in habit.completed_dates:
            self.mark_incomplete(habit_id, day)
            return False
        self.mark_complete(habit_id, day)
        return True
