import os

# In-memory database for the module-level engine in habit_tracker.main
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date  # noqa: E402

import pytest  # noqa: E402

from habit_tracker.errors import StoreIOError  # noqa: E402
from habit_tracker.models import Frequency, Habit  # noqa: E402
from habit_tracker.repository import HabitRepository  # noqa: E402
from habit_tracker.store import MemoryStorage, RecordStore  # noqa: E402

TODAY = date(2024, 3, 15)


class BrokenStorage:
    """Backend whose every operation fails, like a full or unreadable disk."""

    def get_item(self, key):
        raise StoreIOError(f"cannot read {key}")

    def set_item(self, key, value):
        raise StoreIOError(f"cannot write {key}")

    def remove_item(self, key):
        raise StoreIOError(f"cannot remove {key}")


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def backend():
    return MemoryStorage()


@pytest.fixture
def store(backend):
    return RecordStore(backend)


@pytest.fixture
def broken_store():
    return RecordStore(BrokenStorage())


@pytest.fixture
def repo(store):
    return HabitRepository(store)


@pytest.fixture
def make_habit():
    counter = iter(range(1, 1000))

    def _make(name="Read a book", frequency=Frequency.daily, created_at="2024-03-01T08:00:00", completed_dates=None, id=None):
        return Habit(
            id=id or str(1700000000000 + next(counter)),
            name=name,
            frequency=frequency,
            created_at=created_at,
            completed_dates=list(completed_dates or []),
        )

    return _make
