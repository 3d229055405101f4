import json

import pytest

from habit_tracker.errors import StoreIOError
from habit_tracker.repository import HabitRepository
from habit_tracker.store import HABITS_KEY, RecordStore


def test_list_empty(repo):
    assert repo.list_habits() == []


def test_add_then_list_keeps_insertion_order(repo, make_habit):
    first, second = make_habit(name="Stretch"), make_habit(name="Journal")
    repo.add_habit(first)
    repo.add_habit(second)
    assert repo.list_habits() == [first, second]


def test_delete_removes_only_that_habit(repo, make_habit):
    keep, drop = make_habit(), make_habit()
    repo.add_habit(keep)
    repo.add_habit(drop)

    repo.delete_habit(drop.id)
    assert repo.list_habits() == [keep]

    repo.delete_habit("missing")
    assert repo.list_habits() == [keep]


def test_update_replaces_matching_habit(repo, make_habit):
    habit = make_habit()
    repo.add_habit(habit)
    habit.name = "Read two chapters"
    repo.update_habit(habit)
    assert repo.get_habit(habit.id).name == "Read two chapters"


def test_update_of_missing_habit_is_silent(repo, make_habit):
    habit = make_habit()
    repo.add_habit(habit)
    repo.update_habit(make_habit(id="nope", name="Ghost"))
    assert repo.list_habits() == [habit]


def test_mark_complete_is_idempotent(repo, make_habit):
    habit = make_habit()
    repo.add_habit(habit)

    repo.mark_complete(habit.id, "2024-03-15")
    repo.mark_complete(habit.id, "2024-03-15")
    assert repo.get_habit(habit.id).completed_dates == ["2024-03-15"]


def test_mark_incomplete_after_complete(repo, make_habit, today):
    habit = make_habit(completed_dates=["2024-03-14"])
    repo.add_habit(habit)

    repo.mark_complete(habit.id, today)
    repo.mark_incomplete(habit.id, today)
    repo.mark_incomplete(habit.id, today)
    assert repo.get_habit(habit.id).completed_dates == ["2024-03-14"]


def test_marking_missing_habit_changes_nothing(repo, make_habit):
    habit = make_habit()
    repo.add_habit(habit)
    repo.mark_complete("missing", "2024-03-15")
    repo.mark_incomplete("missing", "2024-03-15")
    assert repo.list_habits() == [habit]


def test_toggle_completion(repo, make_habit, today):
    habit = make_habit()
    repo.add_habit(habit)

    assert repo.toggle_completion(habit.id, today) is True
    assert repo.get_habit(habit.id).completed_dates == ["2024-03-15"]
    assert repo.toggle_completion(habit.id, today) is False
    assert repo.get_habit(habit.id).completed_dates == []
    assert repo.toggle_completion("missing", today) is None


def test_mutations_keep_unreadable_habits(repo, backend, make_habit):
    good = {"id": "1", "name": "Walk", "frequency": "daily", "createdAt": "2024-03-01T08:00:00", "completedDates": []}
    bad = {"id": "2", "name": "Swim", "frequency": "monthly", "createdAt": "2024-03-01T08:00:00"}
    backend.items[HABITS_KEY] = json.dumps([good, bad])

    new = make_habit()
    repo.add_habit(new)
    repo.mark_complete("1", "2024-03-15")
    repo.delete_habit(new.id)

    stored = json.loads(backend.items[HABITS_KEY])
    assert [item["id"] for item in stored] == ["1", "2"]
    assert stored[0]["completedDates"] == ["2024-03-15"]
    assert stored[1] == bad


def test_delete_unreadable_habit_by_id(repo, backend):
    backend.items[HABITS_KEY] = json.dumps([{"id": "2", "name": "Swim", "frequency": "monthly"}])
    repo.delete_habit("2")
    assert json.loads(backend.items[HABITS_KEY]) == []


def test_store_failure_propagates(broken_store, make_habit):
    repo = HabitRepository(broken_store)
    with pytest.raises(StoreIOError):
        repo.add_habit(make_habit())


def test_failed_write_leaves_prior_state(backend, make_habit):
    habit = make_habit()
    repo = HabitRepository(RecordStore(backend))
    repo.add_habit(habit)

    def fail(key, value):
        raise StoreIOError("disk full")

    backend.set_item = fail
    with pytest.raises(StoreIOError):
        repo.mark_complete(habit.id, "2024-03-15")
    assert repo.get_habit(habit.id).completed_dates == []
