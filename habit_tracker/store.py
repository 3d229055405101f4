"""Record store: JSON documents in named slots over a pluggable backend."""

import json
import logging
from typing import Any, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel

from habit_tracker.errors import StoreIOError
from habit_tracker.models import AuthSession, Frequency, Habit, Slot, User

logger = logging.getLogger(__name__)

USER_KEY = "@habit_tracker_user"
HABITS_KEY = "@habit_tracker_habits"
SESSION_KEY = "@habit_tracker_session"


# --- Backends ---


class StorageBackend(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, items: Optional[dict[str, str]] = None):
        self.items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class SQLiteStorage:
    """Slots kept as rows of the ``slot`` table."""

    def __init__(self, engine):
        self.engine = engine
        SQLModel.metadata.create_all(engine)

    def get_item(self, key: str) -> Optional[str]:
        try:
            with Session(self.engine) as session:
                slot = session.get(Slot, key)
                return slot.value if slot else None
        except SQLAlchemyError as e:
            raise StoreIOError(f"Could not read {key}") from e

    def set_item(self, key: str, value: str) -> None:
        try:
            with Session(self.engine) as session:
                slot = session.get(Slot, key)
                if slot:
                    slot.value = value
                else:
                    slot = Slot(key=key, value=value)
                session.add(slot)
                session.commit()
        except SQLAlchemyError as e:
            raise StoreIOError(f"Could not write {key}") from e

    def remove_item(self, key: str) -> None:
        try:
            with Session(self.engine) as session:
                slot = session.get(Slot, key)
                if slot:
                    session.delete(slot)
                    session.commit()
        except SQLAlchemyError as e:
            raise StoreIOError(f"Could not remove {key}") from e


# --- Record (de)serialization ---


def _dedupe(dates: list) -> list[str]:
    seen: list[str] = []
    for d in map(str, dates):
        if d not in seen:
            seen.append(d)
    return seen


def user_to_record(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "password": user.password,
    }


def user_from_record(data: dict) -> User:
    return User(
        id=str(data["id"]),
        name=data["name"],
        email=data["email"],
        password=data["password"],
    )


def habit_to_record(habit: Habit) -> dict:
    return {
        "id": habit.id,
        "name": habit.name,
        "frequency": habit.frequency.value,
        "createdAt": habit.created_at,
        "completedDates": list(habit.completed_dates),
    }


def habit_from_record(data: dict) -> Habit:
    return Habit(
        id=str(data["id"]),
        name=data["name"],
        frequency=Frequency(data["frequency"]),
        created_at=data["createdAt"],
        completed_dates=_dedupe(data.get("completedDates") or []),
    )


def session_to_record(session: AuthSession) -> dict:
    return {
        "userId": session.user_id,
        "loginTime": session.login_time,
        "isLoggedIn": session.is_logged_in,
    }


def session_from_record(data: dict) -> AuthSession:
    return AuthSession(
        user_id=str(data["userId"]),
        login_time=data["loginTime"],
        is_logged_in=bool(data.get("isLoggedIn", False)),
    )


# --- Store ---


class RecordStore:
    """Reads never raise: a failed or unparseable read yields the default.
    Writes and removals raise StoreIOError. Nothing is cached.
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    def get(self, key: str, default: Any = None) -> Any:
        try:
            raw = self.backend.get_item(key)
        except StoreIOError as e:
            logger.error("Error reading %s: %s", key, e)
            return default
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Corrupt record in %s: %s", key, e)
            return default

    def set(self, key: str, value: Any) -> None:
        try:
            self.backend.set_item(key, json.dumps(value))
        except StoreIOError as e:
            logger.error("Error saving %s: %s", key, e)
            raise

    def remove(self, key: str) -> None:
        try:
            self.backend.remove_item(key)
        except StoreIOError as e:
            logger.error("Error removing %s: %s", key, e)
            raise

    # User

    def get_user(self) -> Optional[User]:
        data = self.get(USER_KEY)
        if data is None:
            return None
        try:
            return user_from_record(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Error getting user: %s", e)
            return None

    def save_user(self, user: User) -> None:
        self.set(USER_KEY, user_to_record(user))

    def remove_user(self) -> None:
        self.remove(USER_KEY)

    # Habits

    def load_habits(self) -> tuple[list[Habit], list]:
        """Parse the habits slot item by item.

        Returns the readable habits and the raw items that failed to parse.
        Writers pass the raw items back to save_habits so they are never dropped.
        """
        data = self.get(HABITS_KEY)
        if data is None:
            return [], []
        if not isinstance(data, list):
            logger.error("Error getting habits: expected a list, got %s", type(data).__name__)
            return [], []
        habits, unreadable = [], []
        for item in data:
            try:
                habits.append(habit_from_record(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.error("Skipping unreadable habit %r: %s", item, e)
                unreadable.append(item)
        return habits, unreadable

    def get_habits(self) -> list[Habit]:
        return self.load_habits()[0]

    def save_habits(self, habits: list[Habit], unreadable: Optional[list] = None) -> None:
        self.set(HABITS_KEY, [habit_to_record(h) for h in habits] + list(unreadable or []))

    # Session

    def get_session(self) -> Optional[AuthSession]:
        data = self.get(SESSION_KEY)
        if data is None:
            return None
        try:
            return session_from_record(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Error getting session: %s", e)
            return None

    def save_session(self, session: AuthSession) -> None:
        self.set(SESSION_KEY, session_to_record(session))

    def remove_session(self) -> None:
        self.remove(SESSION_KEY)
