import logging
from typing import Optional

from habit_tracker.dates import now_iso
from habit_tracker.models import AuthSession
from habit_tracker.store import RecordStore

logger = logging.getLogger(__name__)


class SessionManager:
    """Login state, kept apart from the user profile. Logging out never deletes the account."""

    def __init__(self, store: RecordStore):
        self.store = store

    def create_session(self, user_id: str) -> AuthSession:
        session = AuthSession(user_id=user_id, login_time=now_iso(), is_logged_in=True)
        self.store.save_session(session)
        return session

    def get_session(self) -> Optional[AuthSession]:
        return self.store.get_session()

    def is_logged_in(self) -> bool:
        session = self.store.get_session()
        return bool(session and session.is_logged_in)

    def clear_session(self) -> None:
        self.store.remove_session()
