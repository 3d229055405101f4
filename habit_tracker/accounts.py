"""Single-profile registration and login.

The device holds at most one User record. Passwords are stored and compared
in plain text; hardening is out of scope for this service.
"""

import logging
import secrets
import time
from typing import Optional

from habit_tracker.errors import AccountExistsError, AccountNotFoundError, InvalidCredentialsError
from habit_tracker.models import AuthSession, User
from habit_tracker.sessions import SessionManager
from habit_tracker.store import RecordStore

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, store: RecordStore, sessions: Optional[SessionManager] = None):
        self.store = store
        self.sessions = sessions or SessionManager(store)

    def register(self, name: str, email: str, password: str) -> User:
        """Create the profile and log it in. Inputs are expected to be validated already."""
        email = email.strip().lower()
        existing = self.store.get_user()
        if existing and existing.email == email:
            raise AccountExistsError("An account with this email already exists. Please login instead.")

        user = User(
            id=str(int(time.time() * 1000)),
            name=name.strip(),
            email=email,
            password=password,
        )
        self.store.save_user(user)
        self.sessions.create_session(user.id)
        logger.info("Registered user %s", user.id)
        return user

    def login(self, email: str, password: str) -> AuthSession:
        user = self.store.get_user()
        if user is None:
            raise AccountNotFoundError("No account found. Please register first.")
        email_ok = user.email == email.strip().lower()
        password_ok = secrets.compare_digest(user.password.encode(), password.encode())
        if not (email_ok and password_ok):
            raise InvalidCredentialsError("Invalid email or password.")
        session = self.sessions.create_session(user.id)
        logger.info("User %s logged in", user.id)
        return session

    def logout(self) -> None:
        self.sessions.clear_session()
        logger.info("Logged out")

    def current_user(self) -> Optional[User]:
        """The profile the active session points at, or None (also when the session is stale)."""
        session = self.sessions.get_session()
        if not session or not session.is_logged_in:
            return None
        user = self.store.get_user()
        if user is None or user.id != session.user_id:
            return None
        return user
