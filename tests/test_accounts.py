import pytest

from habit_tracker.accounts import AccountService
from habit_tracker.errors import AccountExistsError, AccountNotFoundError, InvalidCredentialsError
from habit_tracker.models import AuthSession
from habit_tracker.sessions import SessionManager


@pytest.fixture
def accounts(store):
    return AccountService(store)


def test_session_lifecycle(store):
    sessions = SessionManager(store)
    assert sessions.is_logged_in() is False

    session = sessions.create_session("42")
    assert session.is_logged_in is True
    assert sessions.get_session().user_id == "42"
    assert sessions.is_logged_in() is True

    sessions.clear_session()
    assert sessions.get_session() is None
    assert sessions.is_logged_in() is False


def test_logged_out_flag_counts_as_logged_out(store):
    store.save_session(AuthSession(user_id="42", login_time="2024-03-15T09:00:00", is_logged_in=False))
    assert SessionManager(store).is_logged_in() is False


def test_unreadable_session_counts_as_logged_out(broken_store):
    assert SessionManager(broken_store).is_logged_in() is False


def test_register_saves_user_and_logs_in(accounts, store):
    user = accounts.register("Ana", " Ana@Example.com ", "secret1")
    assert user.email == "ana@example.com"
    assert store.get_user() == user
    assert accounts.sessions.get_session().user_id == user.id
    assert accounts.current_user() == user


def test_register_same_email_twice(accounts):
    accounts.register("Ana", "ana@example.com", "secret1")
    with pytest.raises(AccountExistsError):
        accounts.register("Ana again", "ANA@example.com", "secret2")


def test_logout_keeps_account(accounts, store):
    user = accounts.register("Ana", "ana@example.com", "secret1")
    accounts.logout()
    assert store.get_user() == user
    assert accounts.current_user() is None

    session = accounts.login("ana@example.com", "secret1")
    assert session.user_id == user.id


def test_login_without_account(accounts):
    with pytest.raises(AccountNotFoundError):
        accounts.login("ana@example.com", "secret1")


def test_login_wrong_password(accounts):
    accounts.register("Ana", "ana@example.com", "secret1")
    accounts.logout()
    with pytest.raises(InvalidCredentialsError):
        accounts.login("ana@example.com", "wrong-password")
    assert accounts.sessions.is_logged_in() is False


def test_stale_session_has_no_current_user(accounts, store):
    accounts.register("Ana", "ana@example.com", "secret1")
    store.save_session(AuthSession(user_id="someone-else", login_time="2024-03-15T09:00:00"))
    assert accounts.current_user() is None
