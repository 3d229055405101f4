"""Habit tracker MCP service: accounts, habits and progress statistics."""

import logging
import os
from typing import Optional

from jose import JWTError, jwt
from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings
from sqlmodel import create_engine
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from habit_tracker import analytics
from habit_tracker.accounts import AccountService
from habit_tracker.dates import now_iso, today_local
from habit_tracker.errors import AccountError, StoreIOError, ValidationError
from habit_tracker.models import Habit
from habit_tracker.repository import HabitRepository
from habit_tracker.sessions import SessionManager
from habit_tracker.store import RecordStore, SQLiteStorage
from habit_tracker.validators import (
    next_habit_id,
    parse_date,
    parse_frequency,
    validate_habit_name,
    validate_login,
    validate_registration,
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# --- Configuration ---

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///habits.db")
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost").split(",") if h.strip()]

# --- Record store ---

engine = create_engine(DATABASE_URL, echo=False)
store = RecordStore(SQLiteStorage(engine))

# --- MCP server ---

_security = TransportSecuritySettings(allowed_hosts=ALLOWED_HOSTS)
mcp = FastMCP("mcp-habit-tracker", stateless_http=True, transport_security=_security)


# --- JWT auth middleware (raw ASGI, safe for SSE streaming) ---


class JWTAuthMiddleware:
    def __init__(self, app: ASGIApp, secret: str, algorithm: str = "HS256"):
        self.app = app
        self.secret = secret
        self.algorithm = algorithm

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            response = Response(status_code=401)
            await response(scope, receive, send)
            return

        token = auth_header[7:]
        try:
            jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            response = Response(status_code=401)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)


# --- Helper functions ---


def _habits() -> HabitRepository:
    return HabitRepository(store)


def _accounts() -> AccountService:
    return AccountService(store)


def _login_required() -> Optional[dict]:
    if not SessionManager(store).is_logged_in():
        return {"error": "Not logged in"}
    return None


def _resolve_day(day: Optional[str]) -> str:
    return parse_date(day) if day else today_local().isoformat()


def _habit_to_dict(habit: Habit, today: str) -> dict:
    return {
        "id": habit.id,
        "name": habit.name,
        "frequency": habit.frequency.value,
        "created_at": habit.created_at,
        "completed_dates": list(habit.completed_dates),
        "completed_today": analytics.is_completed_on(habit, today),
        "streak": analytics.current_streak(habit, today, analytics.LIST_LOOKBACK),
    }


def _invalid(e: ValidationError) -> dict:
    return {"error": str(e), "fields": e.errors}


# --- Account tools ---


@mcp.tool()
def register(name: str, email: str, password: str, confirm_password: str) -> dict:
    """Create the account on this device and log it in."""
    try:
        name, email = validate_registration(name, email, password, confirm_password)
    except ValidationError as e:
        return _invalid(e)
    try:
        user = _accounts().register(name, email, password)
    except AccountError as e:
        return {"error": str(e)}
    except StoreIOError as e:
        logger.error("Error registering: %s", e)
        return {"error": "Failed to create account. Please try again."}
    return {"id": user.id, "name": user.name, "email": user.email, "status": "registered"}


@mcp.tool()
def login(email: str, password: str) -> dict:
    """Log in with the registered email and password."""
    try:
        email = validate_login(email, password)
    except ValidationError as e:
        return _invalid(e)
    try:
        session = _accounts().login(email, password)
    except AccountError as e:
        return {"error": str(e)}
    except StoreIOError as e:
        logger.error("Error logging in: %s", e)
        return {"error": "Failed to login. Please try again."}
    return {"user_id": session.user_id, "login_time": session.login_time, "status": "logged_in"}


@mcp.tool()
def logout() -> dict:
    """End the session. The account and its habits are kept."""
    try:
        _accounts().logout()
    except StoreIOError as e:
        logger.error("Error logging out: %s", e)
        return {"error": "Failed to logout"}
    return {"status": "logged_out"}


@mcp.tool()
def get_profile() -> dict:
    """The logged-in user's profile."""
    user = _accounts().current_user()
    if user is None:
        return {"error": "Not logged in"}
    session = SessionManager(store).get_session()
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "login_time": session.login_time if session else None,
    }


@mcp.tool()
def session_status() -> dict:
    """Whether a user is logged in on this device."""
    session = SessionManager(store).get_session()
    return {
        "logged_in": bool(session and session.is_logged_in),
        "user_id": session.user_id if session else None,
        "login_time": session.login_time if session else None,
    }


# --- Habit tools ---


@mcp.tool()
def list_habits(filter: str = "all") -> dict:
    """List habits. filter: all | today (daily habits) | completed (done today)."""
    err = _login_required()
    if err:
        return err
    today = today_local().isoformat()
    try:
        habits = analytics.filter_habits(_habits().list_habits(), filter, today)
    except ValueError as e:
        return {"error": str(e)}
    return {"filter": filter, "habits": [_habit_to_dict(h, today) for h in habits]}


@mcp.tool()
def add_habit(name: str, frequency: str = "daily") -> dict:
    """Create a new habit."""
    err = _login_required()
    if err:
        return err
    try:
        name = validate_habit_name(name)
        freq = parse_frequency(frequency)
    except ValidationError as e:
        return _invalid(e)

    repo = _habits()
    habit = Habit(
        id=next_habit_id(h.id for h in repo.list_habits()),
        name=name,
        frequency=freq,
        created_at=now_iso(),
        completed_dates=[],
    )
    try:
        repo.add_habit(habit)
    except StoreIOError as e:
        logger.error("Error adding habit: %s", e)
        return {"error": "Failed to create habit. Please try again."}
    return {"id": habit.id, "name": habit.name, "frequency": habit.frequency.value, "status": "created"}


@mcp.tool()
def rename_habit(habit_id: str, name: str) -> dict:
    """Change a habit's name."""
    err = _login_required()
    if err:
        return err
    try:
        name = validate_habit_name(name)
    except ValidationError as e:
        return _invalid(e)
    return _update(habit_id, name=name)


@mcp.tool()
def set_habit_frequency(habit_id: str, frequency: str) -> dict:
    """Switch a habit between daily and weekly."""
    err = _login_required()
    if err:
        return err
    try:
        freq = parse_frequency(frequency)
    except ValidationError as e:
        return _invalid(e)
    return _update(habit_id, frequency=freq)


def _update(habit_id: str, **changes) -> dict:
    repo = _habits()
    habit = repo.get_habit(habit_id)
    if not habit:
        return {"error": f"Habit {habit_id} not found"}
    for field, value in changes.items():
        setattr(habit, field, value)
    try:
        repo.update_habit(habit)
    except StoreIOError as e:
        logger.error("Error updating habit %s: %s", habit_id, e)
        return {"error": "Failed to update habit"}
    return {"id": habit.id, "name": habit.name, "frequency": habit.frequency.value, "status": "updated"}


@mcp.tool()
def delete_habit(habit_id: str) -> dict:
    """Delete a habit and its completion history."""
    err = _login_required()
    if err:
        return err
    repo = _habits()
    habit = repo.get_habit(habit_id)
    if not habit:
        return {"error": f"Habit {habit_id} not found"}
    try:
        repo.delete_habit(habit_id)
    except StoreIOError as e:
        logger.error("Error deleting habit %s: %s", habit_id, e)
        return {"error": "Failed to delete habit"}
    return {"id": habit.id, "name": habit.name, "status": "deleted"}


@mcp.tool()
def toggle_habit(habit_id: str, date: Optional[str] = None) -> dict:
    """Flip a habit's completion for a day (YYYY-MM-DD, defaults to today)."""
    return _set_completion(habit_id, date, None)


@mcp.tool()
def mark_complete(habit_id: str, date: Optional[str] = None) -> dict:
    """Mark a habit done for a day (YYYY-MM-DD, defaults to today)."""
    return _set_completion(habit_id, date, True)


@mcp.tool()
def mark_incomplete(habit_id: str, date: Optional[str] = None) -> dict:
    """Clear a habit's completion for a day (YYYY-MM-DD, defaults to today)."""
    return _set_completion(habit_id, date, False)


def _set_completion(habit_id: str, date: Optional[str], completed: Optional[bool]) -> dict:
    err = _login_required()
    if err:
        return err
    try:
        day = _resolve_day(date)
    except ValidationError as e:
        return _invalid(e)

    repo = _habits()
    if not repo.get_habit(habit_id):
        return {"error": f"Habit {habit_id} not found"}
    try:
        if completed is None:
            completed = repo.toggle_completion(habit_id, day)
        elif completed:
            repo.mark_complete(habit_id, day)
        else:
            repo.mark_incomplete(habit_id, day)
    except StoreIOError as e:
        logger.error("Error updating habit %s: %s", habit_id, e)
        return {"error": "Failed to update habit"}
    return {"id": habit_id, "date": day, "completed": bool(completed)}


# --- Statistics tools ---


@mcp.tool()
def get_today_stats() -> dict:
    """Today's completed/total daily habits and percentage."""
    err = _login_required()
    if err:
        return err
    return analytics.today_stats(_habits().list_habits(), today_local()).model_dump()


@mcp.tool()
def get_progress_report() -> dict:
    """Last 7 days, weekly average, longest streak and per-habit progress."""
    err = _login_required()
    if err:
        return err
    report = analytics.progress_report(_habits().list_habits(), today_local())
    return report.model_dump(mode="json")


@mcp.tool()
def get_calendar(year: Optional[int] = None, month: Optional[int] = None) -> dict:
    """Month heatmap: 42 Sunday-first cells with per-day completion of daily habits."""
    err = _login_required()
    if err:
        return err
    today = today_local()
    year = year if year is not None else today.year
    month = month if month is not None else today.month
    if not 1 <= month <= 12:
        return {"error": f"Invalid month {month}"}
    try:
        days = analytics.calendar_grid(_habits().list_habits(), year, month, today)
    except (ValueError, OverflowError):
        return {"error": f"Invalid year {year}"}
    prev_year, prev_month = analytics.shift_month(year, month, -1)
    next_year, next_month = analytics.shift_month(year, month, 1)
    return {
        "year": year,
        "month": month,
        "days": [d.model_dump() for d in days],
        "previous": {"year": prev_year, "month": prev_month},
        "next": {"year": next_year, "month": next_month},
    }


@mcp.tool()
def get_day_details(date: str) -> dict:
    """Which daily habits were done on a given day (YYYY-MM-DD)."""
    err = _login_required()
    if err:
        return err
    try:
        day = parse_date(date)
    except ValidationError as e:
        return _invalid(e)
    habits = _habits().list_habits()
    stats = analytics.day_stats(habits, day)
    return {
        **stats.model_dump(),
        "habits": [
            {"id": h.id, "name": h.name, "completed": done}
            for h, done in analytics.habits_on(habits, day)
        ],
    }


# --- App setup ---

_inner = mcp.streamable_http_app()
app = JWTAuthMiddleware(_inner, JWT_SECRET, JWT_ALGORITHM)
