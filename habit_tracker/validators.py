"""Form rules applied at the tool boundary, plus habit id generation."""

import re
import time
from datetime import date
from typing import Iterable, Optional

from habit_tracker.errors import ValidationError
from habit_tracker.models import Frequency

EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MIN_PASSWORD_LENGTH = 6
MIN_HABIT_NAME_LENGTH = 3


def _check_email(email: str, errors: dict[str, str]) -> str:
    email = (email or "").strip()
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_RE.search(email):
        errors["email"] = "Please enter a valid email"
    return email.lower()


def validate_registration(name: str, email: str, password: str, confirm_password: str) -> tuple[str, str]:
    """Return the cleaned (name, email) or raise ValidationError with every failing field."""
    errors: dict[str, str] = {}
    name = (name or "").strip()
    if not name:
        errors["name"] = "Name is required"
    email = _check_email(email, errors)
    if not password:
        errors["password"] = "Password is required"
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if password != confirm_password:
        errors["confirm_password"] = "Passwords do not match"
    if errors:
        raise ValidationError(errors)
    return name, email


def validate_login(email: str, password: str) -> str:
    errors: dict[str, str] = {}
    email = _check_email(email, errors)
    if not password:
        errors["password"] = "Password is required"
    if errors:
        raise ValidationError(errors)
    return email


def validate_habit_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError({"name": "Habit name is required"})
    if len(name) < MIN_HABIT_NAME_LENGTH:
        raise ValidationError({"name": f"Habit name must be at least {MIN_HABIT_NAME_LENGTH} characters"})
    return name


def parse_frequency(value: str) -> Frequency:
    try:
        return Frequency((value or "").strip().lower())
    except ValueError:
        raise ValidationError({"frequency": "Frequency must be 'daily' or 'weekly'"})


def parse_date(value: str) -> str:
    """Strict YYYY-MM-DD calendar date."""
    value = (value or "").strip()
    if not DATE_RE.match(value):
        raise ValidationError({"date": f"Invalid date {value!r}, expected YYYY-MM-DD"})
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise ValidationError({"date": f"Invalid date {value!r}, expected YYYY-MM-DD"})


def next_habit_id(existing_ids: Iterable[str], now_ms: Optional[int] = None) -> str:
    """Millisecond timestamp, bumped past any numeric id already in use."""
    candidate = now_ms if now_ms is not None else int(time.time() * 1000)
    numeric = [int(i) for i in existing_ids if str(i).isdigit()]
    if numeric and candidate <= max(numeric):
        candidate = max(numeric) + 1
    return str(candidate)
