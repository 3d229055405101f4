# Calendar helpers. Dates are local calendar days, no timezone conversion.
from datetime import date, datetime, timedelta
from typing import Union

DateLike = Union[date, str]


def now_iso() -> str:
    return datetime.now().isoformat()


def today_local() -> date:
    return date.today()


def to_date(value: DateLike) -> date:
    """Accept a date (or datetime) or an ISO string; ISO datetimes keep their date part."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def to_iso(value: DateLike) -> str:
    return to_date(value).isoformat()


def days_back(day: date, offset: int) -> date:
    return day - timedelta(days=offset)
