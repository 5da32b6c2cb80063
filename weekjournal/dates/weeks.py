"""ISO week bucketing.

Every journal entry is stored under a WeekKey of the form
``"<monday>_<sunday>"`` (both ``YYYY-MM-DD``). All helpers here accept
loosely-typed input (``date``, ``datetime`` or a string) and never raise
on bad input: anything unparseable falls back to the current date.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from dateutil import parser as date_parser

DateLike = Union[date, datetime, str, None]

WEEK_KEY_SEPARATOR = "_"


def _coerce_datetime(value: DateLike) -> Optional[datetime]:
    """Convert supported input to a naive local datetime, or None."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime.combine(value, time())
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            try:
                dt = date_parser.parse(text)
            except (ValueError, OverflowError):
                return None
    else:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def to_local_midnight(value: DateLike = None, now: Optional[datetime] = None) -> datetime:
    """Normalize a date-like value to local midnight.

    Args:
        value: Date, datetime or string. Invalid input is not an error.
        now: Fallback used when ``value`` cannot be parsed (default: now).

    Returns:
        Naive datetime at 00:00 on the same calendar day.
    """
    dt = _coerce_datetime(value)
    if dt is None:
        dt = now or datetime.now()
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def week_start(value: DateLike = None, now: Optional[datetime] = None) -> date:
    """Return the Monday on or before the given date."""
    day = to_local_midnight(value, now).date()
    return day - timedelta(days=day.weekday())


def week_end(value: DateLike = None, now: Optional[datetime] = None) -> date:
    """Return the Sunday ending the week of the given date."""
    return week_start(value, now) + timedelta(days=6)


def week_bounds(value: DateLike = None, now: Optional[datetime] = None) -> tuple[date, date]:
    """Return ``(monday, sunday)`` for the week containing the date."""
    start = week_start(value, now)
    return start, start + timedelta(days=6)


def format_date(value: Union[date, datetime]) -> str:
    """Format a calendar date as ``YYYY-MM-DD``."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def week_key(value: DateLike = None, now: Optional[datetime] = None) -> str:
    """Return the WeekKey for the week containing the date.

    Examples:
        >>> week_key("2024-03-06")
        '2024-03-04_2024-03-10'
    """
    start, end = week_bounds(value, now)
    return f"{format_date(start)}{WEEK_KEY_SEPARATOR}{format_date(end)}"


def parse_week_key(key: str) -> tuple[date, date]:
    """Split a WeekKey back into its Monday and Sunday.

    Raises:
        ValueError: If the key is not a Monday-to-Sunday pair.
    """
    parts = (key or "").split(WEEK_KEY_SEPARATOR)
    if len(parts) != 2:
        raise ValueError(f"Invalid week key: {key!r}")

    start = date.fromisoformat(parts[0])
    end = date.fromisoformat(parts[1])
    if start.weekday() != 0 or end != start + timedelta(days=6):
        raise ValueError(f"Invalid week key: {key!r}")
    return start, end


def shift_week(key: str, weeks: int) -> str:
    """Return the WeekKey ``weeks`` weeks after ``key`` (negative for earlier)."""
    start, _ = parse_week_key(key)
    return week_key(start + timedelta(weeks=weeks))
