from datetime import date, datetime, timezone
from typing import Optional, Union


def get_current_datetime() -> datetime:
    """Return current UTC datetime with timezone info."""
    return datetime.now(timezone.utc)


def get_current_date() -> date:
    """Return the current UTC calendar date."""
    return get_current_datetime().date()


def parse_iso_date(value: Union[str, date, None]) -> Optional[date]:
    """
    Parse an ISO-8601 calendar date.

    Accepts "YYYY-MM-DD" as well as full ISO datetimes, in which case only the
    date part written in the string is kept (no timezone conversion).

    Args:
        value: ISO string, date/datetime instance or None

    Returns:
        The calendar date, or None when value is None

    Raises:
        ValueError: If the string is not an ISO-8601 date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO date string, got {type(value).__name__}")

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValueError(f"Invalid ISO date: {value!r}")


def get_quarter_number(target_date: date) -> int:
    """Get the calendar quarter (1-4) for a date."""
    return (target_date.month - 1) // 3 + 1
