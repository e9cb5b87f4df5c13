"""Recurrence calculation for Reminder Dispatcher.

Timestamps travel as minute-precision strings ("YYYY-MM-DDTHH:MM").
Values without an offset are read as UTC; values with one are converted.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta

MINUTE_FORMAT = "%Y-%m-%dT%H:%M"

_STEPS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
}


def add_month(dt: datetime) -> datetime:
    """Same day of the next month; days past its end carry into the month after.

    Jan 31 -> Mar 3 (Mar 2 in a leap year), Dec 15 -> Jan 15.
    """
    first_of_next = dt.replace(day=1) + relativedelta(months=1)
    return first_of_next + timedelta(days=dt.day - 1)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a stored due value into an aware UTC datetime.

    Returns None for missing or unparseable values.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_minute_string(dt: datetime) -> str:
    """Format as UTC minute string, dropping seconds and below."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime(MINUTE_FORMAT)


def next_occurrence(current_due: str, cycle: Optional[str]) -> Optional[str]:
    """Compute the due value following current_due for the given cycle.

    Args:
        current_due: Stored due value (minute string or ISO 8601)
        cycle: 'daily', 'weekly' or 'monthly'; anything else ends the series

    Returns:
        Next due value as a minute string, or None when the reminder stops
        recurring (one-off or unknown cycle, or an unparseable current_due)

    Monthly steps keep the day of month and overflow past a shorter
    month (see add_month).
    """
    base = parse_timestamp(current_due)
    if base is None:
        return None

    base = base.replace(second=0, microsecond=0)
    if cycle == "monthly":
        return to_minute_string(add_month(base))

    step = _STEPS.get(cycle or "")
    if step is None:
        return None
    return to_minute_string(base + step)
