"""
Datetime utilities for consistent timezone handling across the engine.

All calendar decisions (month boundaries, day buckets, hour-of-day, weekday)
are made in the practice timezone, a fixed UTC offset taken from configuration.
Records arriving from the practice API may carry any offset or none at all;
everything is normalized to the practice timezone before it is compared.
"""

import logging
from datetime import datetime, timezone, timedelta, date
from typing import Any, Optional

from core.config import PRACTICE_UTC_OFFSET_HOURS

logger = logging.getLogger(__name__)

# Practice timezone constant
LOCAL_TZ = timezone(timedelta(hours=PRACTICE_UTC_OFFSET_HOURS))


def local_now() -> datetime:
    """
    Get current datetime in the practice timezone.

    Only the boundary (refresh services) should call this; the engine itself
    always receives "now" as an argument.
    """
    return datetime.now(LOCAL_TZ)


def ensure_local(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in the practice timezone.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime in the practice timezone, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive values are assumed to already be practice-local
        return dt.replace(tzinfo=LOCAL_TZ)
    return dt.astimezone(LOCAL_TZ)


def parse_datetime_string(dt_str: str) -> datetime:
    """
    Parse an ISO format datetime string into the practice timezone.

    Handles:
    - ISO format with offset (e.g., "2024-03-01T09:00:00-03:00")
    - ISO format with Z (UTC) (e.g., "2024-03-01T12:00:00.000Z")
    - ISO format without offset (assumes practice time)
    - Date-only strings (e.g., "2024-03-01", read as local midnight)

    Raises:
        ValueError: If the string cannot be parsed
    """
    if not dt_str or not dt_str.strip():
        raise ValueError("Datetime string cannot be empty")
    try:
        dt = datetime.fromisoformat(dt_str.strip().replace('Z', '+00:00'))
    except ValueError as e:
        raise ValueError(f"Invalid datetime string format: {dt_str}") from e
    result = ensure_local(dt)
    if result is None:
        raise ValueError(f"Invalid datetime string format: {dt_str}")
    return result


def coerce_local_datetime(v: Any) -> Any:
    """
    Pydantic "before" hook for datetime fields.

    Strings, dates and datetimes are normalized to the practice timezone; empty
    values become None. Anything else is handed back for pydantic to reject.
    """
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return ensure_local(v)
    if isinstance(v, date):
        return datetime(v.year, v.month, v.day, tzinfo=LOCAL_TZ)
    if isinstance(v, str):
        return parse_datetime_string(v)
    return v


def start_of_day(dt: datetime) -> datetime:
    """Midnight of the given datetime's local day."""
    local = ensure_local(dt)
    if local is None:
        raise ValueError("Cannot normalize None datetime")
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(dt: datetime) -> datetime:
    """Last microsecond of the given datetime's local day."""
    local = ensure_local(dt)
    if local is None:
        raise ValueError("Cannot normalize None datetime")
    return local.replace(hour=23, minute=59, second=59, microsecond=999999)


def first_of_month(year: int, month: int) -> datetime:
    """
    Local midnight of the first day of a month.

    Month may be outside 1..12; it is normalized by carrying into the year
    (month 0 is December of the previous year).
    """
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, tzinfo=LOCAL_TZ)


def local_date(dt: datetime) -> date:
    """Calendar date of a datetime in the practice timezone."""
    local = ensure_local(dt)
    if local is None:
        raise ValueError("Cannot normalize None datetime")
    return local.date()


def format_date_param(d: date | datetime) -> str:
    """Format a date as the YYYY-MM-DD string the practice API expects."""
    if isinstance(d, datetime):
        d = local_date(d)
    return d.isoformat()
