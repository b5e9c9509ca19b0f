"""
Date range resolution for analytics presets and ledger quick filters.

Range presets follow fixed calendar rules. Only "week" is a rolling window;
"month", "quarter" and "year" start on a calendar boundary and end at "now".
"""
from datetime import date, datetime, timedelta
from calendar import monthrange

from services.ledger_types import DateRange, DateBounds, RangeTag, QuickFilter, Granularity
from utils.datetime_utils import ensure_local, start_of_day, first_of_month


def resolve_date_range(range_tag: RangeTag, now: datetime) -> DateRange:
    """
    Map a range tag to a concrete [start, end] window ending at now.

    - week: now minus 7 days (rolling, keeps the time of day)
    - month: first day of the current calendar month
    - quarter: first day of the month two months back (current month plus the
      two preceding calendar months, not a fiscal quarter)
    - year: January 1 of the current year

    Args:
        range_tag: One of "week", "month", "quarter", "year"
        now: Reference instant (naive values are read as practice-local)

    Returns:
        DateRange with start and end (end == now)

    Raises:
        ValueError: If range_tag is not recognized
    """
    end = ensure_local(now)
    if end is None:
        raise ValueError("now is required to resolve a date range")

    if range_tag == "week":
        start = end - timedelta(days=7)
    elif range_tag == "month":
        start = start_of_day(end.replace(day=1))
    elif range_tag == "quarter":
        start = first_of_month(end.year, end.month - 2)
    elif range_tag == "year":
        start = first_of_month(end.year, 1)
    else:
        raise ValueError(f"Unknown range tag: {range_tag!r}")

    return DateRange(start=start, end=end)


def granularity_for(range_tag: RangeTag) -> Granularity:
    """Bucket granularity used by the time series for a range tag."""
    if range_tag == "week":
        return "day"
    if range_tag == "month":
        return "week_of_month"
    if range_tag in ("quarter", "year"):
        return "month"
    raise ValueError(f"Unknown range tag: {range_tag!r}")


def get_week_range(today: date) -> DateBounds:
    """Monday..Sunday of the week containing today (inclusive)."""
    monday = today - timedelta(days=today.weekday())
    return DateBounds(date_from=monday, date_to=monday + timedelta(days=6))


def get_month_range(today: date) -> DateBounds:
    """First..last day of the month containing today (inclusive)."""
    last_day = monthrange(today.year, today.month)[1]
    return DateBounds(
        date_from=today.replace(day=1),
        date_to=today.replace(day=last_day),
    )


def resolve_quick_filter(quick_filter: QuickFilter, today: date) -> DateBounds:
    """
    Resolve a ledger quick filter to inclusive date bounds.

    "custom" has no preset bounds; the caller keeps whatever it had, so both
    bounds come back as None just like "all".
    """
    if quick_filter == "week":
        return get_week_range(today)
    if quick_filter == "month":
        return get_month_range(today)
    if quick_filter in ("all", "custom"):
        return DateBounds(date_from=None, date_to=None)
    raise ValueError(f"Unknown quick filter: {quick_filter!r}")
