"""
Session fetch planning for a date window.

Sessions are served per calendar month. This module computes which months a
window touches, fans the monthly fetches out concurrently, and merges the
batches back into one deduplicated, window-restricted list.
"""
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Tuple

from models import Session, parse_records
from services.ledger_types import DateRange
from utils.async_utils import gather_or_cancel
from utils.datetime_utils import ensure_local

logger = logging.getLogger(__name__)

MonthKey = Tuple[int, int]
MonthlyFetcher = Callable[[int, int], Awaitable[List[Any]]]


class SessionFetchPlanner:
    """
    Plans and merges per-month session fetches.

    Handles:
    - Month keys spanning both endpoints' months (inclusive)
    - Sessions repeated across monthly batches (deduplicated by id, last seen wins)
    - Sessions with no schedule (silently excluded)
    - Sessions starting outside the window (excluded)
    """

    @staticmethod
    def plan_months(start: datetime, end: datetime) -> List[MonthKey]:
        """
        Compute the distinct (year, month) pairs spanning [start, end].

        Args:
            start: Window start
            end: Window end

        Returns:
            Month keys in chronological order; empty if end precedes start
        """
        local_start = ensure_local(start)
        local_end = ensure_local(end)
        if local_start is None or local_end is None:
            raise ValueError("start and end are required to plan months")

        months: List[MonthKey] = []
        year, month = local_start.year, local_start.month
        while (year, month) <= (local_end.year, local_end.month):
            months.append((year, month))
            if month == 12:
                year, month = year + 1, 1
            else:
                month += 1
        return months

    @staticmethod
    def merge_monthly_batches(
        batches: Iterable[Iterable[Any]],
        start: datetime,
        end: datetime
    ) -> List[Session]:
        """
        Flatten monthly batches, deduplicate by session id and restrict to the window.

        Args:
            batches: One iterable of raw session records (or Session models) per month
            start: Window start (inclusive)
            end: Window end (inclusive)

        Returns:
            Sessions whose start falls within [start, end], in first-seen order
        """
        sessions_by_id: Dict[str, Session] = {}
        for batch in batches:
            for session in parse_records(batch or [], Session):
                sessions_by_id[session.id] = session

        window_start = ensure_local(start)
        window_end = ensure_local(end)
        if window_start is None or window_end is None:
            raise ValueError("start and end are required to merge session batches")

        result: List[Session] = []
        for session in sessions_by_id.values():
            if not session.has_schedule:
                continue
            if window_start <= session.scheduled_from <= window_end:  # type: ignore[operator]
                result.append(session)

        logger.debug(
            f"Merged {len(sessions_by_id)} unique sessions, {len(result)} within "
            f"{window_start.isoformat()} - {window_end.isoformat()}"
        )
        return result

    async def fetch_sessions(
        self,
        get_monthly: MonthlyFetcher,
        date_range: DateRange
    ) -> List[Session]:
        """
        Fetch every month of the window concurrently and merge the results.

        A failed month fails the whole call and cancels the months still in
        flight; no partial result is produced.

        Args:
            get_monthly: Coroutine function (year, month) -> raw session records
            date_range: Window to cover

        Returns:
            Merged sessions within the window
        """
        months = self.plan_months(date_range['start'], date_range['end'])
        logger.debug(f"Fetching sessions for {len(months)} month(s): {months}")
        batches = await gather_or_cancel(*(get_monthly(year, month) for year, month in months))
        return self.merge_monthly_batches(batches, date_range['start'], date_range['end'])
