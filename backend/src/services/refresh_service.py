"""
Refresh cycles for the analytics dashboard and the ledger listing.

This is the asynchronous boundary of the engine: it fans the fetches out
concurrently, discards responses that arrive after a newer request started,
cancels the sibling fetches when one fails, and only replaces the published
state when a whole cycle succeeded. The engine calls it makes are
synchronous and pure.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional

from core.config import ANALYTICS_PAYMENTS_LIMIT, LEDGER_LOOKBACK_MONTHS
from models import Session
from services.analytics_engine import AnalyticsEngine
from services.date_range_service import resolve_date_range
from services.ledger_pagination import LedgerViewState
from services.ledger_reconciler import LedgerReconciler
from services.ledger_types import DateRange, LedgerItem, PageResult, RangeTag
from services.practice_api_client import PracticeApiClient, PracticeApiError
from services.practice_stores import PaymentQuery, PaymentStore, PatientStore
from services.session_fetch_planner import SessionFetchPlanner
from utils.async_utils import gather_or_cancel
from utils.datetime_utils import LOCAL_TZ, end_of_day, first_of_month, format_date_param, local_now
from utils.timing_utils import Debouncer, DelayedTrigger

logger = logging.getLogger(__name__)

# Failures absorbed by a refresh cycle
FETCH_ERRORS = (PracticeApiError, asyncio.TimeoutError)


@dataclass
class RefreshResult:
    """Outcome of one refresh cycle."""
    ok: bool
    stale: bool = False  # A newer request superseded this one
    error: Optional[str] = None


class RequestEpochGuard:
    """
    Tells whether a request is still the current one.

    Every begin() supersedes earlier requests; close() (teardown) makes every
    outstanding request stale. Late responses are ignored, not cancelled.
    """

    def __init__(self) -> None:
        self._epoch = 0
        self._closed = False

    def begin(self) -> int:
        self._epoch += 1
        return self._epoch

    def is_current(self, token: int) -> bool:
        return not self._closed and token == self._epoch

    def invalidate(self) -> None:
        self._epoch += 1

    def close(self) -> None:
        self._closed = True


@dataclass
class AnalyticsSnapshot:
    range_tag: RangeTag
    computed_at: datetime
    sessions: List[Session]
    analytics: Dict[str, Any]


class AnalyticsRefreshService:
    """Loads sessions, payments and patients for a range preset and computes analytics."""

    def __init__(
        self,
        client: PracticeApiClient,
        payment_store: Optional[PaymentStore] = None,
        patient_store: Optional[PatientStore] = None,
        engine: Optional[AnalyticsEngine] = None,
        planner: Optional[SessionFetchPlanner] = None,
        clock: Callable[[], datetime] = local_now
    ) -> None:
        self.client = client
        self.payment_store = payment_store or PaymentStore(client)
        self.patient_store = patient_store or PatientStore(client)
        self.engine = engine or AnalyticsEngine()
        self.planner = planner or SessionFetchPlanner()
        self.clock = clock
        self.guard = RequestEpochGuard()
        self.snapshot: Optional[AnalyticsSnapshot] = None

    async def refresh(self, range_tag: RangeTag, now: Optional[datetime] = None) -> RefreshResult:
        """
        Run one refresh cycle for a range preset.

        On failure the previous snapshot is kept and a failed result is returned;
        nothing is retried.
        """
        token = self.guard.begin()
        now = now or self.clock()
        date_range = resolve_date_range(range_tag, now)
        query = PaymentQuery(
            date_from=format_date_param(date_range['start']),
            date_to=format_date_param(date_range['end']),
            limit=ANALYTICS_PAYMENTS_LIMIT
        )
        # Sessions later today still count towards the today summary
        fetch_window = DateRange(start=date_range['start'], end=end_of_day(now))

        try:
            sessions, raw_payments, raw_patients = await gather_or_cancel(
                self.planner.fetch_sessions(self.client.get_monthly_sessions, fetch_window),
                self.payment_store.request_payments(query),
                self.patient_store.request_patients(),
            )
        except FETCH_ERRORS as e:
            if not self.guard.is_current(token):
                return RefreshResult(ok=False, stale=True)
            logger.warning(f"Analytics refresh failed for range {range_tag}: {e}", exc_info=True)
            return RefreshResult(ok=False, error=str(e))

        if not self.guard.is_current(token):
            logger.debug(f"Discarding stale analytics response for range {range_tag}")
            return RefreshResult(ok=False, stale=True)

        # Commit only a complete cycle
        self.payment_store.load(raw_payments, query)
        self.patient_store.load(raw_patients)
        analytics = self.engine.compute(
            sessions,
            self.payment_store.payments,
            self.patient_store.patients,
            range_tag,
            now
        )
        self.snapshot = AnalyticsSnapshot(
            range_tag=range_tag,
            computed_at=now,
            sessions=sessions,
            analytics=analytics
        )
        return RefreshResult(ok=True)

    def close(self) -> None:
        """Teardown: responses still in flight will be ignored."""
        self.guard.close()


class LedgerRefreshService:
    """
    Loads and presents the reconciled ledger.

    Real payments are narrowed by date at the source; sessions are fetched for
    the same window (or a lookback window when no bounds are set) and turned
    into virtual items. Filtering, sorting and pagination are recomputed from
    scratch on every view.
    """

    def __init__(
        self,
        client: PracticeApiClient,
        payment_store: Optional[PaymentStore] = None,
        planner: Optional[SessionFetchPlanner] = None,
        view_state: Optional[LedgerViewState] = None,
        clock: Callable[[], datetime] = local_now,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        self.client = client
        self.payment_store = payment_store or PaymentStore(client)
        self.planner = planner or SessionFetchPlanner()
        self.view_state = view_state or LedgerViewState()
        self.clock = clock
        self.guard = RequestEpochGuard()
        self.items: List[LedgerItem] = []
        self.search_debouncer = Debouncer(self._apply_search, loop=loop)
        self.load_more_trigger = DelayedTrigger(self.view_state.load_more, loop=loop)

    async def refresh(self, now: Optional[datetime] = None) -> RefreshResult:
        """Fetch payments and sessions for the current date bounds and reconcile them."""
        token = self.guard.begin()
        now = now or self.clock()
        filters = self.view_state.filters
        date_from = filters.get('date_from')
        date_to = filters.get('date_to')

        query = PaymentQuery()
        if date_from:
            query['date_from'] = date_from.isoformat()
        if date_to:
            query['date_to'] = date_to.isoformat()
        window = self.session_window(date_from, date_to, now)

        try:
            sessions, raw_payments = await gather_or_cancel(
                self.planner.fetch_sessions(self.client.get_monthly_sessions, window),
                self.payment_store.request_payments(query),
            )
        except FETCH_ERRORS as e:
            if not self.guard.is_current(token):
                return RefreshResult(ok=False, stale=True)
            logger.warning(f"Ledger refresh failed: {e}", exc_info=True)
            return RefreshResult(ok=False, error=str(e))

        if not self.guard.is_current(token):
            logger.debug("Discarding stale ledger response")
            return RefreshResult(ok=False, stale=True)

        self.payment_store.load(raw_payments, query)
        self.items = LedgerReconciler.reconcile(sessions, self.payment_store.payments, now)
        return RefreshResult(ok=True)

    @staticmethod
    def session_window(
        date_from: Optional[date],
        date_to: Optional[date],
        now: datetime
    ) -> DateRange:
        """
        Window of sessions that may yield virtual items for the given bounds.

        Without a lower bound the window reaches back LEDGER_LOOKBACK_MONTHS
        calendar months; without an upper bound it ends at now.
        """
        if date_from:
            start = datetime.combine(date_from, time.min, tzinfo=LOCAL_TZ)
        else:
            current = resolve_date_range("month", now)['start']
            start = first_of_month(current.year, current.month - LEDGER_LOOKBACK_MONTHS)
        if date_to:
            end = end_of_day(datetime.combine(date_to, time.min, tzinfo=LOCAL_TZ))
        else:
            end = resolve_date_range("week", now)['end']
        return DateRange(start=start, end=end)

    def current_view(self) -> PageResult:
        return self.view_state.view(self.items)

    def update_filters(self, **changes: Any) -> None:
        """Apply filter changes immediately (resets pagination)."""
        self.view_state.update_filters(**changes)

    def set_search_text(self, text: str) -> None:
        """Debounced search input; the filter updates once typing pauses."""
        self.search_debouncer.call(text)

    def request_more(self) -> bool:
        """Delayed "load more" for batch mode; ignored while a load is pending."""
        return self.load_more_trigger.trigger()

    def close(self) -> None:
        self.search_debouncer.cancel()
        self.load_more_trigger.cancel()
        self.guard.close()

    def _apply_search(self, text: str) -> None:
        self.view_state.update_filters(search_text=text)
