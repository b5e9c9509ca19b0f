"""
Services package for the billing engine.

Pure functions (range resolution, reconciliation, filtering, pagination,
aggregation) plus the asynchronous refresh boundary that feeds them.
"""

from .date_range_service import resolve_date_range
from .ledger_reconciler import LedgerReconciler, reconcile
from .ledger_filters import LedgerFilterApplicator, apply_filters
from .ledger_pagination import LedgerViewState, paginate
from .analytics_engine import AnalyticsEngine, CalculationValidationError, aggregate
from .session_fetch_planner import SessionFetchPlanner
from .practice_api_client import PracticeApiClient, PracticeApiError
from .practice_stores import PaymentStore, PatientStore
from .refresh_service import (
    AnalyticsRefreshService,
    LedgerRefreshService,
    RefreshResult,
    RequestEpochGuard,
)

__all__ = [
    "resolve_date_range",
    "reconcile",
    "apply_filters",
    "paginate",
    "aggregate",
    "LedgerReconciler",
    "LedgerFilterApplicator",
    "LedgerViewState",
    "AnalyticsEngine",
    "CalculationValidationError",
    "SessionFetchPlanner",
    "PracticeApiClient",
    "PracticeApiError",
    "PaymentStore",
    "PatientStore",
    "AnalyticsRefreshService",
    "LedgerRefreshService",
    "RefreshResult",
    "RequestEpochGuard",
]
