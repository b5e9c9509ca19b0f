"""
Shared in-memory collections of payments and patients.

The stores are filled by side-effecting fetch calls, or by a refresh cycle
that requests raw records through the store and commits them with load().
A fetch either replaces the collection completely or leaves it as it was:
a failed request never leaves a partially loaded collection behind.
"""
import logging
from typing import Any, Dict, List, Optional, TypedDict

from models import Patient, Payment, parse_records
from services.analytics_calculators import TotalsCalculator
from services.ledger_reconciler import LedgerReconciler
from services.ledger_types import Totals
from services.practice_api_client import PracticeApiClient

logger = logging.getLogger(__name__)


class PaymentQuery(TypedDict, total=False):
    """Server-side payment filters; from/to are inclusive YYYY-MM-DD dates."""
    page: int
    limit: int
    date_from: str
    date_to: str


class PaymentStore:
    """Holds the last fetched payment collection and its totals."""

    def __init__(self, client: PracticeApiClient) -> None:
        self.client = client
        self.payments: List[Payment] = []
        self.totals: Optional[Totals] = None
        self._loaded_query: Optional[Dict[str, Any]] = None

    async def fetch_payments(self, force_refresh: bool = False, query: Optional[PaymentQuery] = None) -> None:
        """
        Load payments matching the query into the store.

        Skips the request when the same query is already loaded, unless
        force_refresh is set.

        Raises:
            PracticeApiError: If the request fails (store is left untouched)
        """
        query_key: Dict[str, Any] = dict(query or {})
        if not force_refresh and self._loaded_query == query_key:
            logger.debug("Payments already loaded for query, skipping fetch")
            return

        raw = await self.request_payments(query_key)
        self.load(raw, query_key)

    async def request_payments(self, query: Optional[PaymentQuery] = None) -> List[Any]:
        """
        Request raw payment records without touching the store.

        Refresh cycles use this to fetch first and commit with load() once
        every fetch of the cycle has succeeded.
        """
        query = query or {}
        return await self.client.get_payments(
            date_from=query.get('date_from'),
            date_to=query.get('date_to'),
            page=query.get('page'),
            limit=query.get('limit')
        )

    def load(self, raw_payments: List[Any], query: Optional[PaymentQuery] = None) -> None:
        """Replace the collection with already fetched payment records."""
        payments = parse_records(raw_payments, Payment)
        self.payments = payments
        self.totals = TotalsCalculator.calculate(
            LedgerReconciler.payment_to_item(p) for p in payments
        )
        self._loaded_query = dict(query or {})
        logger.debug(f"Loaded {len(payments)} payments")


class PatientStore:
    """Holds the patient collection used for "new patients" metrics."""

    def __init__(self, client: PracticeApiClient) -> None:
        self.client = client
        self.patients: List[Patient] = []
        self.loaded = False

    async def fetch_patients(self, force_refresh: bool = False) -> None:
        """
        Load all patients into the store.

        Raises:
            PracticeApiError: If the request fails (store is left untouched)
        """
        if self.loaded and not force_refresh:
            return
        raw = await self.request_patients()
        self.load(raw)

    async def request_patients(self) -> List[Any]:
        """Request raw patient records without touching the store."""
        return await self.client.get_patients()

    def load(self, raw_patients: List[Any]) -> None:
        """Replace the collection with already fetched patient records."""
        self.patients = parse_records(raw_patients, Patient)
        self.loaded = True
        logger.debug(f"Loaded {len(self.patients)} patients")
