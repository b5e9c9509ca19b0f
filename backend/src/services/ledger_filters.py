"""
Filter applicator for the ledger listing.

Applies the client-side half of the two-tier filter (date bounds for virtual
items, status, patient-name search) and the ledger ordering.
"""
from datetime import date
from typing import List, Optional

from core.constants import SORT_KEYS, DEFAULT_SORT_KEY
from services.ledger_types import LedgerItem, LedgerFilters, SortKey
from utils.datetime_utils import local_date
from utils.money_utils import amount_or_zero


class LedgerFilterApplicator:
    """
    Applies filters and ordering to ledger items.

    Handles:
    - Date bounds (virtual items always; real items only if not prefiltered at the source)
    - Status filtering (uniform across real and virtual items)
    - Case-insensitive patient name search
    - Stable sorting by date or amount
    """

    @staticmethod
    def apply_filters(
        items: List[LedgerItem],
        filters: LedgerFilters
    ) -> List[LedgerItem]:
        """
        Apply all filters, then sort.

        Search runs on whatever text is passed in; debouncing is the caller's
        concern.

        Args:
            items: Ledger items from reconciliation
            filters: Filter criteria

        Returns:
            New filtered and sorted list (input is not modified)
        """
        filtered = list(items)

        date_from = filters.get('date_from')
        date_to = filters.get('date_to')
        if date_from or date_to:
            filtered = LedgerFilterApplicator._filter_by_date(
                filtered,
                date_from,
                date_to,
                filters.get('payments_prefiltered', True)
            )

        status = filters.get('status', 'all')
        if status != 'all':
            filtered = LedgerFilterApplicator._filter_by_status(filtered, status)

        search_text = filters.get('search_text') or ''
        if search_text.strip():
            filtered = LedgerFilterApplicator._filter_by_search(filtered, search_text)

        return LedgerFilterApplicator.sort_items(filtered, filters.get('sort_key', DEFAULT_SORT_KEY))

    @staticmethod
    def _filter_by_date(
        items: List[LedgerItem],
        date_from: Optional[date],
        date_to: Optional[date],
        payments_prefiltered: bool
    ) -> List[LedgerItem]:
        """
        Filter items by inclusive calendar-day bounds.

        Real payments already narrowed by the source query pass through untouched.
        """
        def in_bounds(item: LedgerItem) -> bool:
            if not item['is_virtual'] and payments_prefiltered:
                return True
            item_day = local_date(item['date'])
            if date_from and item_day < date_from:
                return False
            if date_to and item_day > date_to:
                return False
            return True

        return [item for item in items if in_bounds(item)]

    @staticmethod
    def _filter_by_status(items: List[LedgerItem], status: str) -> List[LedgerItem]:
        """Keep items whose status matches (real and virtual alike)."""
        return [item for item in items if item['status'] == status]

    @staticmethod
    def _filter_by_search(items: List[LedgerItem], search_text: str) -> List[LedgerItem]:
        """Keep items whose patient display name contains the search text."""
        needle = search_text.strip().lower()
        return [
            item for item in items
            if needle in (item.get('patient_name') or '').lower()
        ]

    @staticmethod
    def sort_items(items: List[LedgerItem], sort_key: SortKey) -> List[LedgerItem]:
        """
        Stable sort by date or amount.

        Ties keep their relative order; missing or invalid amounts sort as zero.

        Raises:
            ValueError: If sort_key is not recognized
        """
        if sort_key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {sort_key!r}")

        if sort_key in ('date-desc', 'date-asc'):
            return sorted(items, key=lambda item: item['date'], reverse=sort_key == 'date-desc')
        return sorted(
            items,
            key=lambda item: amount_or_zero(item.get('amount')),
            reverse=sort_key == 'price-desc'
        )


def apply_filters(items: List[LedgerItem], filters: LedgerFilters) -> List[LedgerItem]:
    """Module-level shortcut for LedgerFilterApplicator.apply_filters."""
    return LedgerFilterApplicator.apply_filters(items, filters)
