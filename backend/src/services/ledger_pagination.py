"""
Pagination for the ledger listing.

Two modes slice the filtered and sorted ledger:
- page: fixed-size pages addressed by a 1-based page number
- batch: a growing prefix for incremental ("load more") listing
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, List

from core.constants import ITEMS_PER_PAGE, INFINITE_SCROLL_BATCH
from services.ledger_filters import apply_filters
from services.ledger_types import (
    LedgerItem,
    LedgerFilters,
    PageState,
    PageMeta,
    PageResult,
    PaginationMode
)

logger = logging.getLogger(__name__)


def paginate(
    items: List[LedgerItem],
    mode: PaginationMode,
    page_state: PageState
) -> PageResult:
    """
    Slice ledger items for display.

    Page mode returns items[(page-1)*page_size : page*page_size] with
    total_pages = ceil(count / page_size) (0 items -> 0 pages). Batch mode
    returns items[0:visible_count] with has_more = visible_count < count.

    Args:
        items: Filtered and sorted ledger items
        mode: "page" or "batch"
        page_state: page/page_size (page mode) or visible_count (batch mode)

    Returns:
        PageResult with page_items and page_meta

    Raises:
        ValueError: If mode is unknown or sizes are not positive
    """
    total_count = len(items)
    page_size = page_state.get('page_size', ITEMS_PER_PAGE)
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    total_pages = math.ceil(total_count / page_size)

    if mode == "page":
        page = page_state.get('page', 1)
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        start = (page - 1) * page_size
        page_items = items[start:start + page_size]
        visible_count = start + len(page_items)
        has_more = page < total_pages
    elif mode == "batch":
        visible_count_requested = page_state.get('visible_count', INFINITE_SCROLL_BATCH)
        if visible_count_requested < 0:
            raise ValueError(f"visible_count must be non-negative, got {visible_count_requested}")
        page = 1
        page_items = items[:visible_count_requested]
        visible_count = visible_count_requested
        has_more = visible_count_requested < total_count
    else:
        raise ValueError(f"Unknown pagination mode: {mode!r}")

    return PageResult(
        page_items=page_items,
        page_meta=PageMeta(
            mode=mode,
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            visible_count=visible_count,
            has_more=has_more
        )
    )


@dataclass
class LedgerViewState:
    """
    Filter and pagination state of one ledger listing.

    Any filter change resets the page to 1 and the visible count to the
    initial batch size. The view is recomputed from scratch on every call
    to view(); nothing is cached.
    """
    mode: PaginationMode = "page"
    page_size: int = ITEMS_PER_PAGE
    batch_size: int = INFINITE_SCROLL_BATCH
    filters: LedgerFilters = field(default_factory=lambda: LedgerFilters(status='all', search_text='', sort_key='date-desc'))
    page: int = 1
    visible_count: int = 0

    def __post_init__(self) -> None:
        if self.visible_count <= 0:
            self.visible_count = self.batch_size

    def update_filters(self, **changes: Any) -> None:
        """Merge filter changes and reset pagination."""
        self.filters = LedgerFilters(**{**self.filters, **changes})  # type: ignore[typeddict-item]
        self.reset_pagination()

    def reset_pagination(self) -> None:
        self.page = 1
        self.visible_count = self.batch_size

    def set_page(self, page: int) -> None:
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        self.page = page

    def load_more(self) -> None:
        """Grow the visible prefix by one batch (batch mode)."""
        self.visible_count += self.batch_size
        logger.debug(f"Ledger visible count increased to {self.visible_count}")

    def page_state(self) -> PageState:
        return PageState(page=self.page, page_size=self.page_size, visible_count=self.visible_count)

    def view(self, items: List[LedgerItem]) -> PageResult:
        """Filter, sort and slice items according to the current state."""
        return paginate(apply_filters(items, self.filters), self.mode, self.page_state())
