"""
Type definitions for billing ledger and analytics calculations.

This module provides TypedDict definitions for the ledger items produced by
reconciliation, the filter/pagination state used by the ledger listing, and
the rows produced by the analytics calculators.
"""
from typing import TypedDict, Optional, Literal, List
from datetime import date, datetime
from decimal import Decimal

from models import Payment, PaymentStatus


RangeTag = Literal["week", "month", "quarter", "year"]
QuickFilter = Literal["all", "week", "month", "custom"]
SortKey = Literal["date-desc", "date-asc", "price-desc", "price-asc"]
StatusFilter = Literal["all", "pending", "paid", "overdue"]
PaginationMode = Literal["page", "batch"]


class DateRange(TypedDict):
    """Concrete [start, end] window; end is the reference "now"."""
    start: datetime
    end: datetime


class DateBounds(TypedDict):
    """Inclusive calendar-day bounds used by the ledger date filter."""
    date_from: Optional[date]
    date_to: Optional[date]


class LedgerItem(TypedDict):
    """
    Unified ledger entry: a real payment or a virtual unpaid session.

    Exactly one item exists per real payment; at most one virtual item exists
    per session, and never for a session that a payment already references.
    """
    id: str  # Payment id, or "virtual-{session_id}"
    is_virtual: bool
    status: PaymentStatus
    amount: Decimal
    date: datetime
    patient_id: Optional[str]
    patient_name: str
    session_id: Optional[str]
    description: Optional[str]
    payment: Optional[Payment]  # Source payment (None for virtual items)


class Totals(TypedDict):
    """Per-status amount sums and counts over a ledger item or payment set."""
    total_amount: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    overdue_amount: Decimal
    total_count: int
    paid_count: int
    pending_count: int
    overdue_count: int


class LedgerFilters(TypedDict, total=False):
    """
    Filter state for the ledger listing.

    Missing fields mean "no filter". payments_prefiltered states whether real
    payments were already date-narrowed by the source query (default True), in
    which case the date bounds only apply to virtual items.
    """
    date_from: Optional[date]
    date_to: Optional[date]
    status: StatusFilter
    search_text: str
    sort_key: SortKey
    payments_prefiltered: bool


class PageState(TypedDict, total=False):
    page: int  # 1-based, page mode
    page_size: int
    visible_count: int  # batch mode


class PageMeta(TypedDict):
    mode: PaginationMode
    total_count: int
    page: int
    page_size: int
    total_pages: int
    visible_count: int
    has_more: bool


class PageResult(TypedDict):
    page_items: List[LedgerItem]
    page_meta: PageMeta


class SessionSummary(TypedDict):
    """Session and patient metrics for the analytics header cards."""
    total_sessions: int
    completed_sessions: int
    cancelled_sessions: int
    upcoming_sessions: int  # pending + confirmed
    completion_rate: int
    active_patients: int
    new_patients: int


class IncomeSummary(TypedDict):
    collected_income: Decimal  # paid
    pending_income: Decimal  # pending + overdue


class SessionsOverTimePoint(TypedDict):
    label: str
    total: int
    completed: int
    cancelled: int


class IncomeOverTimePoint(TypedDict):
    label: str
    collected: Decimal
    pending: Decimal


class CountRow(TypedDict):
    """Label/count row for hour, weekday and status series."""
    label: str
    count: int


class TopPatientRow(TypedDict):
    patient_id: str
    name: str
    sessions: int


class TodaySummary(TypedDict):
    sessions_total: int
    sessions_completed: int
    income_today: Decimal
    progress: int


# Bucket granularity derived from the range tag
Granularity = Literal["day", "week_of_month", "month"]
