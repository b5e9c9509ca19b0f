"""
Calculation engine for billing analytics.

Orchestrates range resolution, reconciliation and all calculators into the
payload consumed by the analytics dashboard.
"""
from typing import List, Dict, Any, Iterable, Optional
from datetime import datetime
from decimal import Decimal
import logging
import os

from core.config import ENVIRONMENT
from models import Patient, Payment, Session, parse_records
from services.ledger_types import (
    LedgerItem,
    DateRange,
    RangeTag,
    Totals
)
from services.date_range_service import resolve_date_range, granularity_for
from services.ledger_reconciler import LedgerReconciler
from services.analytics_calculators import (
    TotalsCalculator,
    IncomeSummaryCalculator,
    SessionSummaryCalculator,
    SessionsOverTimeCalculator,
    IncomeOverTimeCalculator,
    SessionsByHourCalculator,
    SessionsByWeekdayCalculator,
    StatusBreakdownCalculator,
    TopPatientsCalculator,
    TodaySummaryCalculator
)
from core.constants import WORKING_HOURS_START, WORKING_HOURS_END
from utils.money_utils import amount_or_zero, to_float

logger = logging.getLogger(__name__)

# Constants for validation
CALCULATION_TOLERANCE = Decimal('0.01')  # Tolerance for amount reconciliation (1 cent)


class CalculationValidationError(Exception):
    """Exception raised when calculation validation fails."""
    pass


class AnalyticsEngine:
    """
    Orchestrates billing analytics calculations.

    This engine coordinates:
    1. Date range resolution
    2. Restriction of sessions and payments to the window
    3. Reconciliation into ledger items
    4. Metric and series calculation
    5. Result validation

    Every call is a pure function of its inputs and the injected "now".
    """

    def __init__(self):
        self.reconciler = LedgerReconciler()
        self.totals_calculator = TotalsCalculator()
        self.income_calculator = IncomeSummaryCalculator()
        self.session_summary_calculator = SessionSummaryCalculator()
        self.sessions_over_time_calculator = SessionsOverTimeCalculator()
        self.income_over_time_calculator = IncomeOverTimeCalculator()
        self.hour_calculator = SessionsByHourCalculator()
        self.weekday_calculator = SessionsByWeekdayCalculator()
        self.status_calculator = StatusBreakdownCalculator()
        self.top_patients_calculator = TopPatientsCalculator()
        self.today_calculator = TodaySummaryCalculator()

    def compute(
        self,
        sessions: Iterable[Any],
        payments: Iterable[Any],
        patients: Iterable[Any],
        range_tag: RangeTag,
        now: datetime,
        include_virtual: bool = True
    ) -> Dict[str, Any]:
        """
        Compute all analytics for a range preset from raw collections.

        Args:
            sessions: Sessions fetched for the window (models or raw records)
            payments: Payments fetched for the window (models or raw records)
            patients: All patients (models or raw records)
            range_tag: Active range preset
            now: Reference instant
            include_virtual: Include virtual pending items for unpaid past sessions

        Returns:
            Dictionary with range, totals, summary, today and series
        """
        date_range = resolve_date_range(range_tag, now)

        session_list = parse_records(sessions, Session)
        sessions_in_range = self.restrict_sessions(session_list, date_range)
        payments_in_range = self.restrict_payments(parse_records(payments, Payment), date_range)

        if include_virtual:
            items = self.reconciler.reconcile(sessions_in_range, payments_in_range, now)
        else:
            items = [self.reconciler.payment_to_item(p) for p in payments_in_range]

        logger.debug(
            f"Analytics for {range_tag}: {len(sessions_in_range)} sessions, "
            f"{len(payments_in_range)} payments, {len(items)} ledger items"
        )

        return self.aggregate(
            items,
            range_tag,
            parse_records(patients, Patient),
            now,
            sessions=sessions_in_range,
            today_sessions=session_list
        )

    def aggregate(
        self,
        items: List[LedgerItem],
        range_tag: RangeTag,
        patients: List[Patient],
        now: datetime,
        sessions: Optional[List[Session]] = None,
        today_sessions: Optional[List[Session]] = None
    ) -> Dict[str, Any]:
        """
        Aggregate ledger items (and optionally sessions) already restricted to the range.

        Args:
            items: Ledger items in the window
            range_tag: Active range preset (decides bucket granularity)
            patients: Patients, for the new-patients metric
            now: Reference instant used to resolve the range
            sessions: Sessions in the window, for session-derived metrics
            today_sessions: Sessions including the rest of today, for the today
                summary (defaults to sessions)

        Returns:
            Dictionary with range, totals, summary, today and series
        """
        date_range = resolve_date_range(range_tag, now)
        granularity = granularity_for(range_tag)
        session_list = sessions or []

        totals = self.totals_calculator.calculate(items)
        income = self.income_calculator.calculate(items)
        session_summary = self.session_summary_calculator.calculate(session_list, patients, date_range)
        today = self.today_calculator.calculate(
            session_list if today_sessions is None else today_sessions, items, now
        )

        sessions_over_time = self.sessions_over_time_calculator.calculate(session_list, granularity)
        income_over_time = self.income_over_time_calculator.calculate(items, granularity)
        sessions_by_hour = self.hour_calculator.calculate(session_list)
        sessions_by_weekday = self.weekday_calculator.calculate(session_list)
        sessions_by_status = self.status_calculator.sessions_by_status(session_list)
        payments_by_status = self.status_calculator.payments_by_status(items)
        top_patients = self.top_patients_calculator.calculate(session_list)

        self._validate_results(
            totals,
            items,
            session_summary['completion_rate'],
            len(sessions_by_hour),
            len(sessions_by_weekday)
        )

        # Convert Decimal to float for JSON serialization
        return {
            'range': self._format_range(range_tag, date_range),
            'totals': self.format_totals(totals),
            'summary': {
                **session_summary,
                'collected_income': to_float(income['collected_income']),
                'pending_income': to_float(income['pending_income']),
            },
            'today': {
                **today,
                'income_today': to_float(today['income_today']),
            },
            'sessions_over_time': sessions_over_time,
            'income_over_time': [
                {
                    'label': point['label'],
                    'collected': to_float(point['collected']),
                    'pending': to_float(point['pending'])
                }
                for point in income_over_time
            ],
            'sessions_by_hour': sessions_by_hour,
            'sessions_by_weekday': sessions_by_weekday,
            'sessions_by_status': sessions_by_status,
            'payments_by_status': payments_by_status,
            'top_patients': top_patients,
        }

    @staticmethod
    def restrict_sessions(sessions: List[Session], date_range: DateRange) -> List[Session]:
        """Sessions with a schedule whose start falls within the window."""
        start, end = date_range['start'], date_range['end']
        return [
            s for s in sessions
            if s.has_schedule and start <= s.scheduled_from <= end  # type: ignore[operator]
        ]

    @staticmethod
    def restrict_payments(payments: List[Payment], date_range: DateRange) -> List[Payment]:
        """Payments dated within the window."""
        start, end = date_range['start'], date_range['end']
        return [p for p in payments if start <= p.payment_date <= end]

    @staticmethod
    def format_totals(totals: Totals) -> Dict[str, Any]:
        return {
            'total_amount': to_float(totals['total_amount']),
            'paid_amount': to_float(totals['paid_amount']),
            'pending_amount': to_float(totals['pending_amount']),
            'overdue_amount': to_float(totals['overdue_amount']),
            'total_count': totals['total_count'],
            'paid_count': totals['paid_count'],
            'pending_count': totals['pending_count'],
            'overdue_count': totals['overdue_count'],
        }

    @staticmethod
    def _format_range(range_tag: RangeTag, date_range: DateRange) -> Dict[str, str]:
        return {
            'tag': range_tag,
            'start': date_range['start'].isoformat(),
            'end': date_range['end'].isoformat(),
        }

    def _validate_results(
        self,
        totals: Totals,
        items: List[LedgerItem],
        completion_rate: int,
        hour_rows: int,
        weekday_rows: int
    ) -> None:
        """
        Validate calculation results for accounting accuracy.

        Checks:
        1. Item count matches totals
        2. Total amount matches sum of all items
        3. Per-status amounts add up to the total
        4. Completion rate is a percentage
        5. Hour and weekday series have their fixed shape

        Fails loudly in development/test environments, logs warnings in production.
        """
        is_test = os.getenv("PYTEST_VERSION") is not None
        is_dev_or_test = ENVIRONMENT in ['development', 'test'] or is_test

        errors: List[str] = []

        # Check 1: Item count
        if totals['total_count'] != len(items):
            errors.append(f"Total count mismatch: totals={totals['total_count']}, items={len(items)}")

        # Check 2: Total amount matches sum of items
        calculated_total = sum((amount_or_zero(item.get('amount')) for item in items), Decimal('0'))
        if abs(totals['total_amount'] - calculated_total) > CALCULATION_TOLERANCE:
            errors.append(
                f"Total amount mismatch: totals={totals['total_amount']}, "
                f"calculated={calculated_total}"
            )

        # Check 3: Status split
        status_sum = totals['paid_amount'] + totals['pending_amount'] + totals['overdue_amount']
        if abs(totals['total_amount'] - status_sum) > CALCULATION_TOLERANCE:
            errors.append(
                f"Status amounts do not add up: total={totals['total_amount']}, by_status={status_sum}"
            )

        # Check 4: Completion rate range
        if not 0 <= completion_rate <= 100:
            errors.append(f"Completion rate out of range: {completion_rate}")

        # Check 5: Fixed-shape series
        expected_hours = WORKING_HOURS_END - WORKING_HOURS_START + 1
        if hour_rows != expected_hours:
            errors.append(f"Sessions by hour has {hour_rows} rows, expected {expected_hours}")
        if weekday_rows != 7:
            errors.append(f"Sessions by weekday has {weekday_rows} rows, expected 7")

        if not errors:
            return

        if is_dev_or_test:
            raise CalculationValidationError("; ".join(errors))
        for error in errors:
            logger.warning(f"Analytics validation warning: {error}")


def aggregate(
    items: List[LedgerItem],
    range_tag: RangeTag,
    patients: Iterable[Any],
    now: datetime,
    sessions: Optional[Iterable[Any]] = None,
    today_sessions: Optional[Iterable[Any]] = None
) -> Dict[str, Any]:
    """Module-level shortcut for AnalyticsEngine.aggregate (raw records accepted)."""
    return AnalyticsEngine().aggregate(
        items,
        range_tag,
        parse_records(patients, Patient),
        now,
        sessions=parse_records(sessions, Session) if sessions is not None else None,
        today_sessions=parse_records(today_sessions, Session) if today_sessions is not None else None
    )
