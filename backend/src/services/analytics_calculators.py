"""
Metric calculators for billing analytics.

Each calculator is responsible for computing a specific metric or series,
following the single responsibility principle for better testability and maintainability.
"""
import math
from typing import Dict, Iterable, List, Set, Tuple, Any
from datetime import datetime
from decimal import Decimal
from collections import defaultdict

from core.constants import (
    WORKING_HOURS_START,
    WORKING_HOURS_END,
    TOP_PATIENTS_LIMIT,
    WEEKDAY_LABELS,
    MONTH_LABELS,
    WEEK_OF_MONTH_LABEL,
    UNNAMED_PATIENT
)
from models import Patient, PaymentStatus, Session, SessionStatus
from services.ledger_types import (
    LedgerItem,
    DateRange,
    Totals,
    SessionSummary,
    IncomeSummary,
    SessionsOverTimePoint,
    IncomeOverTimePoint,
    CountRow,
    TopPatientRow,
    TodaySummary,
    Granularity
)
from utils.datetime_utils import ensure_local, local_date
from utils.money_utils import ZERO, amount_or_zero


def percentage(part: int, whole: int) -> int:
    """round(100 * part / whole), or 0 when whole is 0."""
    if whole <= 0:
        return 0
    # Half-up, not banker's rounding
    return int(math.floor(part * 100 / whole + 0.5))


class TotalsCalculator:
    """Calculates per-status totals for ledger items."""

    @staticmethod
    def calculate(items: Iterable[LedgerItem]) -> Totals:
        """
        Calculate per-status amount sums and counts.

        pending_amount covers "pending" only, so paid + pending + overdue
        always adds up to total_amount.

        Args:
            items: Ledger items (real, virtual or both)

        Returns:
            Totals for the item set
        """
        sums: Dict[str, Decimal] = defaultdict(Decimal)
        counts: Dict[str, int] = defaultdict(int)
        total_amount = ZERO
        total_count = 0

        for item in items:
            amount = amount_or_zero(item.get('amount'))
            status = PaymentStatus(item['status'])
            total_amount += amount
            total_count += 1
            sums[status] += amount
            counts[status] += 1

        return Totals(
            total_amount=total_amount,
            paid_amount=sums[PaymentStatus.PAID],
            pending_amount=sums[PaymentStatus.PENDING],
            overdue_amount=sums[PaymentStatus.OVERDUE],
            total_count=total_count,
            paid_count=counts[PaymentStatus.PAID],
            pending_count=counts[PaymentStatus.PENDING],
            overdue_count=counts[PaymentStatus.OVERDUE]
        )


class IncomeSummaryCalculator:
    """Splits income into collected (paid) and pending (pending + overdue)."""

    @staticmethod
    def calculate(items: Iterable[LedgerItem]) -> IncomeSummary:
        collected = ZERO
        pending = ZERO
        for item in items:
            amount = amount_or_zero(item.get('amount'))
            if item['status'] == PaymentStatus.PAID:
                collected += amount
            else:
                pending += amount
        return IncomeSummary(collected_income=collected, pending_income=pending)


class SessionSummaryCalculator:
    """Calculates session and patient metrics for the analytics header."""

    @staticmethod
    def calculate(
        sessions: List[Session],
        patients: List[Patient],
        date_range: DateRange
    ) -> SessionSummary:
        """
        Calculate session counts, completion rate and patient activity.

        Args:
            sessions: Sessions already restricted to the date range
            patients: All patients (creation time decides "new in period")
            date_range: Active window for the new-patient count

        Returns:
            SessionSummary for the window
        """
        total = len(sessions)
        completed = sum(1 for s in sessions if s.status == SessionStatus.COMPLETED)
        cancelled = sum(1 for s in sessions if s.status == SessionStatus.CANCELLED)
        upcoming = sum(
            1 for s in sessions
            if s.status in (SessionStatus.PENDING, SessionStatus.CONFIRMED)
        )

        # Active patients come from sessions only, not payments
        patient_ids: Set[str] = {s.patient_id for s in sessions if s.patient_id}

        start = date_range['start']
        end = date_range['end']
        new_patients = sum(
            1 for p in patients
            if p.created_at is not None and start <= p.created_at <= end
        )

        return SessionSummary(
            total_sessions=total,
            completed_sessions=completed,
            cancelled_sessions=cancelled,
            upcoming_sessions=upcoming,
            completion_rate=percentage(completed, total),
            active_patients=len(patient_ids),
            new_patients=new_patients
        )


class TimeBucketer:
    """Maps instants to (sort key, label) buckets for a granularity."""

    @staticmethod
    def bucket(moment: datetime, granularity: Granularity) -> Tuple[Tuple[int, ...], str]:
        """
        Get the bucket of an instant.

        - day: calendar day, labelled "D/M"
        - week_of_month: ceil(day / 7), labelled "Sem N"
        - month: calendar month, labelled with the month name
        """
        local = ensure_local(moment)
        if local is None:
            raise ValueError("Cannot bucket None datetime")
        if granularity == "day":
            return (local.year, local.month, local.day), f"{local.day}/{local.month}"
        if granularity == "week_of_month":
            week_number = math.ceil(local.day / 7)
            return (week_number,), WEEK_OF_MONTH_LABEL.format(number=week_number)
        if granularity == "month":
            return (local.year, local.month), MONTH_LABELS[local.month - 1]
        raise ValueError(f"Unknown granularity: {granularity!r}")


class SessionsOverTimeCalculator:
    """Calculates session counts per time bucket."""

    @staticmethod
    def calculate(sessions: List[Session], granularity: Granularity) -> List[SessionsOverTimePoint]:
        """
        Count sessions per bucket (total, completed, cancelled).

        Only buckets that contain sessions are emitted, in chronological order.
        """
        buckets: Dict[Tuple[int, ...], Dict[str, Any]] = {}

        for session in sessions:
            if session.scheduled_from is None:
                continue
            key, label = TimeBucketer.bucket(session.scheduled_from, granularity)
            if key not in buckets:
                buckets[key] = {'label': label, 'total': 0, 'completed': 0, 'cancelled': 0}
            buckets[key]['total'] += 1
            if session.status == SessionStatus.COMPLETED:
                buckets[key]['completed'] += 1
            elif session.status == SessionStatus.CANCELLED:
                buckets[key]['cancelled'] += 1

        return [
            SessionsOverTimePoint(
                label=bucket['label'],
                total=bucket['total'],
                completed=bucket['completed'],
                cancelled=bucket['cancelled']
            )
            for _, bucket in sorted(buckets.items())
        ]


class IncomeOverTimeCalculator:
    """Calculates collected vs pending income per time bucket."""

    @staticmethod
    def calculate(items: List[LedgerItem], granularity: Granularity) -> List[IncomeOverTimePoint]:
        """
        Sum item amounts per bucket; paid counts as collected, anything else as pending.

        Only buckets that contain items are emitted, in chronological order.
        """
        buckets: Dict[Tuple[int, ...], Dict[str, Any]] = {}

        for item in items:
            key, label = TimeBucketer.bucket(item['date'], granularity)
            if key not in buckets:
                buckets[key] = {'label': label, 'collected': ZERO, 'pending': ZERO}
            amount = amount_or_zero(item.get('amount'))
            if item['status'] == PaymentStatus.PAID:
                buckets[key]['collected'] += amount
            else:
                buckets[key]['pending'] += amount

        return [
            IncomeOverTimePoint(
                label=bucket['label'],
                collected=bucket['collected'],
                pending=bucket['pending']
            )
            for _, bucket in sorted(buckets.items())
        ]


class SessionsByHourCalculator:
    """Calculates session counts per hour of the working day."""

    @staticmethod
    def calculate(sessions: List[Session]) -> List[CountRow]:
        """
        One row per hour from 08:00 to 20:00 inclusive, zero-filled.

        Sessions starting outside working hours are not shown.
        """
        hour_counts: Dict[int, int] = defaultdict(int)
        for session in sessions:
            if session.scheduled_from is None:
                continue
            local = ensure_local(session.scheduled_from)
            hour_counts[local.hour] += 1  # type: ignore[union-attr]

        return [
            CountRow(label=f"{hour}:00", count=hour_counts.get(hour, 0))
            for hour in range(WORKING_HOURS_START, WORKING_HOURS_END + 1)
        ]


class SessionsByWeekdayCalculator:
    """Calculates session counts per weekday."""

    @staticmethod
    def calculate(sessions: List[Session]) -> List[CountRow]:
        """Exactly seven rows, Monday first, zero-filled."""
        day_counts: Dict[int, int] = defaultdict(int)
        for session in sessions:
            if session.scheduled_from is None:
                continue
            day_counts[local_date(session.scheduled_from).weekday()] += 1

        return [
            CountRow(label=WEEKDAY_LABELS[day], count=day_counts.get(day, 0))
            for day in range(7)
        ]


class StatusBreakdownCalculator:
    """Calculates categorical status counts (zero rows omitted)."""

    SESSION_STATUS_ORDER = (
        SessionStatus.COMPLETED,
        SessionStatus.CONFIRMED,
        SessionStatus.PENDING,
        SessionStatus.CANCELLED,
    )
    PAYMENT_STATUS_ORDER = (
        PaymentStatus.PAID,
        PaymentStatus.PENDING,
        PaymentStatus.OVERDUE,
    )

    @staticmethod
    def sessions_by_status(sessions: List[Session]) -> List[CountRow]:
        counts: Dict[str, int] = defaultdict(int)
        for session in sessions:
            counts[session.status] += 1
        return StatusBreakdownCalculator._rows(counts, StatusBreakdownCalculator.SESSION_STATUS_ORDER)

    @staticmethod
    def payments_by_status(items: List[LedgerItem]) -> List[CountRow]:
        counts: Dict[str, int] = defaultdict(int)
        for item in items:
            counts[PaymentStatus(item['status'])] += 1
        return StatusBreakdownCalculator._rows(counts, StatusBreakdownCalculator.PAYMENT_STATUS_ORDER)

    @staticmethod
    def _rows(counts: Dict[str, int], order: Tuple[Any, ...]) -> List[CountRow]:
        return [
            CountRow(label=status.value, count=counts[status])
            for status in order
            if counts.get(status, 0) > 0
        ]


class TopPatientsCalculator:
    """Ranks patients by number of sessions."""

    @staticmethod
    def calculate(sessions: List[Session], limit: int = TOP_PATIENTS_LIMIT) -> List[TopPatientRow]:
        """
        Rank patients by session count, descending.

        Ties keep first-encountered order; sessions without a patient are skipped.
        """
        stats: Dict[str, Dict[str, Any]] = {}
        for session in sessions:
            patient_id = session.patient_id
            if not patient_id:
                continue
            if patient_id not in stats:
                stats[patient_id] = {
                    'name': session.patient_name or UNNAMED_PATIENT,
                    'sessions': 0
                }
            stats[patient_id]['sessions'] += 1

        ranked = sorted(stats.items(), key=lambda entry: entry[1]['sessions'], reverse=True)
        return [
            TopPatientRow(patient_id=patient_id, name=stat['name'], sessions=stat['sessions'])
            for patient_id, stat in ranked[:limit]
        ]


class TodaySummaryCalculator:
    """Calculates today's quick metrics."""

    @staticmethod
    def calculate(
        sessions: List[Session],
        items: List[LedgerItem],
        now: datetime
    ) -> TodaySummary:
        """
        Sessions scheduled and completed today, and income collected today.

        Args:
            sessions: Sessions (any window that includes today)
            items: Ledger items (any window that includes today)
            now: Reference instant defining "today"
        """
        today = local_date(now)
        todays_sessions = [
            s for s in sessions
            if s.scheduled_from is not None and local_date(s.scheduled_from) == today
        ]
        completed = sum(1 for s in todays_sessions if s.status == SessionStatus.COMPLETED)
        income_today = ZERO
        for item in items:
            if item['status'] == PaymentStatus.PAID and local_date(item['date']) == today:
                income_today += amount_or_zero(item.get('amount'))

        return TodaySummary(
            sessions_total=len(todays_sessions),
            sessions_completed=completed,
            income_today=income_today,
            progress=percentage(completed, len(todays_sessions))
        )
