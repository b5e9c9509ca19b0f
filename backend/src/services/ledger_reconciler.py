"""
Ledger reconciliation.

Merges recorded payments and scheduled sessions into one list of ledger items,
synthesizing a virtual pending item for every past, costed session that no
payment references yet.
"""
from typing import Dict, Iterable, List, Set
from datetime import datetime
import logging

from core.constants import VIRTUAL_ID_PREFIX, NO_PATIENT_NAME, VIRTUAL_DESCRIPTION_FALLBACK
from models import Payment, PaymentStatus, Session, SessionStatus, parse_records
from services.ledger_types import LedgerItem
from utils.datetime_utils import ensure_local

logger = logging.getLogger(__name__)


class LedgerReconciler:
    """
    Builds ledger items from payments and sessions.

    Guarantees:
    - Every payment maps to exactly one real item
    - A session yields at most one virtual item
    - A session referenced by any payment's session_id never yields a virtual item
    """

    @staticmethod
    def reconcile(
        sessions: Iterable[Session],
        payments: Iterable[Payment],
        now: datetime
    ) -> List[LedgerItem]:
        """
        Reconcile sessions and payments for the active window.

        Args:
            sessions: Sessions in the window (models or raw records)
            payments: Payments in the window (models or raw records)
            now: Reference instant deciding which sessions are past

        Returns:
            Real payment items followed by virtual pending items
        """
        reference = ensure_local(now)
        if reference is None:
            raise ValueError("now is required for reconciliation")

        payment_list = parse_records(payments, Payment)
        session_list = LedgerReconciler.unique_sessions(parse_records(sessions, Session))

        paid_session_ids = LedgerReconciler.session_ids_with_payment(payment_list)

        real_items = [LedgerReconciler.payment_to_item(payment) for payment in payment_list]
        virtual_items = [
            LedgerReconciler.session_to_virtual_item(session)
            for session in session_list
            if LedgerReconciler.is_eligible_for_virtual_item(session, paid_session_ids, reference)
        ]

        logger.debug(
            f"Reconciled {len(real_items)} payments and {len(virtual_items)} virtual items "
            f"from {len(session_list)} sessions"
        )
        return real_items + virtual_items

    @staticmethod
    def unique_sessions(sessions: List[Session]) -> List[Session]:
        """Drop repeated session ids; the last record seen for an id wins."""
        sessions_by_id: Dict[str, Session] = {}
        for session in sessions:
            sessions_by_id[session.id] = session
        return list(sessions_by_id.values())

    @staticmethod
    def session_ids_with_payment(payments: Iterable[Payment]) -> Set[str]:
        """Session ids referenced by at least one payment (empty ids ignored)."""
        return {payment.session_id for payment in payments if payment.session_id}

    @staticmethod
    def is_eligible_for_virtual_item(
        session: Session,
        paid_session_ids: Set[str],
        now: datetime
    ) -> bool:
        """
        Check whether a session should appear as an unpaid ledger entry.

        All must hold: the session ended before now or is completed; no payment
        references it; it has a positive cost. Sessions without a schedule are
        never eligible.
        """
        if not session.has_schedule:
            return False
        is_past = session.scheduled_to < now or session.status == SessionStatus.COMPLETED  # type: ignore[operator]
        if not is_past:
            return False
        if session.id in paid_session_ids:
            return False
        return session.cost is not None and session.cost > 0

    @staticmethod
    def payment_to_item(payment: Payment) -> LedgerItem:
        """Convert a payment to its real ledger item."""
        return LedgerItem(
            id=payment.id,
            is_virtual=False,
            status=payment.status,
            amount=payment.amount,
            date=payment.payment_date,
            patient_id=payment.resolved_patient_id,
            patient_name=payment.patient_name or NO_PATIENT_NAME,
            session_id=payment.session_id,
            description=payment.description,
            payment=payment,
        )

    @staticmethod
    def session_to_virtual_item(session: Session) -> LedgerItem:
        """Convert an unpaid session to a virtual pending ledger item."""
        return LedgerItem(
            id=f"{VIRTUAL_ID_PREFIX}{session.id}",
            is_virtual=True,
            status=PaymentStatus.PENDING,
            amount=session.cost,  # type: ignore[typeddict-item]
            date=session.scheduled_from,  # type: ignore[typeddict-item]
            patient_id=session.patient_id,
            patient_name=session.patient_name or NO_PATIENT_NAME,
            session_id=session.id,
            description=session.session_summary or VIRTUAL_DESCRIPTION_FALLBACK,
            payment=None,
        )


def reconcile(
    sessions: Iterable[Session],
    payments: Iterable[Payment],
    now: datetime
) -> List[LedgerItem]:
    """Module-level shortcut for LedgerReconciler.reconcile."""
    return LedgerReconciler.reconcile(sessions, payments, now)
