"""
Payment model representing a recorded charge for a patient.

A payment may reference the session it settles through session_id; only those
references take part in reconciliation.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import field_validator

from models.base import RecordModel
from models.patient import PatientRef
from utils.datetime_utils import coerce_local_datetime


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class Payment(RecordModel):
    """Recorded payment snapshot."""

    id: str
    """Unique identifier for the payment."""

    session_id: Optional[str] = None
    """Session this payment settles, if any."""

    patient_id: Optional[str] = None

    patient: Optional[PatientRef] = None

    amount: Decimal
    """Amount charged. Numeric strings are accepted; anything else is malformed."""

    payment_date: datetime
    """Date the payment is due/recorded (practice timezone)."""

    status: PaymentStatus

    paid_date: Optional[datetime] = None

    description: Optional[str] = None

    @field_validator("payment_date", "paid_date", mode="before")
    @classmethod
    def _parse_dates(cls, v):
        return coerce_local_datetime(v)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("session_id", mode="before")
    @classmethod
    def _empty_session_id(cls, v):
        # Empty strings mean "no session"
        if v == "":
            return None
        return v

    @property
    def resolved_patient_id(self) -> Optional[str]:
        if self.patient_id:
            return self.patient_id
        return self.patient.id if self.patient else None

    @property
    def patient_name(self) -> Optional[str]:
        if self.patient is None:
            return None
        return self.patient.display_name or None
