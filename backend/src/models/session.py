"""
Session model representing a scheduled therapy session.

Sessions are owned by the scheduling service and fetched per calendar month.
The billing engine reads them to synthesize pending ledger entries for past,
costed sessions that have no payment recorded yet.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import field_validator

from models.base import RecordModel
from models.patient import PatientRef
from utils.datetime_utils import coerce_local_datetime


class SessionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Session(RecordModel):
    """
    Scheduled session snapshot.

    scheduled_from/scheduled_to are optional at the model level: sessions without
    them are valid API records but are excluded from planning and reconciliation.
    """

    id: str
    """Unique identifier for the session."""

    scheduled_from: Optional[datetime] = None
    """Scheduled start (practice timezone)."""

    scheduled_to: Optional[datetime] = None
    """Scheduled end (practice timezone)."""

    status: SessionStatus = SessionStatus.PENDING

    cost: Optional[Decimal] = None
    """Session fee; None or non-positive means the session is not billable."""

    session_summary: Optional[str] = None
    """Free-text summary, used as description of the virtual ledger item."""

    patient: Optional[PatientRef] = None

    @field_validator("scheduled_from", "scheduled_to", mode="before")
    @classmethod
    def _parse_schedule(cls, v):
        return coerce_local_datetime(v)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def patient_id(self) -> Optional[str]:
        return self.patient.id if self.patient else None

    @property
    def patient_name(self) -> Optional[str]:
        if self.patient is None:
            return None
        return self.patient.display_name or None

    @property
    def has_schedule(self) -> bool:
        return self.scheduled_from is not None and self.scheduled_to is not None
