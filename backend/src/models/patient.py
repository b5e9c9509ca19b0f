"""
Patient records as returned by the practice API.

Only the fields the analytics need are modeled: identity, name and the
creation timestamp used for the "new patients in period" metric.
"""

from datetime import datetime
from typing import Optional

from pydantic import field_validator

from models.base import RecordModel
from utils.datetime_utils import coerce_local_datetime


def format_patient_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    """Join first and last name the way the practice displays them."""
    return f"{first_name or ''} {last_name or ''}".strip()


class PatientRef(RecordModel):
    """Patient summary embedded in session and payment records."""

    id: str
    """Patient identifier."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return format_patient_name(self.first_name, self.last_name)


class Patient(RecordModel):
    """Patient entity from the patient listing endpoint."""

    id: str
    """Unique identifier for the patient."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None

    created_at: Optional[datetime] = None
    """Timestamp when the patient was first created (practice timezone)."""

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, v):
        return coerce_local_datetime(v)

    @property
    def display_name(self) -> str:
        return format_patient_name(self.first_name, self.last_name)
