# Package initialization
# Records consumed from the practice API (read-only to the engine)
from .base import RecordModel, parse_records
from .patient import Patient, PatientRef
from .session import Session, SessionStatus
from .payment import Payment, PaymentStatus

__all__ = [
    "RecordModel",
    "parse_records",
    "Patient",
    "PatientRef",
    "Session",
    "SessionStatus",
    "Payment",
    "PaymentStatus",
]
