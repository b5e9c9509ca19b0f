"""
Test configuration and shared fixtures for the billing engine test suite.

The engine is pure, so no database or network is involved: fixtures build raw
camelCase API records and a fixed reference "now".
"""

import pytest
from datetime import datetime
from typing import Any, Dict, List

from utils.datetime_utils import LOCAL_TZ
from tests.factories import make_patient, make_payment, make_session


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant: 2024-03-15 12:00 practice time (a Friday)."""
    return datetime(2024, 3, 15, 12, 0, tzinfo=LOCAL_TZ)


@pytest.fixture
def sample_sessions() -> List[Dict[str, Any]]:
    """Sessions in March 2024: two past, one future, one cancelled without fee."""
    return [
        make_session(
            "s1", "2024-03-04T09:00:00-03:00", cost="6000",
            status="completed", patient_id="p1", first_name="Juan", last_name="Perez"
        ),
        make_session(
            "s2", "2024-03-11T10:00:00-03:00", cost="7500",
            status="confirmed", patient_id="p2", first_name="Maria", last_name="Garcia"
        ),
        make_session(
            "s3", "2024-03-20T15:00:00-03:00", cost="6000",
            status="pending", patient_id="p1", first_name="Juan", last_name="Perez"
        ),
        make_session(
            "s4", "2024-03-12T11:00:00-03:00", cost=None,
            status="cancelled", patient_id="p3", first_name="Ana", last_name="Lopez"
        ),
    ]


@pytest.fixture
def sample_payments() -> List[Dict[str, Any]]:
    """One paid payment settling s2 and one overdue payment without a session."""
    return [
        make_payment(
            "pay1", "7500", "2024-03-11T10:00:00-03:00", status="paid",
            session_id="s2", patient_id="p2", first_name="Maria", last_name="Garcia"
        ),
        make_payment(
            "pay2", "3000", "2024-03-02T09:00:00-03:00", status="overdue",
            patient_id="p3", first_name="Ana", last_name="Lopez"
        ),
    ]


@pytest.fixture
def sample_patients() -> List[Dict[str, Any]]:
    return [
        make_patient("p1", "Juan", "Perez", "2023-11-02T10:00:00-03:00"),
        make_patient("p2", "Maria", "Garcia", "2024-03-05T10:00:00-03:00"),
        make_patient("p3", "Ana", "Lopez", "2024-03-10T10:00:00-03:00"),
    ]
