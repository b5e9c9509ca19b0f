"""
Money helpers shared by the ledger and analytics calculations.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal('0')
CENT = Decimal('0.01')


def amount_or_zero(value: Any) -> Decimal:
    """
    Numeric amount as Decimal, or zero when missing or not a number.

    Mirrors how amounts from the API are read: strings and floats are accepted,
    anything non-numeric (or NaN/infinite) counts as zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO
    return amount if amount.is_finite() else ZERO


def to_float(amount: Decimal) -> float:
    """Round to cents and convert to float for JSON output."""
    return float(amount.quantize(CENT))
