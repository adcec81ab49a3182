"""
Conversion between user-facing decimal amounts and integer cents.

Everything past this module works in cents; decimals only appear when parsing
form input or rendering JSON.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import InvalidInputError

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Parse ``value`` and round it to the cent, half away from zero."""
    if isinstance(value, bool):
        raise InvalidInputError("invalid_amount")
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float)):
            amount = Decimal(str(value))
        elif isinstance(value, str):
            amount = Decimal(value.strip())
        else:
            raise InvalidInputError("invalid_amount")
        if not amount.is_finite():
            raise InvalidInputError("invalid_amount")
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidInputError("invalid_amount") from None


def parse_amount(value: Any) -> int:
    """Decimal amount in major units (``"12.345"``) to cents (``1235``)."""
    return int(to_decimal(value) * 100)


def from_cents(cents: int) -> Decimal:
    # built from digits, so no context rounding however large the total
    return Decimal(f"{int(cents)}e-2")


def format_amount(cents: int, symbol: str = "") -> str:
    amount = from_cents(cents)
    if amount < 0:
        return f"-{symbol}{amount.copy_negate()}"
    return f"{symbol}{amount}"
