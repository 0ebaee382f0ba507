"""Monetary helpers.

CLP has no minor unit: every amount is rounded to whole currency units,
half up, after each pipeline stage.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CURRENCY_UNIT = Decimal("1")
ZERO = Decimal("0")


def round_currency(amount: Decimal) -> Decimal:
    """Round to whole currency units (ROUND_HALF_UP)."""
    return amount.quantize(CURRENCY_UNIT, rounding=ROUND_HALF_UP)


def as_decimal(value: Any) -> Decimal:
    """Coerce an int/str/Decimal into Decimal without going through float."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # repr keeps the shortest round-tripping form, not the binary expansion
        return Decimal(repr(value))
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e
