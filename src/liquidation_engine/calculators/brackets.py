"""Ordered threshold lookups shared by the tax and family allowance tables."""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence, TypeVar

T = TypeVar("T")


def lookup_floor(table: Sequence[tuple[Decimal, T]], value: Decimal) -> T | None:
    """Return the entry with the highest threshold <= value.

    `table` is (threshold, result) pairs in any order. Used for progressive
    tax brackets, where thresholds are lower bounds.
    """
    match: tuple[Decimal, T] | None = None
    for threshold, result in table:
        if threshold <= value and (match is None or threshold > match[0]):
            match = (threshold, result)
    return match[1] if match else None


def lookup_ceiling(table: Sequence[tuple[Decimal, T]], value: Decimal) -> T | None:
    """Return the entry with the lowest limit >= value.

    `table` is (limit, result) pairs in any order. Used for tiers defined
    by upper income limits (family allowance). None means above every tier.
    """
    match: tuple[Decimal, T] | None = None
    for limit, result in table:
        if value <= limit and (match is None or limit < match[0]):
            match = (limit, result)
    return match[1] if match else None
