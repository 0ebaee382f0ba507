"""Journal line builder."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from liquidation_engine.calculators.money import ZERO, round_currency
from liquidation_engine.calculators.types import JournalLine


class JournalLineBuilder:
    """Builds double-entry journal lines.

    Side conventions (non-negotiable):
    - DEBIT lines carry the amount in debit_amount, credit_amount is 0
    - CREDIT lines carry the amount in credit_amount, debit_amount is 0
    - Amounts are whole currency units, never negative
    - Zero amounts produce no line at all

    Line numbers are assigned by the caller so that one sequence can span
    every employee in a batch.
    """

    @staticmethod
    def format_description(
        employee_id: str, position: str, department: str, label: str
    ) -> str:
        """Build the 'employee | position | department | label' description."""
        return " | ".join(
            [employee_id, position or "-", department or "-", label]
        )

    @staticmethod
    def create_debit_line(
        account_code: str,
        account_name: str,
        amount: Decimal,
        description: str,
        line_number: int,
    ) -> JournalLine | None:
        """Create a debit line, or None for a zero amount."""
        amount = round_currency(abs(amount))
        if amount == 0:
            return None
        return JournalLine(
            account_code=account_code,
            account_name=account_name,
            debit_amount=amount,
            credit_amount=ZERO,
            description=description,
            line_number=line_number,
        )

    @staticmethod
    def create_credit_line(
        account_code: str,
        account_name: str,
        amount: Decimal,
        description: str,
        line_number: int,
    ) -> JournalLine | None:
        """Create a credit line, or None for a zero amount."""
        amount = round_currency(abs(amount))
        if amount == 0:
            return None
        return JournalLine(
            account_code=account_code,
            account_name=account_name,
            debit_amount=ZERO,
            credit_amount=amount,
            description=description,
            line_number=line_number,
        )

    @staticmethod
    def sum_debits(lines: Iterable[JournalLine]) -> Decimal:
        return sum((line.debit_amount for line in lines), ZERO)

    @staticmethod
    def sum_credits(lines: Iterable[JournalLine]) -> Decimal:
        return sum((line.credit_amount for line in lines), ZERO)

    @staticmethod
    def validate_line_sides(lines: Iterable[JournalLine]) -> list[str]:
        """Validate that every line has exactly one positive side.

        Returns list of error messages (empty if all valid).
        """
        errors: list[str] = []

        for line in lines:
            if line.debit_amount < 0 or line.credit_amount < 0:
                errors.append(
                    f"Line {line.line_number} ({line.account_code}) has a negative amount"
                )
            elif (line.debit_amount > 0) == (line.credit_amount > 0):
                errors.append(
                    f"Line {line.line_number} ({line.account_code}) must have exactly "
                    f"one non-zero side"
                )

        return errors

    @staticmethod
    def sum_by_account(lines: Iterable[JournalLine]) -> dict[str, Decimal]:
        """Net balance (debit - credit) per account code."""
        totals: dict[str, Decimal] = {}
        for line in lines:
            totals[line.account_code] = (
                totals.get(line.account_code, ZERO) + line.debit_amount - line.credit_amount
            )
        return totals
