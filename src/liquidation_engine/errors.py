"""Error kinds raised by the liquidation engine.

Every error is fatal to the single calculation that raised it and carries
enough context (employee, period, offending field) for the caller to log or
display it without re-deriving anything.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class LiquidationEngineError(Exception):
    """Base class for all engine errors."""

    def __init__(
        self,
        message: str,
        *,
        employee_id: str | None = None,
        period: Any = None,
        field: str | None = None,
    ):
        self.employee_id = employee_id
        self.period = period
        self.field = field
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        """Return error context as a plain dict."""
        return {
            "error": type(self).__name__,
            "message": str(self),
            "employee_id": self.employee_id,
            "period": str(self.period) if self.period is not None else None,
            "field": self.field,
        }


class NoContractForPeriodError(LiquidationEngineError):
    """Raised when the requested period precedes the contract start."""


class ContractExpiredError(LiquidationEngineError):
    """Raised when a fixed-term contract ended before the requested period."""


class NoParametersForPeriodError(LiquidationEngineError):
    """Raised when no PayrollParameters record applies to the period."""


class EmployeeNotConfiguredError(LiquidationEngineError):
    """Raised when the employee has no AFP/health configuration."""


class InvalidInputError(LiquidationEngineError):
    """Raised when an input is negative or out of range."""


class LiquidationInvariantError(LiquidationEngineError):
    """Raised when gross - deductions != net on a computed liquidation."""


class UnbalancedEntryError(LiquidationEngineError):
    """Raised when a journal batch does not balance.

    The whole batch is rejected; nothing is partially posted. When raised by
    JournalService.build_entry, `entry` holds the entry in REJECTED status.
    """

    def __init__(
        self,
        total_debit: Decimal,
        total_credit: Decimal,
        *,
        period: Any = None,
        entry: Any = None,
    ):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.discrepancy = abs(total_debit - total_credit)
        # The rejected JournalEntry, when raised while building one
        self.entry = entry
        super().__init__(
            f"Unbalanced journal entry: debit {total_debit} != credit "
            f"{total_credit} (discrepancy: {self.discrepancy})",
            period=period,
        )

    def context(self) -> dict[str, Any]:
        data = super().context()
        data.update(
            total_debit=str(self.total_debit),
            total_credit=str(self.total_credit),
            discrepancy=str(self.discrepancy),
        )
        return data
