"""Journal line generation for payroll provisioning entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Sequence

from liquidation_engine.calculators.line_builder import JournalLineBuilder
from liquidation_engine.calculators.types import (
    JournalLine,
    LiquidationResult,
    PayPeriod,
)
from liquidation_engine.config import get_settings
from liquidation_engine.errors import InvalidInputError, UnbalancedEntryError
from liquidation_engine.services.state_machine import (
    JournalEntryStatus,
    JournalStateMachine,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    """A chart-of-accounts entry."""

    code: str
    name: str


@dataclass(frozen=True)
class AccountMap:
    """Accounts used for each liquidation component.

    Defaults follow the Chilean chart of accounts: 6.2.x are remuneration
    expenses, 2.1.x are payables.
    """

    # Expenses (debit)
    base_salary: Account = Account("6.2.1.001", "Sueldo Base")
    overtime: Account = Account("6.2.1.002", "Horas Extras")
    bonuses: Account = Account("6.2.1.004", "Bonificaciones")
    gratification: Account = Account("6.2.1.005", "Gratificación Legal Art. 50")
    allowances: Account = Account("6.2.1.006", "Asignaciones")
    family_allowance: Account = Account("6.2.1.008", "Asignación Familiar")

    # Employee withholdings (credit)
    afp: Account = Account("2.1.2.001", "AFP por Pagar")
    health: Account = Account("2.1.2.002", "Salud por Pagar")
    unemployment: Account = Account("2.1.2.003", "Cesantía por Pagar")
    income_tax: Account = Account("2.1.3.001", "Impuesto 2da Categoría por Pagar")
    solidarity_loan: Account = Account("2.1.3.002", "Préstamo Solidario por Pagar")
    other_deductions: Account = Account("2.1.4.001", "Otros Descuentos por Pagar")
    net_pay: Account = Account("2.1.1.001", "Líquidos por Pagar")

    # Employer contributions
    sis_expense: Account = Account("6.2.2.003", "SIS Empleador")
    sis_payable: Account = Account("2.1.2.004", "SIS por Pagar")
    unemployment_employer_expense: Account = Account("6.2.2.002", "Cesantía Empleador")
    unemployment_employer_payable: Account = Account("2.1.2.003", "Cesantía por Pagar")
    mutual_expense: Account = Account("6.2.2.006", "Mutual Empleador")
    mutual_payable: Account = Account("2.1.2.006", "Mutual por Pagar")


@dataclass
class JournalEntry:
    """Provisioning entry header with its lines."""

    period: PayPeriod
    description: str
    reference: str
    lines: list[JournalLine] = field(default_factory=list)
    status: JournalEntryStatus = JournalEntryStatus.BUILDING
    employee_count: int = 0

    @property
    def total_debit(self) -> Decimal:
        return JournalLineBuilder.sum_debits(self.lines)

    @property
    def total_credit(self) -> Decimal:
        return JournalLineBuilder.sum_credits(self.lines)

    def add_lines(self, lines: Sequence[JournalLine]) -> None:
        """Append lines; only allowed while the entry is being built."""
        if not JournalStateMachine.can_modify_lines(self.status):
            raise InvalidInputError(
                f"Journal entry {self.reference} is {self.status.value}; "
                f"lines cannot change",
                period=self.period,
                field="lines",
            )
        self.lines.extend(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": str(self.period),
            "description": self.description,
            "reference": self.reference,
            "status": self.status.value,
            "employee_count": self.employee_count,
            "total_debit": str(self.total_debit),
            "total_credit": str(self.total_credit),
            "account_balances": {
                code: str(balance)
                for code, balance in JournalLineBuilder.sum_by_account(self.lines).items()
            },
            "lines": [line.to_dict() for line in self.lines],
        }


class JournalService:
    """Service for generating balanced payroll journal entries.

    Each liquidation result expands into debit lines for its earnings and
    credit lines for its withholdings and net pay, so every employee's block
    balances on its own. Optional employer contribution lines are posted as
    self-balancing expense/payable pairs.

    The batch is all-or-nothing: if the totals differ by more than the
    tolerance, no lines are returned.
    """

    def __init__(
        self,
        account_map: AccountMap | None = None,
        include_employer_costs: bool | None = None,
        tolerance: Decimal | None = None,
    ):
        settings = None
        if include_employer_costs is None or tolerance is None:
            settings = get_settings()

        self.accounts = account_map or AccountMap()
        self.include_employer_costs = (
            include_employer_costs
            if include_employer_costs is not None
            else settings.include_employer_costs
        )
        self.tolerance = (
            tolerance if tolerance is not None else settings.journal_balance_tolerance
        )

    def generate(self, results: Sequence[LiquidationResult]) -> list[JournalLine]:
        """Generate balanced journal lines for a batch of liquidations.

        Raises:
            UnbalancedEntryError: If debits and credits differ beyond tolerance
        """
        lines = self._build_lines(results)
        self.validate_balance(lines, period=self._batch_period(results))
        return lines

    def build_entry(
        self, results: Sequence[LiquidationResult], period: PayPeriod
    ) -> JournalEntry:
        """Build a validated provisioning entry for a period.

        The entry is left in VALIDATED status; callers accept it once posted.
        On imbalance the entry is marked REJECTED and UnbalancedEntryError
        propagates.
        """
        for result in results:
            if result.period != period:
                raise InvalidInputError(
                    f"Liquidation for {result.employee_id} belongs to {result.period}, "
                    f"not {period}",
                    employee_id=result.employee_id,
                    period=period,
                    field="period",
                )

        entry = JournalEntry(
            period=period,
            description=(
                f"Provisión Remuneraciones {period} - {len(results)} empleados"
            ),
            reference=f"REM-{period}",
            employee_count=len(results),
        )
        entry.add_lines(self._build_lines(results))

        try:
            self.validate_balance(entry.lines, period=period)
        except UnbalancedEntryError as e:
            self._transition(entry, JournalEntryStatus.REJECTED)
            e.entry = entry
            raise

        self._transition(entry, JournalEntryStatus.VALIDATED)
        logger.info(
            "Journal entry %s: %d lines, %d employees, debit=%s credit=%s",
            entry.reference,
            len(entry.lines),
            entry.employee_count,
            entry.total_debit,
            entry.total_credit,
        )
        return entry

    def accept(self, entry: JournalEntry) -> JournalEntry:
        """Mark a validated entry as accepted."""
        self._transition(entry, JournalEntryStatus.ACCEPTED)
        return entry

    def reject(self, entry: JournalEntry, reason: str | None = None) -> JournalEntry:
        """Mark an entry as rejected."""
        self._transition(entry, JournalEntryStatus.REJECTED)
        logger.info("Journal entry %s rejected: %s", entry.reference, reason or "-")
        return entry

    def validate_balance(
        self, lines: Sequence[JournalLine], period: PayPeriod | None = None
    ) -> None:
        """Check that every line is one-sided and the totals balance.

        Raises:
            InvalidInputError: If a line has both sides, no side or a negative side
            UnbalancedEntryError: With totals and discrepancy
        """
        errors = JournalLineBuilder.validate_line_sides(lines)
        if errors:
            raise InvalidInputError(
                f"Malformed journal lines: {'; '.join(errors)}",
                period=period,
                field="lines",
            )

        total_debit = JournalLineBuilder.sum_debits(lines)
        total_credit = JournalLineBuilder.sum_credits(lines)

        if abs(total_debit - total_credit) > self.tolerance:
            logger.warning(
                "Rejecting unbalanced journal batch: debit=%s credit=%s",
                total_debit,
                total_credit,
            )
            raise UnbalancedEntryError(total_debit, total_credit, period=period)

    def _build_lines(self, results: Sequence[LiquidationResult]) -> list[JournalLine]:
        """Build lines for every result with one contiguous numbering."""
        lines: list[JournalLine] = []
        for result in results:
            lines.extend(self._lines_for_result(result, first_line=len(lines) + 1))
        return lines

    def _lines_for_result(
        self, result: LiquidationResult, first_line: int
    ) -> list[JournalLine]:
        """Build the journal block for one liquidation."""
        accounts = self.accounts
        debits: list[tuple[Account, Decimal, str]] = [
            (accounts.base_salary, result.proportional_salary, "Sueldo Base"),
            (accounts.gratification, result.gratification, "Gratificación Legal"),
            (accounts.overtime, result.overtime_payment, "Horas Extras"),
            (accounts.bonuses, result.bonuses, "Bonificaciones"),
            (accounts.allowances, result.allowances, "Asignaciones"),
            (accounts.family_allowance, result.family_allowance, "Asignación Familiar"),
        ]
        credits: list[tuple[Account, Decimal, str]] = [
            (accounts.afp, result.afp_contribution, "Cotización AFP"),
            (accounts.afp, result.afp_commission, "Comisión AFP"),
            (accounts.health, result.health_contribution, "Cotización Salud"),
            (accounts.unemployment, result.unemployment_employee, "Seguro Cesantía"),
            (accounts.income_tax, result.income_tax, "Impuesto Único"),
            (accounts.solidarity_loan, result.solidarity_loan, "Préstamo Solidario"),
            (accounts.other_deductions, result.other_deductions, "Otros Descuentos"),
        ]

        # (account, amount, label, is_debit)
        postings: list[tuple[Account, Decimal, str, bool]] = []
        postings.extend((a, amount, label, True) for a, amount, label in debits)
        postings.extend((a, amount, label, False) for a, amount, label in credits)

        # Negative net pay means the employee owes the difference
        postings.append(
            (accounts.net_pay, result.net_income, "Líquido a Pagar", result.net_income < 0)
        )

        if self.include_employer_costs:
            costs = result.employer_costs
            for expense, payable, amount, label in (
                (accounts.sis_expense, accounts.sis_payable, costs.sis, "SIS Empleador"),
                (
                    accounts.unemployment_employer_expense,
                    accounts.unemployment_employer_payable,
                    costs.unemployment_employer,
                    "Cesantía Empleador",
                ),
                (
                    accounts.mutual_expense,
                    accounts.mutual_payable,
                    costs.mutual_insurance,
                    "Mutual Empleador",
                ),
            ):
                postings.append((expense, amount, label, True))
                postings.append((payable, amount, label, False))

        lines: list[JournalLine] = []
        for account, amount, label, is_debit in postings:
            description = JournalLineBuilder.format_description(
                result.employee_id, result.position, result.department, label
            )
            create = (
                JournalLineBuilder.create_debit_line
                if is_debit
                else JournalLineBuilder.create_credit_line
            )
            line = create(
                account.code,
                account.name,
                amount,
                description,
                first_line + len(lines),
            )
            if line is not None:
                lines.append(line)

        return lines

    def _transition(self, entry: JournalEntry, to_status: JournalEntryStatus) -> None:
        JournalStateMachine.validate_transition(entry.status, to_status)
        logger.debug(
            "Journal entry %s: %s -> %s",
            entry.reference,
            entry.status.value,
            to_status.value,
        )
        entry.status = to_status

    @staticmethod
    def _batch_period(results: Sequence[LiquidationResult]) -> PayPeriod | None:
        periods = {r.period for r in results}
        return periods.pop() if len(periods) == 1 else None
