"""Type definitions for the liquidation pipeline."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from liquidation_engine.calculators.money import as_decimal
from liquidation_engine.errors import InvalidInputError


def _coerce_decimals(obj: Any) -> None:
    """Normalize Decimal-annotated fields of a frozen dataclass in place."""
    for f in fields(obj):
        if f.type in ("Decimal", "Decimal | None"):
            value = getattr(obj, f.name)
            if value is not None and not isinstance(value, Decimal):
                object.__setattr__(obj, f.name, as_decimal(value))


class ContractType(str, Enum):
    """Employment contract types."""

    INDEFINITE = "indefinite"
    FIXED_TERM = "fixed_term"


class ModificationType(str, Enum):
    """Contract amendment types."""

    SALARY_CHANGE = "salary_change"
    HOURS_CHANGE = "hours_change"
    CONTRACT_TYPE_CHANGE = "contract_type_change"
    POSITION_CHANGE = "position_change"
    DEPARTMENT_CHANGE = "department_change"
    BENEFITS_CHANGE = "benefits_change"
    OTHER = "other"


class HealthScheme(str, Enum):
    """Health insurance schemes."""

    FONASA = "fonasa"  # public
    ISAPRE = "isapre"  # private plan


class WarningCode(str, Enum):
    """Non-fatal conditions reported alongside a liquidation."""

    NEGATIVE_TAXABLE_INCOME = "NEGATIVE_TAXABLE_INCOME"
    GRATIFICATION_CAPPED = "GRATIFICATION_CAPPED"
    IMPONIBLE_CAPPED = "IMPONIBLE_CAPPED"
    SOLIDARITY_LOAN_ESTIMATED = "SOLIDARITY_LOAN_ESTIMATED"
    DEDUCTION_LIMIT_EXCEEDED = "DEDUCTION_LIMIT_EXCEEDED"
    NEGATIVE_NET_PAY = "NEGATIVE_NET_PAY"


@dataclass(frozen=True, order=True)
class PayPeriod:
    """A calendar month used as a payroll period key."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidInputError(
                f"Month must be between 1 and 12, got {self.month}",
                field="month",
            )
        if self.year < 1:
            raise InvalidInputError(
                f"Year must be positive, got {self.year}", field="year"
            )

    @classmethod
    def parse(cls, value: str) -> PayPeriod:
        """Parse a 'YYYY-MM' string."""
        try:
            year_str, month_str = value.strip().split("-")
            return cls(int(year_str), int(month_str))
        except ValueError as e:
            raise InvalidInputError(
                f"Period must look like YYYY-MM, got {value!r}", field="period"
            ) from e

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        """Last calendar day of the month."""
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class Contract:
    """Employment terms at contract inception.

    Never edited in place; changes arrive as Amendments.
    """

    employee_id: str
    start_date: date
    contract_type: ContractType
    base_salary: Decimal
    weekly_hours: int
    position: str = ""
    department: str = ""
    end_date: date | None = None

    def __post_init__(self) -> None:
        _coerce_decimals(self)
        object.__setattr__(self, "contract_type", ContractType(self.contract_type))


@dataclass(frozen=True)
class Amendment:
    """An effective-dated delta over contract attributes.

    `new_values` holds only the fields that change. `sequence` is the
    creation order and breaks ties between amendments sharing a date.
    """

    effective_date: date
    modification_type: ModificationType
    new_values: Mapping[str, Any]
    old_values: Mapping[str, Any] = field(default_factory=dict)
    sequence: int = 0
    reason: str | None = None
    amendment_id: str | None = None

    def __post_init__(self) -> None:
        # Audit snapshots are read-only views
        object.__setattr__(self, "new_values", MappingProxyType(dict(self.new_values)))
        object.__setattr__(self, "old_values", MappingProxyType(dict(self.old_values)))


@dataclass(frozen=True)
class AppliedModification:
    """Audit record of an amendment folded into a resolution."""

    modification_type: ModificationType
    effective_date: date
    reason: str | None
    from_values: Mapping[str, Any]
    to_values: Mapping[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.modification_type.value,
            "effective_date": self.effective_date.isoformat(),
            "reason": self.reason,
            "from": {k: _plain(v) for k, v in self.from_values.items()},
            "to": {k: _plain(v) for k, v in self.to_values.items()},
        }


@dataclass(frozen=True)
class EffectiveContract:
    """Contract state as of a period cutoff. Derived, never persisted."""

    employee_id: str
    period: PayPeriod
    start_date: date
    end_date: date | None
    contract_type: ContractType
    base_salary: Decimal
    weekly_hours: int
    position: str
    department: str
    modifications_applied: tuple[AppliedModification, ...] = ()

    @property
    def unemployment_insurance_applicable(self) -> bool:
        """Fixed-term contracts are exempt from the employee-side contribution."""
        return self.contract_type == ContractType.INDEFINITE

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "period": str(self.period),
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "contract_type": self.contract_type.value,
            "base_salary": str(self.base_salary),
            "weekly_hours": self.weekly_hours,
            "position": self.position,
            "department": self.department,
            "unemployment_insurance_applicable": self.unemployment_insurance_applicable,
            "modifications_applied": [m.to_dict() for m in self.modifications_applied],
        }


@dataclass(frozen=True)
class EmployeePayrollConfig:
    """Per-employee social security selections."""

    afp_code: str | None
    health_scheme: HealthScheme | None
    afp_commission_rate: Decimal | None = None  # overrides the parameter table
    health_plan_uf: Decimal = Decimal("0")
    dependents: int = 0

    def __post_init__(self) -> None:
        _coerce_decimals(self)
        if self.health_scheme is not None:
            object.__setattr__(self, "health_scheme", HealthScheme(self.health_scheme))


@dataclass(frozen=True)
class PeriodInputs:
    """Variable inputs for one employee and period."""

    worked_days: int = 30
    overtime_hours: Decimal = Decimal("0")
    bonuses: Decimal = Decimal("0")
    allowances: Decimal = Decimal("0")
    other_deductions: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        _coerce_decimals(self)


@dataclass(frozen=True)
class TaxBracket:
    """Income tax bracket: tax = income * marginal_rate - fixed_deduction."""

    threshold: Decimal
    marginal_rate: Decimal
    fixed_deduction: Decimal = Decimal("0")
    label: str = ""

    def __post_init__(self) -> None:
        _coerce_decimals(self)


@dataclass(frozen=True)
class PayrollParameters:
    """Legal parameters applying from `valid_from` until superseded."""

    valid_from: date
    minimum_wage: Decimal
    uf_value: Decimal
    max_imponible_uf: Decimal
    max_cesantia_uf: Decimal
    family_allowance_income_limit_a: Decimal
    family_allowance_income_limit_b: Decimal
    family_allowance_income_limit_c: Decimal
    family_allowance_a: Decimal
    family_allowance_b: Decimal
    family_allowance_c: Decimal
    tax_brackets: tuple[TaxBracket, ...]
    afp_commission_rates: Mapping[str, Decimal] = field(default_factory=dict)

    # Statutory rates
    afp_rate: Decimal = Decimal("0.10")
    health_rate: Decimal = Decimal("0.07")
    unemployment_employee_rate: Decimal = Decimal("0.006")
    unemployment_employer_indefinite_rate: Decimal = Decimal("0.024")
    unemployment_employer_fixed_term_rate: Decimal = Decimal("0.030")
    sis_rate: Decimal = Decimal("0.0188")
    mutual_rate: Decimal = Decimal("0.0095")
    gratification_rate: Decimal = Decimal("0.25")
    gratification_cap_factor: Decimal = Decimal("4.75")
    overtime_multiplier: Decimal = Decimal("1.5")
    weeks_per_month: Decimal = Decimal("4.33")
    max_deduction_ratio: Decimal = Decimal("0.45")

    # Solidarity loan placeholder schedule
    solidarity_loan_rate: Decimal = Decimal("0.007")
    solidarity_loan_cap: Decimal = Decimal("15000")
    solidarity_loan_income_limit: Decimal = Decimal("900000")

    def __post_init__(self) -> None:
        _coerce_decimals(self)
        object.__setattr__(
            self,
            "afp_commission_rates",
            MappingProxyType(
                {k.upper(): as_decimal(v) for k, v in self.afp_commission_rates.items()}
            ),
        )
        object.__setattr__(
            self,
            "tax_brackets",
            tuple(sorted(self.tax_brackets, key=lambda b: b.threshold)),
        )
        limits = (
            self.family_allowance_income_limit_a,
            self.family_allowance_income_limit_b,
            self.family_allowance_income_limit_c,
        )
        if not limits[0] < limits[1] < limits[2]:
            raise InvalidInputError(
                f"Family allowance limits must be ascending, got {limits}",
                field="family_allowance_income_limit",
            )

    def to_dict(self) -> dict[str, Any]:
        """Every field, with amounts and rates as strings."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "tax_brackets":
                data[f.name] = [
                    {
                        "threshold": str(b.threshold),
                        "marginal_rate": str(b.marginal_rate),
                        "fixed_deduction": str(b.fixed_deduction),
                        "label": b.label,
                    }
                    for b in value
                ]
            elif f.name == "afp_commission_rates":
                data[f.name] = {code: str(rate) for code, rate in sorted(value.items())}
            elif f.name == "valid_from":
                data[f.name] = value.isoformat()
            else:
                data[f.name] = str(value)
        return data

    def family_allowance_brackets(self) -> list[tuple[Decimal, Decimal]]:
        """Ascending (income_limit, amount_per_dependent) tiers."""
        return [
            (self.family_allowance_income_limit_a, self.family_allowance_a),
            (self.family_allowance_income_limit_b, self.family_allowance_b),
            (self.family_allowance_income_limit_c, self.family_allowance_c),
        ]


@dataclass(frozen=True)
class EmployerCosts:
    """Employer-side contributions. Informational, not part of net pay."""

    sis: Decimal
    unemployment_employer: Decimal
    mutual_insurance: Decimal

    @property
    def total(self) -> Decimal:
        return self.sis + self.unemployment_employer + self.mutual_insurance


@dataclass(frozen=True)
class CalculationWarning:
    """A non-fatal condition the caller must be told about."""

    code: WarningCode
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code.value, "message": self.message}


@dataclass(frozen=True)
class LiquidationResult:
    """Itemized liquidation for one employee and period.

    Invariant: gross_income - total_deductions == net_income.
    """

    calculation_id: str
    employee_id: str
    period: PayPeriod
    contract_type: ContractType
    position: str
    department: str

    # Inputs echoed back
    base_salary: Decimal
    worked_days: int
    overtime_hours: Decimal

    # Haberes
    proportional_salary: Decimal
    gratification: Decimal
    overtime_payment: Decimal
    bonuses: Decimal
    allowances: Decimal
    family_allowance: Decimal
    gross_imponible_income: Decimal
    gross_income: Decimal

    # Bases
    capped_imponible: Decimal
    cesantia_base: Decimal

    # Descuentos
    afp_contribution: Decimal
    afp_commission: Decimal
    health_contribution: Decimal
    unemployment_employee: Decimal
    taxable_income: Decimal
    tax_marginal_rate: Decimal
    tax_fixed_deduction: Decimal
    income_tax: Decimal
    solidarity_loan: Decimal
    other_deductions: Decimal
    total_deductions: Decimal

    net_income: Decimal
    employer_costs: EmployerCosts
    solidarity_loan_is_estimate: bool = False
    warnings: tuple[CalculationWarning, ...] = ()

    def gross_components(self) -> dict[str, Decimal]:
        """Components that add up to gross_income."""
        return {
            "proportional_salary": self.proportional_salary,
            "gratification": self.gratification,
            "overtime_payment": self.overtime_payment,
            "bonuses": self.bonuses,
            "allowances": self.allowances,
            "family_allowance": self.family_allowance,
        }

    def deduction_components(self) -> dict[str, Decimal]:
        """Components that add up to total_deductions."""
        return {
            "afp_contribution": self.afp_contribution,
            "afp_commission": self.afp_commission,
            "health_contribution": self.health_contribution,
            "unemployment_employee": self.unemployment_employee,
            "income_tax": self.income_tax,
            "solidarity_loan": self.solidarity_loan,
            "other_deductions": self.other_deductions,
        }

    def has_warning(self, code: WarningCode) -> bool:
        return any(w.code == code for w in self.warnings)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict with deterministic key order."""
        return {
            "calculation_id": self.calculation_id,
            "employee_id": self.employee_id,
            "period": str(self.period),
            "contract_type": self.contract_type.value,
            "position": self.position,
            "department": self.department,
            "base_salary": str(self.base_salary),
            "worked_days": self.worked_days,
            "overtime_hours": str(self.overtime_hours),
            **{k: str(v) for k, v in self.gross_components().items()},
            "gross_imponible_income": str(self.gross_imponible_income),
            "gross_income": str(self.gross_income),
            "capped_imponible": str(self.capped_imponible),
            "cesantia_base": str(self.cesantia_base),
            **{k: str(v) for k, v in self.deduction_components().items()},
            "taxable_income": str(self.taxable_income),
            "tax_marginal_rate": str(self.tax_marginal_rate),
            "tax_fixed_deduction": str(self.tax_fixed_deduction),
            "total_deductions": str(self.total_deductions),
            "net_income": str(self.net_income),
            "employer_costs": {
                "sis": str(self.employer_costs.sis),
                "unemployment_employer": str(self.employer_costs.unemployment_employer),
                "mutual_insurance": str(self.employer_costs.mutual_insurance),
                "total": str(self.employer_costs.total),
            },
            "solidarity_loan_is_estimate": self.solidarity_loan_is_estimate,
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class JournalLine:
    """One side of a double-entry posting."""

    account_code: str
    account_name: str
    debit_amount: Decimal
    credit_amount: Decimal
    description: str
    line_number: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "line_number": self.line_number,
            "account_code": self.account_code,
            "account_name": self.account_name,
            "debit_amount": str(self.debit_amount),
            "credit_amount": str(self.credit_amount),
            "description": self.description,
        }


def _plain(value: Any) -> Any:
    """Make an audit value JSON-friendly."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, date)):
        return str(value)
    return value
