"""Pydantic schemas for the JSON payroll and parameter files."""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from liquidation_engine.calculators.types import (
    Amendment,
    Contract,
    ContractType,
    EmployeePayrollConfig,
    HealthScheme,
    ModificationType,
    PayPeriod,
    PayrollParameters,
    PeriodInputs,
    TaxBracket,
)


# ============================================================================
# Payroll file schemas
# ============================================================================


class ContractSchema(BaseModel):
    """Schema for a base contract."""

    model_config = ConfigDict(extra="forbid")

    employee_id: str
    start_date: date
    end_date: date | None = None
    contract_type: ContractType
    base_salary: Decimal
    weekly_hours: int
    position: str = ""
    department: str = ""

    def to_domain(self) -> Contract:
        return Contract(**self.model_dump())


class AmendmentSchema(BaseModel):
    """Schema for a contract amendment."""

    model_config = ConfigDict(extra="forbid")

    effective_date: date
    modification_type: ModificationType
    new_values: dict[str, Any]
    old_values: dict[str, Any] = Field(default_factory=dict)
    sequence: int = 0
    reason: str | None = None
    amendment_id: str | None = None

    def to_domain(self) -> Amendment:
        return Amendment(**self.model_dump())


class EmployeeConfigSchema(BaseModel):
    """Schema for per-employee AFP and health selections."""

    model_config = ConfigDict(extra="forbid")

    afp_code: str | None = None
    health_scheme: HealthScheme | None = None
    afp_commission_rate: Decimal | None = None
    health_plan_uf: Decimal = Decimal("0")
    dependents: int = 0

    def to_domain(self) -> EmployeePayrollConfig:
        return EmployeePayrollConfig(**self.model_dump())


class PeriodInputsSchema(BaseModel):
    """Schema for the variable inputs of one period."""

    model_config = ConfigDict(extra="forbid")

    worked_days: int = 30
    overtime_hours: Decimal = Decimal("0")
    bonuses: Decimal = Decimal("0")
    allowances: Decimal = Decimal("0")
    other_deductions: Decimal = Decimal("0")

    def to_domain(self) -> PeriodInputs:
        return PeriodInputs(**self.model_dump())


class EmployeePayrollSchema(BaseModel):
    """One employee's entry in a payroll file."""

    model_config = ConfigDict(extra="forbid")

    contract: ContractSchema
    amendments: list[AmendmentSchema] = Field(default_factory=list)
    config: EmployeeConfigSchema | None = None
    inputs: PeriodInputsSchema = Field(default_factory=PeriodInputsSchema)


class PayrollFileSchema(BaseModel):
    """Schema for a payroll file: one period, many employees."""

    model_config = ConfigDict(extra="forbid")

    period: str = Field(pattern=r"^\d{4}-\d{2}$")
    employees: list[EmployeePayrollSchema]

    def pay_period(self) -> PayPeriod:
        return PayPeriod.parse(self.period)


# ============================================================================
# Parameter table schemas
# ============================================================================


class TaxBracketSchema(BaseModel):
    """Schema for one income tax bracket."""

    model_config = ConfigDict(extra="forbid")

    threshold: Decimal
    marginal_rate: Decimal
    fixed_deduction: Decimal = Decimal("0")
    label: str = ""

    def to_domain(self) -> TaxBracket:
        return TaxBracket(**self.model_dump())


class PayrollParametersSchema(BaseModel):
    """Schema for one PayrollParameters record.

    Statutory rates are optional; omitted rates keep the engine defaults.
    """

    model_config = ConfigDict(extra="forbid")

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
    tax_brackets: list[TaxBracketSchema] = Field(min_length=1)
    afp_commission_rates: dict[str, Decimal] = Field(default_factory=dict)

    afp_rate: Decimal | None = None
    health_rate: Decimal | None = None
    unemployment_employee_rate: Decimal | None = None
    unemployment_employer_indefinite_rate: Decimal | None = None
    unemployment_employer_fixed_term_rate: Decimal | None = None
    sis_rate: Decimal | None = None
    mutual_rate: Decimal | None = None
    gratification_rate: Decimal | None = None
    gratification_cap_factor: Decimal | None = None
    overtime_multiplier: Decimal | None = None
    weeks_per_month: Decimal | None = None
    max_deduction_ratio: Decimal | None = None
    solidarity_loan_rate: Decimal | None = None
    solidarity_loan_cap: Decimal | None = None
    solidarity_loan_income_limit: Decimal | None = None

    def to_domain(self) -> PayrollParameters:
        values = self.model_dump(exclude={"tax_brackets"}, exclude_none=True)
        return PayrollParameters(
            tax_brackets=tuple(b.to_domain() for b in self.tax_brackets),
            **values,
        )


class ParameterTableSchema(BaseModel):
    """Schema for a parameter table file."""

    model_config = ConfigDict(extra="forbid")

    records: list[PayrollParametersSchema] = Field(min_length=1)

    def to_domain(self) -> list[PayrollParameters]:
        return [r.to_domain() for r in self.records]
