"""Social security, income tax and employer contribution calculations."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from liquidation_engine.calculators.brackets import lookup_ceiling, lookup_floor
from liquidation_engine.calculators.money import ZERO, round_currency
from liquidation_engine.calculators.types import (
    ContractType,
    EmployeePayrollConfig,
    EmployerCosts,
    HealthScheme,
    PayrollParameters,
    TaxBracket,
)


@dataclass(frozen=True)
class SocialSecurityDeductions:
    """Employee-side contributions computed on the capped imponible base."""

    afp_contribution: Decimal
    afp_commission: Decimal
    health_contribution: Decimal
    unemployment_employee: Decimal

    @property
    def total(self) -> Decimal:
        return (
            self.afp_contribution
            + self.afp_commission
            + self.health_contribution
            + self.unemployment_employee
        )


@dataclass(frozen=True)
class IncomeTax:
    """Income tax with the bracket that produced it."""

    amount: Decimal
    bracket: TaxBracket | None


class TaxCalculator:
    """Calculates statutory deductions from a PayrollParameters record.

    Every amount is rounded half up to whole currency units. Rates and
    brackets come from the parameters, never from module constants, so one
    calculator serves any period.
    """

    def __init__(self, parameters: PayrollParameters):
        self.parameters = parameters

    def max_imponible(self) -> Decimal:
        """Monthly imponible ceiling (max_imponible_uf UF)."""
        return round_currency(self.parameters.max_imponible_uf * self.parameters.uf_value)

    def max_cesantia(self) -> Decimal:
        """Monthly unemployment insurance ceiling (max_cesantia_uf UF)."""
        return round_currency(self.parameters.max_cesantia_uf * self.parameters.uf_value)

    def gratification_cap(self) -> Decimal:
        """Legal cap on statutory gratification, on the monthly minimum wage."""
        return round_currency(
            self.parameters.minimum_wage * self.parameters.gratification_cap_factor
        )

    def cap_imponible(self, gross_imponible: Decimal) -> Decimal:
        return min(gross_imponible, self.max_imponible())

    def cesantia_base(self, gross_imponible: Decimal) -> Decimal:
        return min(gross_imponible, self.max_cesantia())

    def family_allowance(self, gross_imponible: Decimal, dependents: int) -> Decimal:
        """Tiered family allowance; 0 above the last tier or without dependents."""
        if dependents <= 0:
            return ZERO
        per_dependent = lookup_ceiling(
            self.parameters.family_allowance_brackets(), gross_imponible
        )
        if per_dependent is None:
            return ZERO
        return per_dependent * dependents

    def social_security(
        self,
        capped_imponible: Decimal,
        cesantia_base: Decimal,
        commission_rate: Decimal,
        config: EmployeePayrollConfig,
        unemployment_applicable: bool,
    ) -> SocialSecurityDeductions:
        """Calculate AFP, commission, health and employee unemployment."""
        params = self.parameters

        afp = round_currency(capped_imponible * params.afp_rate)
        commission = round_currency(capped_imponible * commission_rate)

        health = round_currency(capped_imponible * params.health_rate)
        if config.health_scheme == HealthScheme.ISAPRE:
            # A private plan never pays less than the statutory percentage
            plan_value = round_currency(config.health_plan_uf * params.uf_value)
            health = max(health, plan_value)

        unemployment = ZERO
        if unemployment_applicable:
            unemployment = round_currency(cesantia_base * params.unemployment_employee_rate)

        return SocialSecurityDeductions(
            afp_contribution=afp,
            afp_commission=commission,
            health_contribution=health,
            unemployment_employee=unemployment,
        )

    def income_tax(self, taxable_income: Decimal) -> IncomeTax:
        """Progressive income tax: income * rate - fixed deduction, floored at 0."""
        if taxable_income <= 0:
            return IncomeTax(amount=ZERO, bracket=None)

        bracket = lookup_floor(
            [(b.threshold, b) for b in self.parameters.tax_brackets], taxable_income
        )
        if bracket is None:
            return IncomeTax(amount=ZERO, bracket=None)

        tax = round_currency(taxable_income * bracket.marginal_rate - bracket.fixed_deduction)
        return IncomeTax(amount=max(tax, ZERO), bracket=bracket)

    def solidarity_loan(self, taxable_income: Decimal, income_tax: Decimal) -> Decimal:
        """Approximate solidarity loan withholding.

        Placeholder schedule pending the authoritative table: applies only
        to untaxed incomes up to the income limit.
        """
        params = self.parameters
        if income_tax != 0:
            return ZERO
        if not ZERO < taxable_income <= params.solidarity_loan_income_limit:
            return ZERO
        return round_currency(
            min(taxable_income * params.solidarity_loan_rate, params.solidarity_loan_cap)
        )

    def employer_costs(
        self,
        capped_imponible: Decimal,
        cesantia_base: Decimal,
        contract_type: ContractType,
    ) -> EmployerCosts:
        """Calculate SIS, employer unemployment and mutual insurance."""
        params = self.parameters
        if contract_type == ContractType.INDEFINITE:
            employer_rate = params.unemployment_employer_indefinite_rate
        else:
            employer_rate = params.unemployment_employer_fixed_term_rate

        return EmployerCosts(
            sis=round_currency(capped_imponible * params.sis_rate),
            unemployment_employer=round_currency(cesantia_base * employer_rate),
            mutual_insurance=round_currency(capped_imponible * params.mutual_rate),
        )
