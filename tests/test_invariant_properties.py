"""Property-based tests for liquidation invariants.

These tests use hypothesis to generate random contracts and period inputs
and verify that balance, caps, monotonicity and determinism hold for all
of them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from hypothesis import given, settings, strategies as st

from liquidation_engine.calculators.contract_resolver import ContractResolver
from liquidation_engine.calculators.engine import LiquidationCalculator
from liquidation_engine.calculators.line_builder import JournalLineBuilder
from liquidation_engine.calculators.money import round_currency
from liquidation_engine.calculators.tax_calculator import TaxCalculator
from liquidation_engine.calculators.types import (
    Amendment,
    ContractType,
    EmployeePayrollConfig,
    HealthScheme,
    ModificationType,
    PeriodInputs,
)
from liquidation_engine.services.journal_service import JournalService

from conftest import make_contract, make_effective, make_parameters

PARAMETERS = make_parameters()
CALCULATOR = LiquidationCalculator(engine_version="1.0.0")
TAXES = TaxCalculator(PARAMETERS)


# =============================================================================
# Strategies
# =============================================================================

salaries = st.integers(min_value=0, max_value=30_000_000)
weekly_hours = st.integers(min_value=1, max_value=48)
worked_days = st.integers(min_value=0, max_value=30)
overtime_hours = st.integers(min_value=0, max_value=80)
amounts = st.integers(min_value=0, max_value=3_000_000)


@st.composite
def configs(draw) -> EmployeePayrollConfig:
    scheme = draw(st.sampled_from(list(HealthScheme)))
    return EmployeePayrollConfig(
        afp_code=draw(st.sampled_from(sorted(PARAMETERS.afp_commission_rates))),
        health_scheme=scheme,
        health_plan_uf=(
            Decimal(draw(st.integers(min_value=0, max_value=150))) / 10
            if scheme == HealthScheme.ISAPRE
            else Decimal("0")
        ),
        dependents=draw(st.integers(min_value=0, max_value=6)),
    )


@st.composite
def liquidations(draw, employee_id: str = "EMP-001"):
    contract = make_effective(
        employee_id=employee_id,
        base_salary=str(draw(salaries)),
        contract_type=draw(st.sampled_from(list(ContractType))),
        weekly_hours=draw(weekly_hours),
    )
    inputs = PeriodInputs(
        worked_days=draw(worked_days),
        overtime_hours=Decimal(draw(overtime_hours)),
        bonuses=Decimal(draw(amounts)),
        allowances=Decimal(draw(amounts)),
        other_deductions=Decimal(draw(st.integers(min_value=0, max_value=200_000))),
    )
    return contract, inputs, draw(configs())


def is_whole(amount: Decimal) -> bool:
    return amount == amount.to_integral_value()


# =============================================================================
# Invariants
# =============================================================================


class TestBalanceProperties:
    """Gross minus deductions is always exactly net."""

    @given(liquidations())
    @settings(max_examples=200, deadline=None)
    def test_gross_minus_deductions_equals_net(self, case):
        contract, inputs, config = case

        result = CALCULATOR.calculate(contract, PARAMETERS, inputs, config)

        assert result.gross_income - result.total_deductions == result.net_income
        assert sum(result.gross_components().values()) == result.gross_income
        assert sum(result.deduction_components().values()) == result.total_deductions

    @given(liquidations())
    @settings(max_examples=100, deadline=None)
    def test_amounts_are_whole_units(self, case):
        contract, inputs, config = case

        result = CALCULATOR.calculate(contract, PARAMETERS, inputs, config)

        for amount in [*result.gross_components().values(), *result.deduction_components().values()]:
            assert is_whole(amount)
        assert is_whole(result.net_income)

    @given(liquidations())
    @settings(max_examples=100, deadline=None)
    def test_taxable_income_never_negative(self, case):
        contract, inputs, config = case

        result = CALCULATOR.calculate(contract, PARAMETERS, inputs, config)

        assert result.taxable_income >= 0
        assert result.income_tax >= 0


class TestJournalProperties:
    """Every generated journal batch balances."""

    @given(st.lists(liquidations(), min_size=1, max_size=5))
    @settings(max_examples=75, deadline=None)
    def test_batch_debits_equal_credits(self, cases):
        results = [
            CALCULATOR.calculate(contract, PARAMETERS, inputs, config)
            for contract, inputs, config in cases
        ]
        journal = JournalService(include_employer_costs=True, tolerance=Decimal("0"))

        lines = journal.generate(results)

        assert JournalLineBuilder.sum_debits(lines) == JournalLineBuilder.sum_credits(lines)
        assert JournalLineBuilder.validate_line_sides(lines) == []
        assert [line.line_number for line in lines] == list(range(1, len(lines) + 1))


class TestMonotonicity:
    """More work never pays less."""

    @given(salaries, worked_days, worked_days)
    @settings(max_examples=200, deadline=None)
    def test_more_days_never_decrease_salary(self, salary, days_a, days_b):
        low, high = sorted((days_a, days_b))
        contract = make_effective(base_salary=str(salary))
        config = EmployeePayrollConfig(afp_code="HABITAT", health_scheme=HealthScheme.FONASA)

        fewer = CALCULATOR.calculate(contract, PARAMETERS, PeriodInputs(worked_days=low), config)
        more = CALCULATOR.calculate(contract, PARAMETERS, PeriodInputs(worked_days=high), config)

        assert fewer.proportional_salary <= more.proportional_salary

    @given(salaries, weekly_hours, overtime_hours, overtime_hours)
    @settings(max_examples=200, deadline=None)
    def test_more_overtime_never_decreases_payment(self, salary, hours, ot_a, ot_b):
        low, high = sorted((ot_a, ot_b))
        contract = make_effective(base_salary=str(salary), weekly_hours=hours)
        config = EmployeePayrollConfig(afp_code="HABITAT", health_scheme=HealthScheme.FONASA)

        fewer = CALCULATOR.calculate(
            contract, PARAMETERS, PeriodInputs(overtime_hours=Decimal(low)), config
        )
        more = CALCULATOR.calculate(
            contract, PARAMETERS, PeriodInputs(overtime_hours=Decimal(high)), config
        )

        assert fewer.overtime_payment <= more.overtime_payment

    @given(
        st.integers(min_value=500_000, max_value=30_000_000),
        weekly_hours,
        st.integers(min_value=0, max_value=200),
        st.integers(min_value=0, max_value=200),
        st.sampled_from(list(ContractType)),
    )
    @settings(max_examples=200, deadline=None)
    def test_more_overtime_never_decreases_net_without_dependents(
        self, salary, hours, ot_a, ot_b, contract_type
    ):
        """Net pay rises with overtime when no family allowance tier can be lost."""
        low, high = sorted((ot_a, ot_b))
        contract = make_effective(
            base_salary=str(salary), weekly_hours=hours, contract_type=contract_type
        )
        config = EmployeePayrollConfig(
            afp_code="HABITAT", health_scheme=HealthScheme.FONASA, dependents=0
        )

        fewer = CALCULATOR.calculate(
            contract, PARAMETERS, PeriodInputs(overtime_hours=Decimal(low)), config
        )
        more = CALCULATOR.calculate(
            contract, PARAMETERS, PeriodInputs(overtime_hours=Decimal(high)), config
        )

        assert fewer.net_income <= more.net_income

    def test_family_allowance_tier_loss_can_lower_net(self):
        """Crossing the last allowance limit drops the allowance to zero."""
        contract = make_effective(base_salary="1000000")
        config = EmployeePayrollConfig(
            afp_code="HABITAT", health_scheme=HealthScheme.FONASA, dependents=3
        )

        below = CALCULATOR.calculate(
            contract, PARAMETERS, PeriodInputs(overtime_hours=Decimal("11")), config
        )
        above = CALCULATOR.calculate(
            contract, PARAMETERS, PeriodInputs(overtime_hours=Decimal("12")), config
        )

        assert below.family_allowance > 0
        assert above.family_allowance == 0
        assert above.net_income < below.net_income


class TestCapEnforcement:
    """Legal caps hold for arbitrarily large salaries."""

    @given(st.integers(min_value=0, max_value=10**10), configs())
    @settings(max_examples=200, deadline=None)
    def test_caps(self, salary, config):
        contract = make_effective(base_salary=str(salary))

        result = CALCULATOR.calculate(contract, PARAMETERS, PeriodInputs(), config)

        assert result.gratification <= PARAMETERS.minimum_wage * PARAMETERS.gratification_cap_factor
        assert result.capped_imponible <= TAXES.max_imponible()
        assert result.afp_contribution <= round_currency(TAXES.max_imponible() * PARAMETERS.afp_rate)
        assert result.unemployment_employee <= round_currency(
            TAXES.max_cesantia() * PARAMETERS.unemployment_employee_rate
        )
        if config.health_scheme == HealthScheme.FONASA:
            assert result.health_contribution <= round_currency(
                TAXES.max_imponible() * PARAMETERS.health_rate
            )


class TestDeterminism:
    """Identical inputs give identical outputs."""

    @given(liquidations())
    @settings(max_examples=100, deadline=None)
    def test_calculate_is_idempotent(self, case):
        contract, inputs, config = case

        first = CALCULATOR.calculate(contract, PARAMETERS, inputs, config)
        second = CALCULATOR.calculate(contract, PARAMETERS, inputs, config)

        assert first == second
        assert first.to_dict() == second.to_dict()

    @given(st.lists(st.integers(min_value=1, max_value=5_000_000), min_size=1, max_size=6))
    @settings(max_examples=100, deadline=None)
    def test_same_date_amendments_last_inserted_wins(self, salaries_in_order):
        contract = make_contract()
        amendments = [
            Amendment(
                effective_date=date(2024, 3, 1),
                modification_type=ModificationType.SALARY_CHANGE,
                new_values={"base_salary": str(salary)},
            )
            for salary in salaries_in_order
        ]
        resolver = ContractResolver()

        first = resolver.resolve(contract, amendments, 2024, 3)
        second = resolver.resolve(contract, amendments, 2024, 3)

        assert first == second
        assert first.base_salary == Decimal(salaries_in_order[-1])
