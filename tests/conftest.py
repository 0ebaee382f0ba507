"""Pytest fixtures for liquidation engine tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from liquidation_engine.calculators.contract_resolver import ContractResolver
from liquidation_engine.calculators.engine import LiquidationCalculator
from liquidation_engine.calculators.types import (
    Contract,
    ContractType,
    EffectiveContract,
    EmployeePayrollConfig,
    HealthScheme,
    PayPeriod,
    PayrollParameters,
    PeriodInputs,
    TaxBracket,
)
from liquidation_engine.parameters import PayrollParameterTable

AFP_COMMISSION_RATES = {
    "CAPITAL": Decimal("0.0144"),
    "CUPRUM": Decimal("0.0144"),
    "HABITAT": Decimal("0.0127"),
    "MODELO": Decimal("0.0058"),
    "PLANVITAL": Decimal("0.0116"),
    "PROVIDA": Decimal("0.0145"),
    "UNO": Decimal("0.0069"),
}

TAX_BRACKETS_2024 = (
    TaxBracket(Decimal("0"), Decimal("0"), Decimal("0"), "Exento"),
    TaxBracket(Decimal("872991"), Decimal("0.04"), Decimal("34919.64"), "Tramo 2"),
    TaxBracket(Decimal("1939980"), Decimal("0.08"), Decimal("112518.84"), "Tramo 3"),
    TaxBracket(Decimal("3233300"), Decimal("0.135"), Decimal("290350.34"), "Tramo 4"),
    TaxBracket(Decimal("4526620"), Decimal("0.23"), Decimal("720379.24"), "Tramo 5"),
    TaxBracket(Decimal("5819940"), Decimal("0.304"), Decimal("1151054.80"), "Tramo 6"),
    TaxBracket(Decimal("7759920"), Decimal("0.35"), Decimal("1508011.12"), "Tramo 7"),
    TaxBracket(Decimal("20046460"), Decimal("0.40"), Decimal("2510334.12"), "Tramo 8"),
)


def make_parameters(
    valid_from: date = date(2024, 7, 1),
    minimum_wage: str = "500000",
    uf_value: str = "37571",
    **overrides,
) -> PayrollParameters:
    """Build a PayrollParameters record with 2024 legal values."""
    values = dict(
        valid_from=valid_from,
        minimum_wage=Decimal(minimum_wage),
        uf_value=Decimal(uf_value),
        max_imponible_uf=Decimal("84.3"),
        max_cesantia_uf=Decimal("126.6"),
        family_allowance_income_limit_a=Decimal("586227"),
        family_allowance_income_limit_b=Decimal("856247"),
        family_allowance_income_limit_c=Decimal("1335450"),
        family_allowance_a=Decimal("21243"),
        family_allowance_b=Decimal("13036"),
        family_allowance_c=Decimal("4119"),
        tax_brackets=TAX_BRACKETS_2024,
        afp_commission_rates=AFP_COMMISSION_RATES,
    )
    values.update(overrides)
    return PayrollParameters(**values)


def make_contract(
    employee_id: str = "EMP-001",
    base_salary: str = "1500000",
    contract_type: ContractType = ContractType.INDEFINITE,
    weekly_hours: int = 45,
    start_date: date = date(2023, 1, 1),
    end_date: date | None = None,
) -> Contract:
    return Contract(
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        contract_type=contract_type,
        base_salary=Decimal(base_salary),
        weekly_hours=weekly_hours,
        position="Analista Contable",
        department="Finanzas",
    )


def make_effective(
    base_salary: str = "1500000",
    contract_type: ContractType = ContractType.INDEFINITE,
    weekly_hours: int = 45,
    employee_id: str = "EMP-001",
    period: PayPeriod = PayPeriod(2024, 7),
) -> EffectiveContract:
    return EffectiveContract(
        employee_id=employee_id,
        period=period,
        start_date=date(2023, 1, 1),
        end_date=None,
        contract_type=contract_type,
        base_salary=Decimal(base_salary),
        weekly_hours=weekly_hours,
        position="Analista Contable",
        department="Finanzas",
    )


@pytest.fixture
def parameters() -> PayrollParameters:
    """Parameters in force from July 2024 (minimum wage 500,000)."""
    return make_parameters()


@pytest.fixture
def parameter_table() -> PayrollParameterTable:
    return PayrollParameterTable(
        [
            make_parameters(valid_from=date(2024, 1, 1), minimum_wage="460000", uf_value="36789"),
            make_parameters(valid_from=date(2024, 7, 1)),
        ]
    )


@pytest.fixture
def calculator() -> LiquidationCalculator:
    return LiquidationCalculator(engine_version="1.0.0")


@pytest.fixture
def resolver() -> ContractResolver:
    return ContractResolver()


@pytest.fixture
def contract() -> Contract:
    return make_contract()


@pytest.fixture
def effective_contract() -> EffectiveContract:
    return make_effective()


@pytest.fixture
def fonasa_config() -> EmployeePayrollConfig:
    return EmployeePayrollConfig(afp_code="HABITAT", health_scheme=HealthScheme.FONASA)


@pytest.fixture
def full_month() -> PeriodInputs:
    return PeriodInputs(worked_days=30)
