"""Liquidation calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from liquidation_engine.calculators.money import ZERO, round_currency
from liquidation_engine.calculators.tax_calculator import TaxCalculator
from liquidation_engine.calculators.types import (
    CalculationWarning,
    EffectiveContract,
    EmployeePayrollConfig,
    LiquidationResult,
    PayrollParameters,
    PeriodInputs,
    WarningCode,
)
from liquidation_engine.config import get_settings
from liquidation_engine.errors import (
    EmployeeNotConfiguredError,
    InvalidInputError,
    LiquidationInvariantError,
)

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30


class LiquidationCalculator:
    """Main liquidation calculation engine.

    Calculation pipeline (stable order; each stage rounds half up):
    1) Proportional salary from worked days
    2) Statutory gratification, capped on the minimum wage
    3) Overtime payment
    4) Gross imponible income
    5) Family allowance (not imponible)
    6) Gross income
    7) Cap the imponible base in UF
    8) AFP contribution and commission
    9) Health contribution
    10) Employee unemployment insurance
    11) Taxable income
    12) Progressive income tax
    13) Solidarity loan estimate
    14) Total deductions
    15) Net income, validated against gross - deductions
    16) Employer costs (informational)
    """

    def __init__(self, engine_version: str | None = None):
        self.engine_version = engine_version or get_settings().engine_version

    def calculate(
        self,
        effective_contract: EffectiveContract,
        payroll_parameters: PayrollParameters,
        period_inputs: PeriodInputs,
        employee_config: EmployeePayrollConfig | None,
    ) -> LiquidationResult:
        """Calculate the liquidation for one employee and period.

        Raises:
            EmployeeNotConfiguredError: If AFP or health selection is missing
            InvalidInputError: If any input is negative or out of range
            LiquidationInvariantError: If the result does not balance
        """
        contract = effective_contract
        params = payroll_parameters
        inputs = period_inputs

        commission_rate = self._resolve_commission_rate(contract, params, employee_config)
        self._validate_inputs(contract, inputs, employee_config)

        taxes = TaxCalculator(params)
        warnings: list[CalculationWarning] = []

        # 1) Proportional salary
        worked_days = min(inputs.worked_days, DAYS_PER_MONTH)
        proportional_salary = round_currency(
            contract.base_salary * worked_days / DAYS_PER_MONTH
        )

        # 2) Gratification
        gratification = round_currency(proportional_salary * params.gratification_rate)
        gratification_cap = taxes.gratification_cap()
        if gratification > gratification_cap:
            warnings.append(
                CalculationWarning(
                    WarningCode.GRATIFICATION_CAPPED,
                    f"Gratification {gratification} capped at {gratification_cap}",
                )
            )
            gratification = gratification_cap

        # 3) Overtime
        overtime_payment = ZERO
        if inputs.overtime_hours > 0:
            hourly_rate = contract.base_salary / (
                Decimal(contract.weekly_hours) * params.weeks_per_month
            )
            overtime_payment = round_currency(
                inputs.overtime_hours * hourly_rate * params.overtime_multiplier
            )

        # 4) Gross imponible income
        bonuses = round_currency(inputs.bonuses)
        allowances = round_currency(inputs.allowances)
        gross_imponible = (
            proportional_salary + gratification + overtime_payment + bonuses + allowances
        )

        # 5-6) Family allowance and gross income
        family_allowance = taxes.family_allowance(gross_imponible, employee_config.dependents)
        gross_income = gross_imponible + family_allowance

        # 7) Capped imponible base
        capped_imponible = taxes.cap_imponible(gross_imponible)
        if capped_imponible < gross_imponible:
            warnings.append(
                CalculationWarning(
                    WarningCode.IMPONIBLE_CAPPED,
                    f"Imponible income exceeds {params.max_imponible_uf} UF cap "
                    f"({capped_imponible})",
                )
            )
        cesantia_base = taxes.cesantia_base(gross_imponible)

        # 8-10) Social security
        social = taxes.social_security(
            capped_imponible,
            cesantia_base,
            commission_rate,
            employee_config,
            contract.unemployment_insurance_applicable,
        )

        # 11) Taxable income
        taxable_income = gross_imponible - social.total
        if taxable_income < 0:
            logger.warning(
                "Negative taxable income %s for employee %s in %s; clamped to 0",
                taxable_income,
                contract.employee_id,
                contract.period,
            )
            warnings.append(
                CalculationWarning(
                    WarningCode.NEGATIVE_TAXABLE_INCOME,
                    f"Taxable income {taxable_income} clamped to 0",
                )
            )
            taxable_income = ZERO

        # 12) Income tax
        tax = taxes.income_tax(taxable_income)

        # 13) Solidarity loan
        solidarity_loan = taxes.solidarity_loan(taxable_income, tax.amount)
        if solidarity_loan > 0:
            warnings.append(
                CalculationWarning(
                    WarningCode.SOLIDARITY_LOAN_ESTIMATED,
                    f"Solidarity loan {solidarity_loan} is an approximation",
                )
            )

        # 14) Total deductions
        other_deductions = round_currency(inputs.other_deductions)
        total_deductions = social.total + tax.amount + solidarity_loan + other_deductions

        # 15) Net income
        net_income = gross_income - total_deductions

        if gross_income > 0 and total_deductions > gross_income * params.max_deduction_ratio:
            ratio = (total_deductions / gross_income * 100).quantize(Decimal("0.1"))
            logger.warning(
                "Deductions for employee %s in %s are %s%% of gross",
                contract.employee_id,
                contract.period,
                ratio,
            )
            warnings.append(
                CalculationWarning(
                    WarningCode.DEDUCTION_LIMIT_EXCEEDED,
                    f"Deductions ({ratio}%) exceed the legal limit of "
                    f"{params.max_deduction_ratio * 100:.0f}%",
                )
            )
        if net_income < 0:
            warnings.append(
                CalculationWarning(
                    WarningCode.NEGATIVE_NET_PAY, f"Negative net pay: {net_income}"
                )
            )

        # 16) Employer costs
        employer_costs = taxes.employer_costs(
            capped_imponible, cesantia_base, contract.contract_type
        )

        calculation_id = self._generate_calculation_id(
            contract, self._compute_inputs_fingerprint(params, inputs, employee_config)
        )

        result = LiquidationResult(
            calculation_id=str(calculation_id),
            employee_id=contract.employee_id,
            period=contract.period,
            contract_type=contract.contract_type,
            position=contract.position,
            department=contract.department,
            base_salary=contract.base_salary,
            worked_days=worked_days,
            overtime_hours=inputs.overtime_hours,
            proportional_salary=proportional_salary,
            gratification=gratification,
            overtime_payment=overtime_payment,
            bonuses=bonuses,
            allowances=allowances,
            family_allowance=family_allowance,
            gross_imponible_income=gross_imponible,
            gross_income=gross_income,
            capped_imponible=capped_imponible,
            cesantia_base=cesantia_base,
            afp_contribution=social.afp_contribution,
            afp_commission=social.afp_commission,
            health_contribution=social.health_contribution,
            unemployment_employee=social.unemployment_employee,
            taxable_income=taxable_income,
            tax_marginal_rate=tax.bracket.marginal_rate if tax.bracket else ZERO,
            tax_fixed_deduction=tax.bracket.fixed_deduction if tax.bracket else ZERO,
            income_tax=tax.amount,
            solidarity_loan=solidarity_loan,
            other_deductions=other_deductions,
            total_deductions=total_deductions,
            net_income=net_income,
            employer_costs=employer_costs,
            solidarity_loan_is_estimate=solidarity_loan > 0,
            warnings=tuple(warnings),
        )

        self.validate_balance(result)
        return result

    @staticmethod
    def validate_balance(result: LiquidationResult) -> None:
        """Check gross - deductions == net, recomputing from components."""
        gross = sum(result.gross_components().values(), ZERO)
        deductions = sum(result.deduction_components().values(), ZERO)

        if (
            gross != result.gross_income
            or deductions != result.total_deductions
            or gross - deductions != result.net_income
        ):
            raise LiquidationInvariantError(
                f"Liquidation does not balance: gross {gross} - deductions "
                f"{deductions} != net {result.net_income}",
                employee_id=result.employee_id,
                period=result.period,
                field="net_income",
            )

    def _resolve_commission_rate(
        self,
        contract: EffectiveContract,
        params: PayrollParameters,
        config: EmployeePayrollConfig | None,
    ) -> Decimal:
        """Find the AFP commission rate, failing if the employee is unconfigured."""
        if config is None:
            raise EmployeeNotConfiguredError(
                f"Employee {contract.employee_id} has no payroll configuration",
                employee_id=contract.employee_id,
                period=contract.period,
            )
        if not config.afp_code:
            raise EmployeeNotConfiguredError(
                f"Employee {contract.employee_id} has no AFP selected",
                employee_id=contract.employee_id,
                period=contract.period,
                field="afp_code",
            )
        if config.health_scheme is None:
            raise EmployeeNotConfiguredError(
                f"Employee {contract.employee_id} has no health scheme selected",
                employee_id=contract.employee_id,
                period=contract.period,
                field="health_scheme",
            )

        if config.afp_commission_rate is not None:
            return config.afp_commission_rate

        rate = params.afp_commission_rates.get(config.afp_code.upper())
        if rate is None:
            raise EmployeeNotConfiguredError(
                f"No commission rate for AFP {config.afp_code!r} in parameters "
                f"valid from {params.valid_from}",
                employee_id=contract.employee_id,
                period=contract.period,
                field="afp_commission_rate",
            )
        return rate

    def _validate_inputs(
        self,
        contract: EffectiveContract,
        inputs: PeriodInputs,
        config: EmployeePayrollConfig,
    ) -> None:
        """Reject negative or out-of-range inputs before computing anything."""
        checks: list[tuple[str, Any]] = [
            ("base_salary", contract.base_salary),
            ("weekly_hours", contract.weekly_hours),
            ("worked_days", inputs.worked_days),
            ("overtime_hours", inputs.overtime_hours),
            ("bonuses", inputs.bonuses),
            ("allowances", inputs.allowances),
            ("other_deductions", inputs.other_deductions),
            ("health_plan_uf", config.health_plan_uf),
            ("dependents", config.dependents),
        ]
        if config.afp_commission_rate is not None:
            checks.append(("afp_commission_rate", config.afp_commission_rate))

        for name, value in checks:
            if value < 0:
                raise InvalidInputError(
                    f"{name} cannot be negative: {value}",
                    employee_id=contract.employee_id,
                    period=contract.period,
                    field=name,
                )

        if inputs.overtime_hours > 0 and contract.weekly_hours <= 0:
            raise InvalidInputError(
                "Overtime requires positive weekly_hours",
                employee_id=contract.employee_id,
                period=contract.period,
                field="weekly_hours",
            )

    def _generate_calculation_id(
        self, contract: EffectiveContract, inputs_fingerprint: str
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "employee_id": contract.employee_id,
            "period": str(contract.period),
            "contract": contract.to_dict(),
            "engine_version": self.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    def _compute_inputs_fingerprint(
        self,
        params: PayrollParameters,
        inputs: PeriodInputs,
        config: EmployeePayrollConfig,
    ) -> str:
        """Compute fingerprint of the parameters and inputs used."""
        data = {
            "parameters": params.to_dict(),
            "worked_days": inputs.worked_days,
            "overtime_hours": str(inputs.overtime_hours),
            "bonuses": str(inputs.bonuses),
            "allowances": str(inputs.allowances),
            "other_deductions": str(inputs.other_deductions),
            "afp_code": config.afp_code,
            "afp_commission_rate": (
                str(config.afp_commission_rate)
                if config.afp_commission_rate is not None
                else None
            ),
            "health_scheme": config.health_scheme.value if config.health_scheme else None,
            "health_plan_uf": str(config.health_plan_uf),
            "dependents": config.dependents,
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
