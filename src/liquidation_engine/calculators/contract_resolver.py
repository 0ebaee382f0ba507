"""Effective contract resolution by folding dated amendments."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Sequence

from liquidation_engine.calculators.money import as_decimal
from liquidation_engine.calculators.types import (
    Amendment,
    AppliedModification,
    Contract,
    ContractType,
    EffectiveContract,
    ModificationType,
    PayPeriod,
)
from liquidation_engine.errors import (
    ContractExpiredError,
    InvalidInputError,
    NoContractForPeriodError,
)

logger = logging.getLogger(__name__)

# Contract attributes an amendment may overwrite
AMENDABLE_FIELDS = (
    "base_salary",
    "weekly_hours",
    "contract_type",
    "position",
    "department",
    "end_date",
)

VALID_WEEKLY_HOURS = range(1, 49)


class ContractResolver:
    """Resolves the contract terms in force for a given month.

    Resolution rules:
    1. Cutoff is the last calendar day of the requested month
    2. Only amendments with effective_date <= cutoff apply
    3. Amendments fold in (effective_date, sequence) order; list position
       breaks any remaining tie, so the later-inserted amendment wins
    4. Each amendment overwrites only the fields present in new_values
    """

    def resolve(
        self,
        base_contract: Contract,
        amendments: Sequence[Amendment],
        target_year: int,
        target_month: int,
    ) -> EffectiveContract:
        """Resolve the effective contract for (target_year, target_month).

        Args:
            base_contract: The contract as signed at hire
            amendments: All amendments for the contract, in insertion order
            target_year: Period year
            target_month: Period month (1-12)

        Returns:
            The folded contract state for the period

        Raises:
            NoContractForPeriodError: If the period precedes the contract start
            ContractExpiredError: If a fixed-term contract ended before the period
            InvalidInputError: If a folded value is out of range
        """
        period = PayPeriod(target_year, target_month)
        cutoff = period.end

        if cutoff < base_contract.start_date:
            raise NoContractForPeriodError(
                f"Contract for employee {base_contract.employee_id} starts "
                f"{base_contract.start_date}, after period {period}",
                employee_id=base_contract.employee_id,
                period=period,
                field="start_date",
            )

        state: dict[str, Any] = {
            "base_salary": base_contract.base_salary,
            "weekly_hours": base_contract.weekly_hours,
            "contract_type": base_contract.contract_type,
            "position": base_contract.position,
            "department": base_contract.department,
            "end_date": base_contract.end_date,
        }
        applied: list[AppliedModification] = []

        for amendment in self.applicable_amendments(amendments, cutoff):
            for name, raw in amendment.new_values.items():
                if name not in AMENDABLE_FIELDS:
                    logger.debug(
                        "Amendment %s: field %r kept for audit only",
                        amendment.amendment_id,
                        name,
                    )
                    continue
                state[name] = self._coerce_field(
                    name, raw, base_contract.employee_id, period
                )

            applied.append(
                AppliedModification(
                    modification_type=amendment.modification_type,
                    effective_date=amendment.effective_date,
                    reason=amendment.reason,
                    from_values=amendment.old_values,
                    to_values=amendment.new_values,
                )
            )

        self._validate_state(state, base_contract.employee_id, period)

        if (
            state["contract_type"] == ContractType.FIXED_TERM
            and state["end_date"] is not None
            and state["end_date"] < period.start
        ):
            raise ContractExpiredError(
                f"Fixed-term contract for employee {base_contract.employee_id} "
                f"ended {state['end_date']}, before period {period}",
                employee_id=base_contract.employee_id,
                period=period,
                field="end_date",
            )

        logger.debug(
            "Resolved contract for %s in %s: salary=%s hours=%s type=%s (%d amendments)",
            base_contract.employee_id,
            period,
            state["base_salary"],
            state["weekly_hours"],
            state["contract_type"].value,
            len(applied),
        )

        return EffectiveContract(
            employee_id=base_contract.employee_id,
            period=period,
            start_date=base_contract.start_date,
            end_date=state["end_date"],
            contract_type=state["contract_type"],
            base_salary=state["base_salary"],
            weekly_hours=state["weekly_hours"],
            position=state["position"],
            department=state["department"],
            modifications_applied=tuple(applied),
        )

    def should_pay_unemployment_insurance(
        self,
        base_contract: Contract,
        amendments: Sequence[Amendment],
        target_year: int,
        target_month: int,
    ) -> bool:
        """Check employee-side unemployment insurance eligibility for a month."""
        effective = self.resolve(base_contract, amendments, target_year, target_month)
        return effective.unemployment_insurance_applicable

    @staticmethod
    def applicable_amendments(
        amendments: Sequence[Amendment], cutoff: date
    ) -> list[Amendment]:
        """Amendments effective on or before cutoff, in fold order."""
        indexed = [
            (position, a)
            for position, a in enumerate(amendments)
            if a.effective_date <= cutoff
        ]
        indexed.sort(key=lambda p: (p[1].effective_date, p[1].sequence, p[0]))
        return [a for _, a in indexed]

    @staticmethod
    def modification_history(amendments: Iterable[Amendment]) -> list[Amendment]:
        """Amendment history, newest first."""
        indexed = list(enumerate(amendments))
        indexed.sort(
            key=lambda p: (p[1].effective_date, p[1].sequence, p[0]), reverse=True
        )
        return [a for _, a in indexed]

    def _coerce_field(
        self, name: str, raw: Any, employee_id: str, period: PayPeriod
    ) -> Any:
        """Normalize an amended value to the contract attribute's type.

        Only end_date may be cleared with None; weekly_hours must be integral.
        """
        try:
            if name == "end_date":
                if raw is None or isinstance(raw, date):
                    return raw
                return date.fromisoformat(str(raw))
            if raw is None:
                raise ValueError(f"{name} cannot be cleared")
            if name == "base_salary":
                return as_decimal(raw)
            if name == "weekly_hours":
                hours = as_decimal(raw)
                if hours != hours.to_integral_value():
                    raise ValueError(f"weekly_hours must be a whole number, got {raw!r}")
                return int(hours)
            if name == "contract_type":
                return ContractType(raw)
            return str(raw)
        except (ValueError, TypeError, OverflowError, InvalidOperation) as e:
            raise InvalidInputError(
                f"Invalid amended value for {name}: {raw!r}",
                employee_id=employee_id,
                period=period,
                field=name,
            ) from e

    def _validate_state(
        self, state: dict[str, Any], employee_id: str, period: PayPeriod
    ) -> None:
        """Reject folded states the calculator cannot work with."""
        if state["base_salary"] < 0:
            raise InvalidInputError(
                f"Negative base salary {state['base_salary']}",
                employee_id=employee_id,
                period=period,
                field="base_salary",
            )
        if state["weekly_hours"] <= 0:
            raise InvalidInputError(
                f"Weekly hours must be positive, got {state['weekly_hours']}",
                employee_id=employee_id,
                period=period,
                field="weekly_hours",
            )


def validate_amendment(amendment: Amendment) -> list[str]:
    """Validate an amendment before it is appended.

    Returns list of error messages (empty if valid).
    """
    errors: list[str] = []
    new_values = amendment.new_values
    mod_type = amendment.modification_type

    if mod_type == ModificationType.SALARY_CHANGE:
        try:
            salary = as_decimal(new_values.get("base_salary", 0))
        except ValueError:
            salary = Decimal("0")
        if salary <= 0:
            errors.append("New base_salary must be greater than 0")

    elif mod_type == ModificationType.HOURS_CHANGE:
        try:
            hours = int(new_values.get("weekly_hours", 0))
        except (TypeError, ValueError):
            hours = 0
        if hours not in VALID_WEEKLY_HOURS:
            errors.append("New weekly_hours must be between 1 and 48")

    elif mod_type == ModificationType.CONTRACT_TYPE_CHANGE:
        valid_types = [t.value for t in ContractType]
        if new_values.get("contract_type") not in valid_types:
            errors.append(f"contract_type must be one of: {', '.join(valid_types)}")

    elif not new_values:
        errors.append("new_values cannot be empty")

    return errors
