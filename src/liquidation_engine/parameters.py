"""Payroll parameter table: legal values selected per period."""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Iterable

from liquidation_engine.calculators.types import PayPeriod, PayrollParameters
from liquidation_engine.errors import InvalidInputError, NoParametersForPeriodError
from liquidation_engine.schemas import ParameterTableSchema

logger = logging.getLogger(__name__)


class PayrollParameterTable:
    """Date-indexed PayrollParameters records.

    A record applies from its valid_from date until the next record starts.
    The record for a period is the latest one with valid_from on or before
    the first day of the period.
    """

    def __init__(self, records: Iterable[PayrollParameters]):
        ordered = sorted(records, key=lambda r: r.valid_from)
        seen = set()
        for record in ordered:
            if record.valid_from in seen:
                raise InvalidInputError(
                    f"Duplicate payroll parameters for {record.valid_from}",
                    field="valid_from",
                )
            seen.add(record.valid_from)
        self._records: tuple[PayrollParameters, ...] = tuple(ordered)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def for_period(self, period: PayPeriod) -> PayrollParameters:
        """Select the record in force for a period.

        Raises:
            NoParametersForPeriodError: If every record starts after the period
        """
        selected: PayrollParameters | None = None
        for record in self._records:
            if record.valid_from <= period.start:
                selected = record
            else:
                break

        if selected is None:
            raise NoParametersForPeriodError(
                f"No payroll parameters valid for period {period}",
                period=period,
            )

        logger.debug("Using parameters valid from %s for %s", selected.valid_from, period)
        return selected


def load_parameter_table(path: Path | str) -> PayrollParameterTable:
    """Load and validate a JSON parameter table file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f, parse_float=Decimal)

    schema = ParameterTableSchema.model_validate(data)
    table = PayrollParameterTable(schema.to_domain())
    logger.info("Loaded %d payroll parameter records from %s", len(table), path)
    return table
