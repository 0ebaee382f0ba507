"""Batch liquidation runner."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Sequence

from liquidation_engine.calculators.contract_resolver import ContractResolver
from liquidation_engine.calculators.engine import LiquidationCalculator
from liquidation_engine.calculators.types import (
    Amendment,
    Contract,
    EmployeePayrollConfig,
    LiquidationResult,
    PayPeriod,
    PeriodInputs,
)
from liquidation_engine.config import get_settings
from liquidation_engine.errors import LiquidationEngineError
from liquidation_engine.parameters import PayrollParameterTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidationJob:
    """One (employee, period) liquidation request."""

    contract: Contract
    period: PayPeriod
    amendments: tuple[Amendment, ...] = ()
    config: EmployeePayrollConfig | None = None
    inputs: PeriodInputs = field(default_factory=PeriodInputs)

    @property
    def employee_id(self) -> str:
        return self.contract.employee_id


@dataclass(frozen=True)
class JobFailure:
    """A job that raised a LiquidationEngineError."""

    index: int
    employee_id: str
    period: PayPeriod
    error: LiquidationEngineError

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, **self.error.context()}


@dataclass
class BatchResult:
    """Results and failures of a batch, each in job order."""

    results: list[LiquidationResult] = field(default_factory=list)
    failures: list[JobFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures


class BatchLiquidationService:
    """Runs many independent liquidations in a thread pool.

    Resolver and calculator hold no mutable state, so one instance of each
    is shared by all workers. A failing job never affects the others.
    """

    def __init__(
        self,
        parameter_table: PayrollParameterTable,
        resolver: ContractResolver | None = None,
        calculator: LiquidationCalculator | None = None,
    ):
        self.parameter_table = parameter_table
        self.resolver = resolver or ContractResolver()
        self.calculator = calculator or LiquidationCalculator()

    def liquidate(self, job: LiquidationJob) -> LiquidationResult:
        """Resolve the contract and calculate one liquidation."""
        effective = self.resolver.resolve(
            job.contract, job.amendments, job.period.year, job.period.month
        )
        parameters = self.parameter_table.for_period(job.period)
        return self.calculator.calculate(effective, parameters, job.inputs, job.config)

    def run(
        self, jobs: Sequence[LiquidationJob], max_workers: int | None = None
    ) -> BatchResult:
        """Liquidate every job; results come back in job order."""
        workers = max_workers or get_settings().batch_max_workers
        outcomes: list[LiquidationResult | LiquidationEngineError]

        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(self._run_one, jobs))

        batch = BatchResult()
        for index, (job, outcome) in enumerate(zip(jobs, outcomes)):
            if isinstance(outcome, LiquidationEngineError):
                batch.failures.append(
                    JobFailure(
                        index=index,
                        employee_id=job.employee_id,
                        period=job.period,
                        error=outcome,
                    )
                )
            else:
                batch.results.append(outcome)

        logger.info(
            "Batch of %d jobs: %d liquidated, %d failed",
            len(jobs),
            len(batch.results),
            len(batch.failures),
        )
        return batch

    def _run_one(
        self, job: LiquidationJob
    ) -> LiquidationResult | LiquidationEngineError:
        try:
            return self.liquidate(job)
        except LiquidationEngineError as e:
            logger.warning(
                "Liquidation failed for %s in %s: %s", job.employee_id, job.period, e
            )
            return e
