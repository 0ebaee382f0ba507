"""Liquidation engine command line interface.

Provides tools for:
- Resolving effective contracts for a period
- Liquidating a payroll file
- Generating the provisioning journal entry for a payroll file

Usage:
    python -m liquidation_engine resolve --payroll payroll.json
    python -m liquidation_engine liquidate --payroll payroll.json --workers 8
    python -m liquidation_engine journal --payroll payroll.json --include-employer-costs
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from liquidation_engine.calculators.contract_resolver import ContractResolver
from liquidation_engine.calculators.types import PayPeriod
from liquidation_engine.config import get_settings
from liquidation_engine.errors import LiquidationEngineError
from liquidation_engine.parameters import load_parameter_table
from liquidation_engine.schemas import PayrollFileSchema
from liquidation_engine.services.batch_service import (
    BatchLiquidationService,
    LiquidationJob,
)
from liquidation_engine.services.journal_service import JournalService

logger = logging.getLogger(__name__)


def load_payroll_file(path: Path | str) -> tuple[PayPeriod, list[LiquidationJob]]:
    """Read a payroll file into one job per employee."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f, parse_float=Decimal)

    payroll = PayrollFileSchema.model_validate(data)
    period = payroll.pay_period()
    jobs = [
        LiquidationJob(
            contract=employee.contract.to_domain(),
            period=period,
            amendments=tuple(a.to_domain() for a in employee.amendments),
            config=employee.config.to_domain() if employee.config else None,
            inputs=employee.inputs.to_domain(),
        )
        for employee in payroll.employees
    ]
    return period, jobs


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


class LiquidationCli:
    """Liquidation engine command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="liquidation-engine",
            description="Chilean payroll liquidation tools",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            help="Logging level (default: $LOG_LEVEL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # resolve command
        resolve = subparsers.add_parser(
            "resolve",
            help="Print the effective contract of each employee for the period",
        )
        self._add_payroll_argument(resolve)

        # liquidate command
        liquidate = subparsers.add_parser(
            "liquidate",
            help="Print the liquidation of each employee",
        )
        self._add_payroll_argument(liquidate)
        self._add_parameters_argument(liquidate)
        liquidate.add_argument(
            "--workers",
            type=int,
            help="Worker threads (default: $BATCH_MAX_WORKERS)",
        )

        # journal command
        journal = subparsers.add_parser(
            "journal",
            help="Print the balanced provisioning journal entry",
        )
        self._add_payroll_argument(journal)
        self._add_parameters_argument(journal)
        journal.add_argument(
            "--workers",
            type=int,
            help="Worker threads (default: $BATCH_MAX_WORKERS)",
        )
        journal.add_argument(
            "--include-employer-costs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Add or omit employer contribution lines (default: $INCLUDE_EMPLOYER_COSTS)",
        )

        return parser

    @staticmethod
    def _add_payroll_argument(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--payroll",
            type=Path,
            required=True,
            help="Payroll JSON file: {\"period\": \"YYYY-MM\", \"employees\": [...]}",
        )

    @staticmethod
    def _add_parameters_argument(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--parameters",
            type=Path,
            help="Parameter table JSON file (default: $PARAMETERS_FILE)",
        )

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        settings = get_settings()
        logging.basicConfig(
            level=parsed.log_level or settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

        # Dispatch to command handler
        handlers: dict[str, Callable[..., int]] = {
            "resolve": self._cmd_resolve,
            "liquidate": self._cmd_liquidate,
            "journal": self._cmd_journal,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return handler(parsed)
        except LiquidationEngineError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except ValidationError as e:
            print(f"Invalid input file:\n{e}", file=sys.stderr)
            return 1
        except OSError as e:
            print(f"Cannot read file: {e}", file=sys.stderr)
            return 1

    def _cmd_resolve(self, args: argparse.Namespace) -> int:
        """Resolve effective contracts."""
        period, jobs = load_payroll_file(args.payroll)
        resolver = ContractResolver()

        contracts = [
            resolver.resolve(job.contract, job.amendments, period.year, period.month)
            for job in jobs
        ]
        _print_json([c.to_dict() for c in contracts])
        return 0

    def _cmd_liquidate(self, args: argparse.Namespace) -> int:
        """Liquidate every employee in the payroll file."""
        _, jobs = load_payroll_file(args.payroll)
        service = self._batch_service(args)

        batch = service.run(jobs, max_workers=args.workers)
        _print_json(
            {
                "results": [r.to_dict() for r in batch.results],
                "failures": [f.to_dict() for f in batch.failures],
            }
        )
        for failure in batch.failures:
            print(f"Error: {failure.error}", file=sys.stderr)

        return 0 if batch.succeeded else 1

    def _cmd_journal(self, args: argparse.Namespace) -> int:
        """Liquidate the payroll file and build its journal entry."""
        period, jobs = load_payroll_file(args.payroll)
        service = self._batch_service(args)

        batch = service.run(jobs, max_workers=args.workers)
        if not batch.succeeded:
            # A partial batch must not be provisioned
            for failure in batch.failures:
                print(f"Error: {failure.error}", file=sys.stderr)
            return 1

        journal = JournalService(include_employer_costs=args.include_employer_costs)
        entry = journal.accept(journal.build_entry(batch.results, period))
        _print_json(entry.to_dict())
        return 0

    def _batch_service(self, args: argparse.Namespace) -> BatchLiquidationService:
        path = args.parameters or get_settings().parameters_file
        return BatchLiquidationService(load_parameter_table(path))


def main() -> int:
    """Main entry point."""
    cli = LiquidationCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
