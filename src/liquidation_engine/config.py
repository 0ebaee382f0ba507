"""Configuration management for the liquidation engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_PARAMETERS_FILE = Path(__file__).parent / "data" / "payroll_parameters.json"


@dataclass(frozen=True)
class Settings:
    """Engine settings loaded from environment.

    Legal constants (UF, minimum wage, tax brackets) are NOT settings; they
    travel in PayrollParameters selected per period.
    """

    engine_version: str
    log_level: str
    batch_max_workers: int
    journal_balance_tolerance: Decimal
    include_employer_costs: bool
    parameters_file: Path

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            engine_version=os.getenv("ENGINE_VERSION", "1.0.0"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            batch_max_workers=int(os.getenv("BATCH_MAX_WORKERS", "4")),
            journal_balance_tolerance=Decimal(
                os.getenv("JOURNAL_BALANCE_TOLERANCE", "0.01")
            ),
            include_employer_costs=(
                os.getenv("INCLUDE_EMPLOYER_COSTS", "false").lower() == "true"
            ),
            parameters_file=Path(
                os.getenv("PARAMETERS_FILE", str(DEFAULT_PARAMETERS_FILE))
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
