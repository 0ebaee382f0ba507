"""Liquidation calculation engine."""

from liquidation_engine.calculators.contract_resolver import ContractResolver, validate_amendment
from liquidation_engine.calculators.engine import LiquidationCalculator
from liquidation_engine.calculators.line_builder import JournalLineBuilder
from liquidation_engine.calculators.tax_calculator import TaxCalculator

__all__ = [
    "ContractResolver",
    "validate_amendment",
    "LiquidationCalculator",
    "JournalLineBuilder",
    "TaxCalculator",
]
