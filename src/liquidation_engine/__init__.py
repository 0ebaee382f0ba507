"""Chilean payroll liquidation engine."""

__version__ = "1.0.0"
