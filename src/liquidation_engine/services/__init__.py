"""Liquidation engine services."""

from liquidation_engine.services.batch_service import (
    BatchLiquidationService,
    BatchResult,
    LiquidationJob,
)
from liquidation_engine.services.journal_service import AccountMap, JournalEntry, JournalService
from liquidation_engine.services.state_machine import (
    InvalidTransitionError,
    JournalEntryStatus,
    JournalStateMachine,
)

__all__ = [
    "BatchLiquidationService",
    "BatchResult",
    "LiquidationJob",
    "AccountMap",
    "JournalEntry",
    "JournalService",
    "InvalidTransitionError",
    "JournalEntryStatus",
    "JournalStateMachine",
]
