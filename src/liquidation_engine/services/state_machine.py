"""Journal entry state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class JournalEntryStatus(str, Enum):
    """Journal entry status values."""

    BUILDING = "building"
    VALIDATED = "validated"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class JournalStateMachine:
    """State machine for journal entry status transitions.

    Allowed transitions:
    - building → validated (lines balance)
    - building → rejected (lines do not balance)
    - validated → accepted
    - validated → rejected
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        JournalEntryStatus.BUILDING: [
            JournalEntryStatus.VALIDATED,
            JournalEntryStatus.REJECTED,
        ],
        JournalEntryStatus.VALIDATED: [
            JournalEntryStatus.ACCEPTED,
            JournalEntryStatus.REJECTED,
        ],
        JournalEntryStatus.ACCEPTED: [],  # Terminal state
        JournalEntryStatus.REJECTED: [],  # Terminal state
    }

    # Statuses where lines can still be added
    LINES_MUTABLE = {JournalEntryStatus.BUILDING}

    TERMINAL = {JournalEntryStatus.ACCEPTED, JournalEntryStatus.REJECTED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            reason = "entry is final" if cls.is_terminal(from_status) else None
            raise InvalidTransitionError(from_status, to_status, reason)

    @classmethod
    def can_modify_lines(cls, status: str) -> bool:
        return status in cls.LINES_MUTABLE

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL

