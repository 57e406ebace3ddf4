"""Approval request state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from wash_ledger.errors import InvalidStateError


class ApprovalStatus(str, Enum):
    """Approval request status values."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class ApprovalStateMachine:
    """State machine for approval request status transitions.

    Allowed transitions:
    - pending → approved
    - pending → denied

    Approved and denied are terminal; a request is never reopened.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ApprovalStatus.PENDING: [ApprovalStatus.APPROVED, ApprovalStatus.DENIED],
        ApprovalStatus.APPROVED: [],  # Terminal state
        ApprovalStatus.DENIED: [],  # Terminal state
    }

    TERMINAL = {ApprovalStatus.APPROVED, ApprovalStatus.DENIED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidStateError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateError(
                f"Invalid transition from '{_value(from_status)}' to "
                f"'{_value(to_status)}'",
                from_status=_value(from_status),
                to_status=_value(to_status),
            )

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])


def _value(status: str) -> str:
    return status.value if isinstance(status, ApprovalStatus) else status
