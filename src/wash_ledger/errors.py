"""Error taxonomy shared by the ledger, the policy layer and the clients.

Every error except NetworkError is a deterministic outcome of policy
evaluation and is never retried automatically.
"""

from __future__ import annotations


class WashLedgerError(Exception):
    """Base class for all wash ledger errors."""

    code = "WASH_LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(WashLedgerError):
    """Missing or malformed input (vehicle, location, date, reason)."""

    code = "VALIDATION_ERROR"


class ConflictError(WashLedgerError):
    """A second active entry (or pending request) would be created."""

    code = "CONFLICT"


class PermissionDeniedError(WashLedgerError):
    """Wrong owner or insufficient role."""

    code = "PERMISSION_DENIED"


class TemporalPolicyError(WashLedgerError):
    """The service date is closed for the actor."""

    code = "PERIOD_CLOSED"


class ApprovalRequiredError(TemporalPolicyError):
    """The change touches another day and must go through a manager."""

    code = "APPROVAL_REQUIRED"


class NotFoundError(WashLedgerError):
    """Entry, request, vehicle or user missing."""

    code = "NOT_FOUND"


class NoManagerAssignedError(NotFoundError):
    """The requester has no manager to escalate to."""

    code = "NO_MANAGER_ASSIGNED"


class InvalidStateError(WashLedgerError):
    """A state transition that is not allowed from the current state."""

    code = "INVALID_STATE"

    def __init__(
        self,
        message: str,
        from_status: str | None = None,
        to_status: str | None = None,
    ):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message)


class NetworkError(WashLedgerError):
    """Transient transport failure talking to the store. Retryable by the user."""

    code = "NETWORK_ERROR"


ERRORS_BY_CODE: dict[str, type[WashLedgerError]] = {
    cls.code: cls
    for cls in (
        ValidationError,
        ConflictError,
        PermissionDeniedError,
        TemporalPolicyError,
        ApprovalRequiredError,
        NotFoundError,
        NoManagerAssignedError,
        InvalidStateError,
        NetworkError,
    )
}
