"""Mutation guard - the single policy authority for tile toggles.

decide() is pure: it sees only the tile, the actor, the service date and
a snapshot of the cutoff and of "today". Rules, in precedence order:

1. remove of an entry owned by someone else -> Denied("owned by other")
2. remove of a past or future day          -> RequiresApproval
3. service date closed by the cutoff        -> Denied("period closed")
4. add when an active entry already exists  -> Denied("already recorded")
5. otherwise                                -> Allowed
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from wash_ledger.roles import Role
from wash_ledger.services.cutoff_policy import is_locked_for
from wash_ledger.tiles import Actor, TileState

OWNED_BY_OTHER = "owned by other"
PERIOD_CLOSED = "period closed"
ALREADY_RECORDED = "already recorded"
NOT_RECORDED = "not recorded"


class ToggleAction(str, Enum):
    """What a toggle would do to the ledger."""

    ADD = "add"
    REMOVE = "remove"

    @property
    def inverse(self) -> ToggleAction:
        return ToggleAction.REMOVE if self is ToggleAction.ADD else ToggleAction.ADD


class Verdict(str, Enum):
    """Classification of a requested toggle."""

    ALLOWED = "allowed"
    DENIED = "denied"
    REQUIRES_APPROVAL = "requires_approval"


@dataclass(frozen=True)
class Decision:
    """Outcome of MutationGuard.decide."""

    verdict: Verdict
    reason: str | None = None

    @classmethod
    def allowed(cls) -> Decision:
        return cls(Verdict.ALLOWED)

    @classmethod
    def denied(cls, reason: str) -> Decision:
        return cls(Verdict.DENIED, reason)

    @classmethod
    def requires_approval(cls) -> Decision:
        return cls(Verdict.REQUIRES_APPROVAL)

    @property
    def is_allowed(self) -> bool:
        return self.verdict is Verdict.ALLOWED

    @property
    def is_denied(self) -> bool:
        return self.verdict is Verdict.DENIED

    @property
    def needs_approval(self) -> bool:
        return self.verdict is Verdict.REQUIRES_APPROVAL


def action_for(tile: TileState) -> ToggleAction:
    """A click on a washed tile removes, otherwise it adds."""
    return ToggleAction.REMOVE if tile.is_washed else ToggleAction.ADD


class MutationGuard:
    """Classifies toggles as Allowed / Denied / RequiresApproval."""

    def __init__(
        self,
        *,
        cutoff: date | None,
        today: date,
        override_role: Role | str = Role.MANAGER,
    ):
        self.cutoff = cutoff
        self.today = today
        self.override_role = override_role

    def decide(
        self,
        action: ToggleAction | str,
        tile: TileState,
        actor: Actor,
        service_date: date,
    ) -> Decision:
        action = ToggleAction(action)

        if action is ToggleAction.REMOVE:
            if tile.committed is None:
                return Decision.denied(NOT_RECORDED)
            if tile.owner_id != actor.user_id:
                return Decision.denied(OWNED_BY_OTHER)
            if service_date != self.today:
                return Decision.requires_approval()

        if is_locked_for(self.cutoff, service_date, actor.role, self.override_role):
            return Decision.denied(PERIOD_CLOSED)

        if action is ToggleAction.ADD and tile.is_washed:
            return Decision.denied(ALREADY_RECORDED)

        return Decision.allowed()
