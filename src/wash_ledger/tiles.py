"""Tile state shared between the mutation guard and the client store."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from wash_ledger.roles import Role


@dataclass(frozen=True)
class Actor:
    """The user performing an action, as seen by the policy layer."""

    user_id: UUID
    role: Role | str = Role.EMPLOYEE


@dataclass(frozen=True)
class RecordedWash:
    """Committed "washed" state of a tile."""

    owner_id: UUID
    entry_id: UUID
    created_at: datetime | None = None


@dataclass(frozen=True)
class TileState:
    """Per-vehicle projection of the ledger for the visible date.

    committed is None when the vehicle has no active entry (NotWashed).
    """

    vehicle_id: UUID
    committed: RecordedWash | None = None
    pending: bool = False

    @property
    def is_washed(self) -> bool:
        return self.committed is not None

    @property
    def owner_id(self) -> UUID | None:
        return self.committed.owner_id if self.committed else None

    def mark_pending(self) -> TileState:
        return replace(self, pending=True)

    def settle(self, committed: RecordedWash | None) -> TileState:
        return replace(self, committed=committed, pending=False)
