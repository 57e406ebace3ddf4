"""Optimistic tile state for the wash grid.

The store owns a single arena of TileState keyed by vehicle id for the
visible (date, locations) scope. A toggle marks the tile pending, asks the
mutation guard, calls the backend and then settles the tile to the
committed outcome or back to its prior state. Scope changes rebuild the
arena from the ledger.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Callable, Mapping, Sequence
from uuid import UUID

from wash_ledger.client.backend import WashBackend
from wash_ledger.config import Settings
from wash_ledger.errors import (
    ConflictError,
    NetworkError,
    NoManagerAssignedError,
    WashLedgerError,
)
from wash_ledger.roles import Role
from wash_ledger.schemas import VehicleResponse, WashEntryResponse
from wash_ledger.services.mutation_guard import (
    ALREADY_RECORDED,
    NOT_RECORDED,
    OWNED_BY_OTHER,
    PERIOD_CLOSED,
    MutationGuard,
    ToggleAction,
    action_for,
)
from wash_ledger.tiles import Actor, RecordedWash, TileState

logger = logging.getLogger(__name__)

DENIAL_MESSAGES = {
    OWNED_BY_OTHER: "This vehicle was washed by another employee. Only they can remove this entry.",
    PERIOD_CLOSED: "The entry period for this date is closed.",
    ALREADY_RECORDED: "This vehicle is already washed for this date.",
    NOT_RECORDED: "This vehicle has no wash to remove.",
}
ALREADY_WASHED_MESSAGE = "Someone already recorded a wash for this vehicle."
REQUEST_SENT_MESSAGE = "Removal request sent to your manager."
RETRY_MESSAGE = "Could not reach the ledger. Please try again."


class ToggleOutcome(str, Enum):
    """What a toggle or undo ended up doing."""

    RECORDED = "recorded"
    REMOVED = "removed"
    UNDONE = "undone"
    DENIED = "denied"
    APPROVAL_REQUESTED = "approval_requested"
    ALREADY_WASHED = "already_washed"
    ERROR = "error"
    IGNORED = "ignored"


@dataclass(frozen=True)
class ToggleResult:
    outcome: ToggleOutcome
    message: str | None = None
    tile: TileState | None = None


@dataclass(frozen=True)
class UndoRecord:
    """Single-slot undo: the inverse of the last successful mutation."""

    vehicle_id: UUID
    inverse_action: ToggleAction
    entry_id: UUID
    wash_date: date
    actor: Actor
    recorded_at: float


class OptimisticStateStore:
    """Arena of tile states for one (date, locations) scope.

    Only toggle(), undo() and the scope methods change tile state; readers
    get immutable snapshots.
    """

    def __init__(
        self,
        backend: WashBackend,
        *,
        undo_window_seconds: float = 5.0,
        override_role: Role | str = Role.MANAGER,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.backend = backend
        self.undo_window_seconds = undo_window_seconds
        self.override_role = override_role
        self._monotonic = monotonic
        self._lock = threading.Lock()

        self._generation = 0
        self._wash_date: date | None = None
        self._location_ids: tuple[UUID, ...] = ()
        self._cutoff: date | None = None
        self._today: date | None = None
        self._vehicles: dict[UUID, VehicleResponse] = {}
        self._tiles: dict[UUID, TileState] = {}
        self._undo: UndoRecord | None = None

    @classmethod
    def from_settings(cls, backend: WashBackend, settings: Settings) -> OptimisticStateStore:
        return cls(
            backend,
            undo_window_seconds=settings.undo_window_seconds,
            override_role=settings.cutoff_override_role,
        )

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------

    @property
    def wash_date(self) -> date | None:
        return self._wash_date

    @property
    def location_ids(self) -> tuple[UUID, ...]:
        return self._location_ids

    @property
    def cutoff(self) -> date | None:
        return self._cutoff

    @property
    def today(self) -> date | None:
        return self._today

    def set_scope(self, wash_date: date, location_ids: Sequence[UUID]) -> None:
        """Switch the visible date/locations and rebuild the arena."""
        self._load(wash_date, tuple(location_ids))

    def refresh(self) -> None:
        """Discard local state and rebuild it from the ledger."""
        if self._wash_date is None:
            raise RuntimeError("No scope set; call set_scope() first")
        self._load(self._wash_date, self._location_ids)

    def _load(self, wash_date: date, location_ids: tuple[UUID, ...]) -> None:
        vehicles = self.backend.list_vehicles(location_ids)
        entries = (
            self.backend.list_entries(wash_date, [v.id for v in vehicles]) if vehicles else []
        )
        cutoff = self.backend.current_cutoff()
        today = self.backend.today()

        by_vehicle = {e.vehicle_id: e for e in entries}
        tiles = {
            v.id: TileState(vehicle_id=v.id, committed=_committed(by_vehicle.get(v.id)))
            for v in vehicles
        }
        with self._lock:
            self._generation += 1
            self._wash_date = wash_date
            self._location_ids = location_ids
            self._cutoff = cutoff
            self._today = today
            self._vehicles = {v.id: v for v in vehicles}
            self._tiles = tiles
        logger.debug(
            "Loaded %d tiles for %s (%d entries)", len(tiles), wash_date, len(entries)
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def tile(self, vehicle_id: UUID) -> TileState | None:
        with self._lock:
            return self._tiles.get(vehicle_id)

    def snapshot(self) -> Mapping[UUID, TileState]:
        with self._lock:
            return MappingProxyType(dict(self._tiles))

    def vehicles(self) -> list[VehicleResponse]:
        with self._lock:
            return list(self._vehicles.values())

    @property
    def undo_visible(self) -> bool:
        with self._lock:
            record = self._undo
        if record is None:
            return False
        return self._monotonic() - record.recorded_at < self.undo_window_seconds

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def toggle(
        self, vehicle_id: UUID, actor: Actor, *, reason: str | None = None
    ) -> ToggleResult:
        """Toggle one tile; reason is used when the removal needs approval."""
        with self._lock:
            tile = self._tiles.get(vehicle_id)
            if tile is None:
                return ToggleResult(ToggleOutcome.ERROR, "Vehicle is not in the current view")
            if tile.pending:
                return ToggleResult(ToggleOutcome.IGNORED, None, tile)
            if self._wash_date is None or self._today is None:
                return ToggleResult(ToggleOutcome.ERROR, "No scope set", tile)
            # Any new action takes the undo slot away from the previous one.
            self._undo = None
            generation = self._generation
            wash_date = self._wash_date
            location_ids = self._location_ids
            guard = MutationGuard(
                cutoff=self._cutoff, today=self._today, override_role=self.override_role
            )
            self._tiles[vehicle_id] = tile.mark_pending()

        action = action_for(tile)
        decision = guard.decide(action, tile, actor, wash_date)

        if decision.is_denied:
            settled = self._settle(generation, vehicle_id, tile.committed)
            return ToggleResult(
                ToggleOutcome.DENIED, DENIAL_MESSAGES.get(decision.reason, decision.reason), settled
            )

        if decision.needs_approval:
            settled = self._settle(generation, vehicle_id, tile.committed)
            try:
                self.backend.request_removal(actor, tile.committed.entry_id, reason)
            except NoManagerAssignedError:
                return ToggleResult(
                    ToggleOutcome.ERROR, "No manager assigned. Contact an administrator.", settled
                )
            except WashLedgerError as e:
                return ToggleResult(ToggleOutcome.ERROR, e.message, settled)
            return ToggleResult(ToggleOutcome.APPROVAL_REQUESTED, REQUEST_SENT_MESSAGE, settled)

        if action is ToggleAction.ADD:
            try:
                entry = self.backend.record_wash(actor, vehicle_id, wash_date, location_ids)
            except ConflictError:
                settled = self._settle(generation, vehicle_id, None)
                return ToggleResult(ToggleOutcome.ALREADY_WASHED, ALREADY_WASHED_MESSAGE, settled)
            except WashLedgerError as e:
                return self._failed(generation, tile, e)
            committed = _committed(entry)
            outcome = ToggleOutcome.RECORDED
        else:
            try:
                entry = self.backend.remove_wash(actor, tile.committed.entry_id)
            except WashLedgerError as e:
                return self._failed(generation, tile, e)
            committed = None
            outcome = ToggleOutcome.REMOVED

        settled = self._settle(
            generation,
            vehicle_id,
            committed,
            undo=UndoRecord(
                vehicle_id=vehicle_id,
                inverse_action=action.inverse,
                entry_id=entry.id,
                wash_date=wash_date,
                actor=actor,
                recorded_at=self._monotonic(),
            ),
        )
        return ToggleResult(outcome, None, settled)

    def undo(self) -> ToggleResult:
        """Replay the inverse of the last successful mutation.

        The undo window only hides the control; the slot stays valid until
        another toggle replaces it.
        """
        with self._lock:
            record = self._undo
            if record is None:
                return ToggleResult(ToggleOutcome.IGNORED, "Nothing to undo")
            generation = self._generation
            tile = self._tiles.get(record.vehicle_id)
            in_view = tile is not None and self._wash_date == record.wash_date
            if in_view:
                if tile.pending:
                    return ToggleResult(ToggleOutcome.IGNORED, None, tile)
                self._tiles[record.vehicle_id] = tile.mark_pending()

        try:
            if record.inverse_action is ToggleAction.REMOVE:
                self.backend.undo_add(record.actor, record.entry_id)
                committed = None
            else:
                committed = _committed(self.backend.restore_wash(record.actor, record.entry_id))
        except NetworkError as e:
            # The slot survives a transport failure so the user can retry.
            settled = self._settle(generation, record.vehicle_id, tile.committed) if in_view else None
            return ToggleResult(ToggleOutcome.ERROR, f"{RETRY_MESSAGE} ({e.message})", settled)
        except ConflictError:
            self._clear_undo(record)
            settled = self._settle(generation, record.vehicle_id, tile.committed) if in_view else None
            return ToggleResult(ToggleOutcome.ALREADY_WASHED, ALREADY_WASHED_MESSAGE, settled)
        except WashLedgerError as e:
            self._clear_undo(record)
            settled = self._settle(generation, record.vehicle_id, tile.committed) if in_view else None
            return ToggleResult(ToggleOutcome.ERROR, e.message, settled)

        self._clear_undo(record)
        settled = self._settle(generation, record.vehicle_id, committed) if in_view else None
        return ToggleResult(ToggleOutcome.UNDONE, None, settled)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _failed(self, generation: int, tile: TileState, error: WashLedgerError) -> ToggleResult:
        settled = self._settle(generation, tile.vehicle_id, tile.committed)
        if isinstance(error, NetworkError):
            logger.warning("Toggle of %s failed in transport: %s", tile.vehicle_id, error)
            return ToggleResult(ToggleOutcome.ERROR, RETRY_MESSAGE, settled)
        return ToggleResult(ToggleOutcome.ERROR, error.message, settled)

    def _settle(
        self,
        generation: int,
        vehicle_id: UUID,
        committed: RecordedWash | None,
        *,
        undo: UndoRecord | None = None,
    ) -> TileState | None:
        with self._lock:
            if undo is not None:
                self._undo = undo
            if generation != self._generation:
                logger.debug("Dropping result for %s from a stale scope", vehicle_id)
                return None
            tile = self._tiles.get(vehicle_id)
            if tile is None:
                return None
            settled = tile.settle(committed)
            self._tiles[vehicle_id] = settled
            return settled

    def _clear_undo(self, record: UndoRecord) -> None:
        with self._lock:
            if self._undo is record:
                self._undo = None


def _committed(entry: WashEntryResponse | None) -> RecordedWash | None:
    if entry is None:
        return None
    return RecordedWash(owner_id=entry.employee_id, entry_id=entry.id, created_at=entry.created_at)
