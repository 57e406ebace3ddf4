"""Wash service - request-scoped orchestration of the ledger and its policies.

Every direct add/remove is re-evaluated by the mutation guard against the
authoritative ledger state, so callers that skip the client-side check
still cannot bypass the policy.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from wash_ledger.config import Settings, get_settings
from wash_ledger.errors import (
    ApprovalRequiredError,
    ConflictError,
    InvalidStateError,
    PermissionDeniedError,
    TemporalPolicyError,
)
from wash_ledger.events import EventEmitter
from wash_ledger.models import ApprovalRequest, Vehicle, WashEntry
from wash_ledger.models.base import utcnow
from wash_ledger.roles import has_role_or_higher
from wash_ledger.services.approval_workflow import ApprovalWorkflow
from wash_ledger.services.audit_trail import AuditTrail
from wash_ledger.services.catalog import UserDirectory, VehicleCatalog
from wash_ledger.services.cutoff_policy import CutoffPolicy
from wash_ledger.services.entry_ledger import EntryLedger, EntryStatus
from wash_ledger.services.mutation_guard import (
    ALREADY_RECORDED,
    OWNED_BY_OTHER,
    PERIOD_CLOSED,
    Decision,
    MutationGuard,
    ToggleAction,
)
from wash_ledger.tiles import Actor, RecordedWash, TileState

logger = logging.getLogger(__name__)

SAME_DAY_REMOVAL = "Removed by employee on same day"
UNDO_ADD = "Undo by employee"


class WashService:
    """Wires the ledger, cutoff policy and approval workflow to one session."""

    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        *,
        emitter: EventEmitter | None = None,
        today: Callable[[], date] = date.today,
        clock: Callable[[], datetime] = utcnow,
    ):
        settings = settings or get_settings()
        self.session = session
        self.settings = settings
        self.today = today
        self.directory = UserDirectory(session)
        self.catalog = VehicleCatalog(session)
        self.audit = AuditTrail(session, clock)
        self.ledger = EntryLedger(
            session, catalog=self.catalog, audit=self.audit, emitter=emitter, clock=clock
        )
        self.cutoff = CutoffPolicy(
            session,
            override_role=settings.cutoff_override_role,
            admin_role=settings.cutoff_admin_role,
            emitter=emitter,
            clock=clock,
        )
        self.approvals = ApprovalWorkflow(
            session,
            self.ledger,
            self.directory,
            admin_role=settings.cutoff_admin_role,
            audit=self.audit,
            emitter=emitter,
            clock=clock,
        )

    def actor(self, user_id: UUID) -> Actor:
        user = self.directory.get(user_id)
        return Actor(user_id=user.id, role=user.role)

    def guard(self) -> MutationGuard:
        return MutationGuard(
            cutoff=self.cutoff.current(),
            today=self.today(),
            override_role=self.settings.cutoff_override_role,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_vehicles(self, location_ids: Sequence[UUID]) -> list[Vehicle]:
        return self.catalog.list_for_locations(location_ids)

    def list_entries(
        self,
        start: date,
        end: date | None = None,
        location_ids: Sequence[UUID] | None = None,
        status: EntryStatus | str = EntryStatus.ACTIVE,
        vehicle_ids: Sequence[UUID] | None = None,
    ) -> list[WashEntry]:
        return self.ledger.query(start, end, location_ids, status, vehicle_ids)

    # ------------------------------------------------------------------
    # Direct mutations
    # ------------------------------------------------------------------

    def record_wash(
        self,
        vehicle_id: UUID,
        wash_date: date,
        actor_id: UUID,
        *,
        location_ids: Sequence[UUID] = (),
        location_id: UUID | None = None,
        rate_override: Decimal | None = None,
        comment: str | None = None,
    ) -> WashEntry:
        """Record a wash after checking the guard.

        The actual location is location_id when given, otherwise resolved
        from the vehicle's home location and the caller's scope.
        """
        actor = self.actor(actor_id)
        vehicle = self.catalog.get(vehicle_id)
        existing = self.ledger.active_entry(vehicle_id, wash_date)
        decision = self.guard().decide(
            ToggleAction.ADD, _tile_for(vehicle_id, existing), actor, wash_date
        )
        self._enforce(decision)

        if location_id is None:
            location_id = self.catalog.resolve_actual_location(vehicle, list(location_ids))
        return self.ledger.create(
            vehicle_id,
            wash_date,
            location_id,
            actor.user_id,
            rate_override=rate_override,
            comment=comment,
        )

    def remove_wash(self, entry_id: UUID, actor_id: UUID) -> WashEntry:
        """Same-day removal by the owner. Past days must go through approval."""
        actor = self.actor(actor_id)
        entry = self._removable(entry_id, actor)
        return self.ledger.soft_delete(entry.id, actor.user_id, SAME_DAY_REMOVAL)

    # ------------------------------------------------------------------
    # Undo
    # ------------------------------------------------------------------

    def undo_add(self, entry_id: UUID, actor_id: UUID) -> WashEntry:
        """Inverse of record_wash, held to the same rules as a removal."""
        actor = self.actor(actor_id)
        entry = self._removable(entry_id, actor)
        return self.ledger.soft_delete(entry.id, actor.user_id, UNDO_ADD)

    def restore_wash(self, entry_id: UUID, actor_id: UUID) -> WashEntry:
        """Inverse of a removal.

        The owner may bring back a wash they removed themselves today, as
        long as the day is still open. Anything else, such as reversing an
        approved removal, is an administrative reversal.
        """
        actor = self.actor(actor_id)
        entry = self.ledger.get(entry_id)
        if entry.is_active:
            raise InvalidStateError(f"Wash entry {entry_id} is not removed")
        if has_role_or_higher(actor.role, self.settings.cutoff_admin_role):
            return self.ledger.restore(entry.id, actor.user_id)

        if entry.employee_id != actor.user_id or entry.deleted_by != actor.user_id:
            logger.warning("User %s may not restore wash %s", actor.user_id, entry.id)
            raise PermissionDeniedError(
                "Only the employee who removed this wash or an administrator can restore it"
            )
        if entry.wash_date != self.today():
            raise TemporalPolicyError("Only washes removed today can be restored by their owner")
        current = self.ledger.active_entry(entry.vehicle_id, entry.wash_date)
        decision = self.guard().decide(
            ToggleAction.ADD, _tile_for(entry.vehicle_id, current), actor, entry.wash_date
        )
        self._enforce(decision)
        return self.ledger.restore(entry.id, actor.user_id)

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------

    def request_removal(
        self, entry_id: UUID, actor_id: UUID, reason: str | None
    ) -> ApprovalRequest:
        return self.approvals.submit(entry_id, actor_id, reason)

    def approve(self, request_id: UUID, actor_id: UUID) -> ApprovalRequest:
        return self.approvals.approve(request_id, actor_id)

    def deny(self, request_id: UUID, actor_id: UUID) -> ApprovalRequest:
        return self.approvals.deny(request_id, actor_id)

    def pending_approvals(self, manager_id: UUID) -> list[ApprovalRequest]:
        return self.approvals.pending_for(manager_id)

    # ------------------------------------------------------------------
    # Cutoff
    # ------------------------------------------------------------------

    def extend_cutoff(self, days: int, actor_id: UUID, reason: str | None = None) -> date:
        return self.cutoff.extend(days, self.directory.get(actor_id), reason)

    def set_cutoff(self, new_date: date, actor_id: UUID, reason: str | None = None) -> date:
        return self.cutoff.set(new_date, self.directory.get(actor_id), reason)

    def _removable(self, entry_id: UUID, actor: Actor) -> WashEntry:
        """Load an active entry and check the guard allows actor to remove it."""
        entry = self.ledger.get(entry_id)
        if not entry.is_active:
            raise InvalidStateError(f"Wash entry {entry_id} is already removed")

        decision = self.guard().decide(
            ToggleAction.REMOVE, _tile_for(entry.vehicle_id, entry), actor, entry.wash_date
        )
        if decision.needs_approval:
            logger.warning("Removal of wash %s by %s needs approval", entry.id, actor.user_id)
            raise ApprovalRequiredError(
                "Removing a wash from a past day requires manager approval"
            )
        self._enforce(decision)
        return entry

    @staticmethod
    def _enforce(decision: Decision) -> None:
        if decision.is_allowed:
            return
        logger.warning("Mutation denied: %s", decision.reason)
        if decision.reason == OWNED_BY_OTHER:
            raise PermissionDeniedError("This wash was recorded by another employee")
        if decision.reason == PERIOD_CLOSED:
            raise TemporalPolicyError("The entry period for this date is closed")
        if decision.reason == ALREADY_RECORDED:
            raise ConflictError("This vehicle is already washed for that date")
        raise InvalidStateError(f"Mutation not allowed: {decision.reason}")


def _tile_for(vehicle_id: UUID, entry: WashEntry | None) -> TileState:
    if entry is None:
        return TileState(vehicle_id=vehicle_id)
    return TileState(
        vehicle_id=vehicle_id,
        committed=RecordedWash(
            owner_id=entry.employee_id, entry_id=entry.id, created_at=entry.created_at
        ),
    )
