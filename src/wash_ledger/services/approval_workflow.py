"""Approval workflow - escalation of retroactive removals to a manager.

Operations:
- submit: owner asks their manager to remove a past-day entry
- approve: resolve the request and soft-delete the entry
- deny: resolve the request, leaving the entry untouched

Resolution is a conditional update on status = 'pending', so a request is
resolved at most once even when two reviewers act concurrently.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wash_ledger.errors import (
    ConflictError,
    InvalidStateError,
    NoManagerAssignedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from wash_ledger.events import (
    ApprovalRequested,
    ApprovalResolved,
    EventEmitter,
    EventMetadata,
)
from wash_ledger.models import AppUser, ApprovalRequest
from wash_ledger.models.base import utcnow
from wash_ledger.roles import Role, has_role_or_higher
from wash_ledger.services.audit_trail import AuditAction, AuditTrail
from wash_ledger.services.catalog import UserDirectory
from wash_ledger.services.entry_ledger import EntryLedger
from wash_ledger.services.state_machine import ApprovalStateMachine, ApprovalStatus

logger = logging.getLogger(__name__)

TABLE_NAME = ApprovalRequest.__tablename__
REMOVE_ENTRY = "remove_entry"


class ApprovalWorkflow:
    """Two-party approval of wash entry removals."""

    def __init__(
        self,
        session: Session,
        ledger: EntryLedger,
        directory: UserDirectory | None = None,
        *,
        admin_role: Role | str = Role.ADMIN,
        audit: AuditTrail | None = None,
        emitter: EventEmitter | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.ledger = ledger
        self.directory = directory or UserDirectory(session)
        self.admin_role = Role(admin_role)
        self.audit = audit or AuditTrail(session, clock)
        self.emitter = emitter
        self.clock = clock

    def get(self, request_id: UUID) -> ApprovalRequest:
        request = self.session.get(ApprovalRequest, request_id)
        if request is None:
            raise NotFoundError(f"Approval request {request_id} not found")
        return request

    def pending_for(self, manager_id: UUID) -> list[ApprovalRequest]:
        """Pending requests addressed to one manager, newest first."""
        result = self.session.execute(
            select(ApprovalRequest)
            .where(
                ApprovalRequest.manager_id == manager_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
            .order_by(ApprovalRequest.created_at.desc())
        )
        return list(result.scalars().all())

    def pending_for_entry(self, entry_id: UUID) -> ApprovalRequest | None:
        return self.session.execute(
            select(ApprovalRequest).where(
                ApprovalRequest.wash_entry_id == entry_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
        ).scalar_one_or_none()

    def submit(self, entry_id: UUID, requester_id: UUID, reason: str | None) -> ApprovalRequest:
        """Ask the requester's manager to remove an entry.

        Raises:
            ValidationError: reason is empty
            PermissionDeniedError: requester does not own the entry
            InvalidStateError: entry is already removed
            NoManagerAssignedError: requester has no manager
            ConflictError: a request for this entry is already pending
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to request removal")

        entry = self.ledger.get(entry_id)
        if entry.employee_id != requester_id:
            raise PermissionDeniedError("Only the owner of an entry can request its removal")
        if not entry.is_active:
            raise InvalidStateError(f"Wash entry {entry_id} is already removed")

        requester = self.directory.get(requester_id)
        if requester.manager_id is None:
            raise NoManagerAssignedError(
                "You must have a manager assigned to request approval"
            )

        if self.pending_for_entry(entry_id) is not None:
            raise ConflictError("A removal request for this entry is already pending")

        request = ApprovalRequest(
            employee_id=requester_id,
            manager_id=requester.manager_id,
            wash_entry_id=entry_id,
            request_type=REMOVE_ENTRY,
            reason=reason,
            status=ApprovalStatus.PENDING.value,
            created_at=self.clock(),
        )
        self.session.add(request)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError(
                "A removal request for this entry is already pending"
            ) from e

        logger.info(
            "Removal of wash %s requested by %s from manager %s",
            entry_id,
            requester_id,
            request.manager_id,
        )
        self.audit.append(
            TABLE_NAME, request.id, AuditAction.INSERT, None, request.to_dict(), requester_id
        )
        self._publish(
            ApprovalRequested(
                metadata=EventMetadata.create(actor_id=requester_id),
                request_id=request.id,
                entry_id=entry_id,
                employee_id=requester_id,
                manager_id=request.manager_id,
                reason=reason,
            )
        )
        return request

    def approve(self, request_id: UUID, approver_id: UUID) -> ApprovalRequest:
        """Approve a pending request and soft-delete its entry.

        The status change and the removal are committed together; if either
        fails the request stays pending.
        """
        request, old_data = self._transition(request_id, approver_id, ApprovalStatus.APPROVED)

        removal = None
        try:
            entry = self.ledger.get(request.wash_entry_id)
            if entry.is_active:
                removal = self.ledger.stage_removal(
                    entry,
                    request.employee_id,
                    f"Approved removal: {request.reason}",
                    deleted_by=approver_id,
                )
            else:
                logger.warning(
                    "Approved request %s targets wash %s which is already removed",
                    request.id,
                    entry.id,
                )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self._record_resolution(request, old_data, approver_id)
        if removal is not None:
            self.ledger.announce_removal(entry, removal)
        self._publish_resolution(request, approver_id)
        return request

    def deny(self, request_id: UUID, approver_id: UUID) -> ApprovalRequest:
        """Deny a pending request. The entry is left as it is."""
        request, old_data = self._transition(request_id, approver_id, ApprovalStatus.DENIED)
        self.session.commit()
        self._record_resolution(request, old_data, approver_id)
        self._publish_resolution(request, approver_id)
        return request

    def _transition(
        self, request_id: UUID, approver_id: UUID, to_status: ApprovalStatus
    ) -> tuple[ApprovalRequest, dict]:
        """Move a pending request to to_status in the open transaction."""
        request = self.get(request_id)
        ApprovalStateMachine.validate_transition(request.status, to_status)

        approver = self.directory.get(approver_id)
        self._require_authority(request, approver)

        old_data = request.to_dict()
        result = self.session.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == request.id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
            .values(
                status=to_status.value,
                reviewed_by=approver_id,
                reviewed_at=self.clock(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Resolved by someone else in the meantime
            self.session.rollback()
            self.session.refresh(request)
            raise InvalidStateError(
                f"Approval request {request.id} is already {request.status}",
                from_status=request.status,
                to_status=to_status.value,
            )
        return request, old_data

    def _record_resolution(
        self, request: ApprovalRequest, old_data: dict, approver_id: UUID
    ) -> None:
        self.session.refresh(request)
        logger.info("Approval request %s %s by %s", request.id, request.status, approver_id)
        self.audit.append(
            TABLE_NAME, request.id, AuditAction.UPDATE, old_data, request.to_dict(), approver_id
        )

    def _require_authority(self, request: ApprovalRequest, approver: AppUser) -> None:
        if approver.id == request.manager_id:
            return
        if has_role_or_higher(approver.role, self.admin_role):
            return
        logger.warning(
            "User %s tried to resolve request %s addressed to %s",
            approver.id,
            request.id,
            request.manager_id,
        )
        raise PermissionDeniedError("Only the assigned manager can resolve this request")

    def _publish_resolution(self, request: ApprovalRequest, approver_id: UUID) -> None:
        self._publish(
            ApprovalResolved(
                metadata=EventMetadata.create(actor_id=approver_id),
                request_id=request.id,
                entry_id=request.wash_entry_id,
                status=request.status,
                reviewed_by=approver_id,
            )
        )

    def _publish(self, event) -> None:
        if self.emitter is not None:
            self.emitter.emit(event)
