"""Tests for the manager approval workflow."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from wash_ledger.errors import (
    ConflictError,
    InvalidStateError,
    NoManagerAssignedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from wash_ledger.events import ApprovalRequested, ApprovalResolved, WashEntryRemoved
from wash_ledger.models import ApprovalRequest, WashEntry

LAST_WEEK = date(2024, 3, 3)


@pytest.fixture
def entry(service, world):
    """A past-day wash owned by E1."""
    return service.record_wash(
        world.t101.id, LAST_WEEK, world.e1.id, location_ids=[world.north.id]
    )


class TestSubmit:
    """Test submitting removal requests."""

    def test_submit_routes_to_manager(self, service, world, entry, events):
        """The request goes to the requester's manager and stays pending."""
        request = service.request_removal(entry.id, world.e1.id, "  duplicate tag  ")

        assert request.status == "pending"
        assert request.manager_id == world.manager.id
        assert request.employee_id == world.e1.id
        assert request.request_type == "remove_entry"
        assert request.reason == "duplicate tag"
        assert service.ledger.get(entry.id).is_active
        assert isinstance(events[-1], ApprovalRequested)
        assert events[-1].manager_id == world.manager.id

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reason_is_required(self, service, world, entry, reason):
        with pytest.raises(ValidationError):
            service.request_removal(entry.id, world.e1.id, reason)

    def test_only_owner_can_request(self, service, world, entry):
        with pytest.raises(PermissionDeniedError):
            service.request_removal(entry.id, world.e2.id, "not mine")

    def test_no_manager_assigned(self, service, world):
        """An employee without a manager cannot escalate."""
        orphan = service.record_wash(
            world.t102.id, LAST_WEEK, world.loner.id, location_ids=[world.north.id]
        )
        with pytest.raises(NoManagerAssignedError) as exc_info:
            service.request_removal(orphan.id, world.loner.id, "wrong truck")

        assert isinstance(exc_info.value, NotFoundError)
        assert service.approvals.pending_for_entry(orphan.id) is None

    def test_one_pending_request_per_entry(self, service, world, entry):
        service.request_removal(entry.id, world.e1.id, "first")
        with pytest.raises(ConflictError):
            service.request_removal(entry.id, world.e1.id, "second")

    def test_removed_entry_cannot_be_requested(self, service, world):
        today_entry = service.record_wash(
            world.t101.id, date(2024, 3, 10), world.e1.id, location_ids=[world.north.id]
        )
        service.remove_wash(today_entry.id, world.e1.id)
        with pytest.raises(InvalidStateError):
            service.request_removal(today_entry.id, world.e1.id, "already gone")

    def test_resubmit_after_denial(self, service, world, entry):
        """Only pending requests block a new one."""
        first = service.request_removal(entry.id, world.e1.id, "first")
        service.deny(first.id, world.manager.id)

        second = service.request_removal(entry.id, world.e1.id, "second")
        assert second.status == "pending"


class TestResolve:
    """Test approving and denying."""

    def test_approve_soft_deletes_entry(self, service, world, entry, events):
        request = service.request_removal(entry.id, world.e1.id, "duplicate")

        approved = service.approve(request.id, world.manager.id)

        assert approved.status == "approved"
        assert approved.reviewed_by == world.manager.id
        assert approved.reviewed_at is not None

        removed = service.ledger.get(entry.id)
        assert not removed.is_active
        assert removed.deleted_by == world.manager.id
        assert removed.deletion_reason == "Approved removal: duplicate"

        assert [type(e) for e in events[-2:]] == [WashEntryRemoved, ApprovalResolved]
        assert events[-1].status == "approved"

    def test_deny_leaves_entry_untouched(self, service, world, entry):
        request = service.request_removal(entry.id, world.e1.id, "duplicate")

        denied = service.deny(request.id, world.manager.id)

        assert denied.status == "denied"
        kept = service.ledger.get(entry.id)
        assert kept.is_active
        assert kept.deleted_by is None

    def test_no_reopening(self, service, world, entry):
        """Resolved requests stay resolved."""
        request = service.request_removal(entry.id, world.e1.id, "duplicate")
        service.approve(request.id, world.manager.id)

        with pytest.raises(InvalidStateError):
            service.approve(request.id, world.manager.id)
        with pytest.raises(InvalidStateError):
            service.deny(request.id, world.manager.id)

    def test_only_assigned_manager_or_admin(self, service, world, entry):
        request = service.request_removal(entry.id, world.e1.id, "duplicate")

        with pytest.raises(PermissionDeniedError):
            service.approve(request.id, world.e2.id)
        assert service.approvals.get(request.id).status == "pending"

        assert service.deny(request.id, world.admin.id).status == "denied"

    def test_concurrent_resolution_loses(self, service, session, world, entry):
        """A request resolved behind our back is not resolved again."""
        request = service.request_removal(entry.id, world.e1.id, "duplicate")
        session.execute(
            update(ApprovalRequest)
            .where(ApprovalRequest.id == request.id)
            .values(status="denied")
            .execution_options(synchronize_session=False)
        )
        session.commit()

        with pytest.raises(InvalidStateError) as exc_info:
            service.approve(request.id, world.manager.id)

        assert exc_info.value.from_status == "denied"
        assert service.ledger.get(entry.id).is_active

    def test_approve_already_removed_entry(self, service, world, entry):
        """Approval still resolves when the entry is gone already."""
        request = service.request_removal(entry.id, world.e1.id, "duplicate")
        service.ledger.soft_delete(entry.id, world.e1.id, "Cleaned up")

        approved = service.approve(request.id, world.manager.id)
        assert approved.status == "approved"
        assert service.ledger.get(entry.id).deletion_reason == "Cleaned up"

    def test_failed_removal_keeps_request_pending(
        self, service, session_factory, world, entry, events, monkeypatch
    ):
        """Approval and removal commit together or not at all."""
        request = service.request_removal(entry.id, world.e1.id, "duplicate")

        def locked(*args, **kwargs):
            raise OperationalError("UPDATE wash_entries", {}, Exception("database is locked"))

        monkeypatch.setattr(service.ledger, "stage_removal", locked)
        with pytest.raises(OperationalError):
            service.approve(request.id, world.manager.id)

        with session_factory() as fresh:
            assert fresh.get(ApprovalRequest, request.id).status == "pending"
            assert fresh.get(WashEntry, entry.id).deleted_at is None
        assert not any(isinstance(e, ApprovalResolved) for e in events)

        monkeypatch.undo()
        assert service.approve(request.id, world.manager.id).status == "approved"
        assert not service.ledger.get(entry.id).is_active

    def test_unknown_request(self, service, world):
        with pytest.raises(NotFoundError):
            service.approve(uuid4(), world.manager.id)


class TestPendingQueue:
    """Test the manager's queue."""

    def test_pending_for_manager_newest_first(self, service, world, entry):
        other = service.record_wash(
            world.t102.id, LAST_WEEK, world.e2.id, location_ids=[world.north.id]
        )
        older = service.request_removal(entry.id, world.e1.id, "first")
        newer = service.request_removal(other.id, world.e2.id, "second")

        assert [r.id for r in service.pending_approvals(world.manager.id)] == [
            newer.id,
            older.id,
        ]

        service.deny(newer.id, world.manager.id)
        assert [r.id for r in service.pending_approvals(world.manager.id)] == [older.id]
        assert service.pending_approvals(world.admin.id) == []
