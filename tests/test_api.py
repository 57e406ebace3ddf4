"""Tests for the HTTP API and the httpx backend."""

from datetime import date
from uuid import uuid4

import httpx
import pytest
from fastapi.testclient import TestClient

from wash_ledger.api.app import create_app
from wash_ledger.client import HttpBackend, OptimisticStateStore, ToggleOutcome
from wash_ledger.errors import (
    ApprovalRequiredError,
    ConflictError,
    NetworkError,
    NoManagerAssignedError,
    TemporalPolicyError,
    ValidationError,
)
from wash_ledger.services.wash_service import WashService
from wash_ledger.tiles import Actor

TODAY = date(2024, 3, 10)
LAST_WEEK = date(2024, 3, 3)


@pytest.fixture
def app(settings, session_factory, emitter, world):
    return create_app(
        settings=settings,
        session_factory=session_factory,
        emitter=emitter,
        today=lambda: TODAY,
    )


@pytest.fixture
def client(app):
    return TestClient(app)


def as_user(user):
    return {"X-User-ID": str(user.id)}


def record(client, user, vehicle, wash_date=TODAY, locations=()):
    return client.post(
        "/api/v1/wash-entries",
        headers=as_user(user),
        json={
            "vehicle_id": str(vehicle.id),
            "wash_date": wash_date.isoformat(),
            "location_ids": [str(loc.id) for loc in locations],
        },
    )


class TestHealth:
    """Test health endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "healthy"

    def test_ready_and_live(self, client):
        assert client.get("/ready").json() == {"status": "ready"}
        assert client.get("/live").json() == {"status": "alive"}


class TestWashEntries:
    """Test wash entry endpoints."""

    def test_record_and_list(self, client, world):
        response = record(client, world.e1, world.t101, locations=[world.north])
        assert response.status_code == 201
        body = response.json()
        assert body["employee_id"] == str(world.e1.id)
        assert body["actual_location_id"] == str(world.north.id)

        listed = client.get(
            "/api/v1/wash-entries",
            params={"start": TODAY.isoformat(), "location_id": [str(world.north.id)]},
        )
        assert [e["id"] for e in listed.json()] == [body["id"]]

    def test_user_header_is_required(self, client, world):
        response = client.post(
            "/api/v1/wash-entries",
            json={"vehicle_id": str(world.t101.id), "wash_date": TODAY.isoformat()},
        )
        assert response.status_code == 400

    def test_duplicate_is_conflict(self, client, world):
        record(client, world.e1, world.t101, locations=[world.north])
        response = record(client, world.e2, world.t101, locations=[world.north])

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_closed_period_is_locked(self, client, world, set_cutoff):
        set_cutoff(date(2024, 3, 5))
        response = record(client, world.e1, world.t101, LAST_WEEK, [world.north])

        assert response.status_code == 423
        assert response.json()["code"] == "PERIOD_CLOSED"

    def test_remove_flow(self, client, world):
        entry_id = record(client, world.e1, world.t101, locations=[world.north]).json()["id"]

        other = client.post(f"/api/v1/wash-entries/{entry_id}/remove", headers=as_user(world.e2))
        assert other.status_code == 403

        own = client.post(f"/api/v1/wash-entries/{entry_id}/remove", headers=as_user(world.e1))
        assert own.status_code == 200
        assert own.json()["deleted_at"] is not None

        deleted = client.get(
            "/api/v1/wash-entries", params={"start": TODAY.isoformat(), "status": "deleted"}
        )
        assert [e["id"] for e in deleted.json()] == [entry_id]

        restored = client.post(
            f"/api/v1/wash-entries/{entry_id}/restore", headers=as_user(world.e1)
        )
        assert restored.json()["deleted_at"] is None

    def test_past_day_removal_requires_approval(self, client, world):
        entry_id = record(client, world.e1, world.t101, LAST_WEEK, [world.north]).json()["id"]

        response = client.post(
            f"/api/v1/wash-entries/{entry_id}/remove", headers=as_user(world.e1)
        )
        assert response.status_code == 423
        assert response.json()["code"] == "APPROVAL_REQUIRED"

        undo = client.post(
            f"/api/v1/wash-entries/{entry_id}/undo-add", headers=as_user(world.e1)
        )
        assert undo.status_code == 423
        assert undo.json()["code"] == "APPROVAL_REQUIRED"

    def test_unknown_entry(self, client, world):
        response = client.post(
            f"/api/v1/wash-entries/{uuid4()}/undo-add", headers=as_user(world.e1)
        )
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_vehicles_by_location(self, client, world):
        response = client.get("/api/v1/vehicles", params={"location_id": str(world.south.id)})
        assert [v["vehicle_number"] for v in response.json()] == ["S-201"]


class TestApprovals:
    """Test approval endpoints."""

    def test_request_and_approve(self, client, world):
        entry_id = record(client, world.e1, world.t101, LAST_WEEK, [world.north]).json()["id"]

        created = client.post(
            "/api/v1/approvals",
            headers=as_user(world.e1),
            json={"wash_entry_id": entry_id, "reason": "wrong truck"},
        )
        assert created.status_code == 201
        request_id = created.json()["id"]

        pending = client.get("/api/v1/approvals/pending", headers=as_user(world.manager))
        assert [r["id"] for r in pending.json()] == [request_id]

        approved = client.post(
            f"/api/v1/approvals/{request_id}/approve", headers=as_user(world.manager)
        )
        assert approved.json()["status"] == "approved"

        again = client.post(
            f"/api/v1/approvals/{request_id}/deny", headers=as_user(world.manager)
        )
        assert again.status_code == 409
        assert again.json()["code"] == "INVALID_STATE"

        active = client.get("/api/v1/wash-entries", params={"start": LAST_WEEK.isoformat()})
        assert active.json() == []

    def test_no_manager_assigned(self, client, world):
        entry_id = record(client, world.loner, world.t101, LAST_WEEK, [world.north]).json()["id"]

        response = client.post(
            "/api/v1/approvals",
            headers=as_user(world.loner),
            json={"wash_entry_id": entry_id, "reason": "wrong truck"},
        )
        assert response.status_code == 404
        assert response.json()["code"] == "NO_MANAGER_ASSIGNED"

    def test_wrong_reviewer(self, client, world):
        entry_id = record(client, world.e1, world.t101, LAST_WEEK, [world.north]).json()["id"]
        request_id = client.post(
            "/api/v1/approvals",
            headers=as_user(world.e1),
            json={"wash_entry_id": entry_id, "reason": "wrong truck"},
        ).json()["id"]

        response = client.post(
            f"/api/v1/approvals/{request_id}/approve", headers=as_user(world.e2)
        )
        assert response.status_code == 403
        assert client.get(f"/api/v1/approvals/{request_id}").json()["status"] == "pending"


class TestCutoff:
    """Test cutoff endpoints."""

    def test_cutoff_lifecycle(self, client, world):
        assert client.get("/api/v1/cutoff").json() == {"cutoff_date": None}

        set_response = client.put(
            "/api/v1/cutoff",
            headers=as_user(world.admin),
            json={"cutoff_date": "2024-03-01", "reason": "open"},
        )
        assert set_response.json() == {"cutoff_date": "2024-03-01"}

        extended = client.post(
            "/api/v1/cutoff/extend",
            headers=as_user(world.admin),
            json={"days": 5, "reason": "close"},
        )
        assert extended.json() == {"cutoff_date": "2024-03-06"}

        history = client.get("/api/v1/cutoff/history").json()
        assert [h["new_value"] for h in history] == ["2024-03-06", "2024-03-01"]

    def test_employee_cannot_set_cutoff(self, client, world):
        response = client.put(
            "/api/v1/cutoff",
            headers=as_user(world.e1),
            json={"cutoff_date": "2024-03-01"},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

    def test_extend_without_cutoff(self, client, world):
        response = client.post(
            "/api/v1/cutoff/extend", headers=as_user(world.admin), json={"days": 1}
        )
        assert response.status_code == 404

    def test_extend_rejects_non_positive_days(self, client, world):
        response = client.post(
            "/api/v1/cutoff/extend", headers=as_user(world.admin), json={"days": 0}
        )
        assert response.status_code == 422

    def test_clock(self, client):
        assert client.get("/api/v1/clock").json() == {"today": "2024-03-10"}


class TestUnexpectedErrors:
    """Test the catch-all handler."""

    def test_internal_error_payload(self, app, world, monkeypatch):
        def explode(self, location_ids):
            raise RuntimeError("boom")

        monkeypatch.setattr(WashService, "list_vehicles", explode)
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/v1/vehicles", params={"location_id": str(world.north.id)})

        assert response.status_code == 500
        assert response.json() == {
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }


class TestHttpBackend:
    """Test the httpx backend against the app."""

    def test_tile_store_over_http(self, client, settings, world):
        """The full toggle and undo cycle works over HTTP."""
        store = OptimisticStateStore.from_settings(HttpBackend(client), settings)
        store.set_scope(TODAY, [world.north.id])
        e1 = Actor(world.e1.id, world.e1.role)
        e2 = Actor(world.e2.id, world.e2.role)

        added = store.toggle(world.t101.id, e1)
        assert added.outcome is ToggleOutcome.RECORDED
        assert store.toggle(world.t101.id, e2).outcome is ToggleOutcome.DENIED
        assert store.toggle(world.t101.id, e1).outcome is ToggleOutcome.REMOVED
        assert store.undo().outcome is ToggleOutcome.UNDONE
        assert store.tile(world.t101.id).committed.entry_id == added.tile.committed.entry_id

        store.refresh()
        assert store.tile(world.t101.id).owner_id == world.e1.id
        assert store.today == TODAY

    def test_errors_map_to_exceptions(self, client, world):
        backend = HttpBackend(client)
        e1 = Actor(world.e1.id)
        loner = Actor(world.loner.id)

        backend.record_wash(e1, world.t101.id, TODAY, [world.north.id])
        with pytest.raises(ConflictError):
            backend.record_wash(Actor(world.e2.id), world.t101.id, TODAY, [world.north.id])

        past = backend.record_wash(e1, world.t102.id, LAST_WEEK, [world.north.id])
        with pytest.raises(TemporalPolicyError) as exc_info:
            backend.remove_wash(e1, past.id)
        assert exc_info.value.code == "APPROVAL_REQUIRED"
        assert isinstance(exc_info.value, ApprovalRequiredError)

        with pytest.raises(ValidationError):
            backend.request_removal(e1, past.id, "")

        mine = backend.record_wash(loner, world.s201.id, LAST_WEEK, [world.south.id])
        with pytest.raises(NoManagerAssignedError):
            backend.request_removal(loner, mine.id, "wrong truck")

    def test_transport_failure_is_network_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend = HttpBackend(
            httpx.Client(transport=httpx.MockTransport(refuse), base_url="http://ledger")
        )
        with pytest.raises(NetworkError):
            backend.current_cutoff()

    def test_server_error_is_network_error(self):
        backend = HttpBackend(
            httpx.Client(
                transport=httpx.MockTransport(lambda request: httpx.Response(503)),
                base_url="http://ledger",
            )
        )
        with pytest.raises(NetworkError):
            backend.today()
