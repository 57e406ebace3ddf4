"""HTTP backend for the tile store, speaking to the FastAPI surface via httpx.

Error payloads are mapped back onto the error taxonomy; transport failures
and 5xx responses become NetworkError.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Sequence
from uuid import UUID

import httpx

from wash_ledger.errors import ERRORS_BY_CODE, NetworkError, WashLedgerError
from wash_ledger.schemas import (
    ApprovalResponse,
    ClockResponse,
    CutoffResponse,
    VehicleResponse,
    WashEntryResponse,
)
from wash_ledger.tiles import Actor

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-ID"


class HttpBackend:
    """WashBackend over HTTP."""

    def __init__(self, client: httpx.Client, base_path: str = "/api/v1"):
        self.client = client
        self.base_path = base_path.rstrip("/")

    def _request(
        self,
        method: str,
        path: str,
        actor: Actor | None = None,
        **kwargs: Any,
    ) -> Any:
        headers = {USER_HEADER: str(actor.user_id)} if actor else {}
        try:
            response = self.client.request(
                method, f"{self.base_path}{path}", headers=headers, **kwargs
            )
        except httpx.TransportError as e:
            logger.warning("Transport failure on %s %s: %s", method, path, e)
            raise NetworkError(f"Could not reach the ledger: {e}") from e

        if response.status_code >= 500:
            raise NetworkError(f"Ledger error {response.status_code}")
        if response.status_code >= 400:
            raise _error_from(response)
        return response.json()

    def today(self) -> date:
        return ClockResponse.model_validate(self._request("GET", "/clock")).today

    def current_cutoff(self) -> date | None:
        return CutoffResponse.model_validate(self._request("GET", "/cutoff")).cutoff_date

    def list_vehicles(self, location_ids: Sequence[UUID]) -> list[VehicleResponse]:
        data = self._request(
            "GET", "/vehicles", params={"location_id": [str(i) for i in location_ids]}
        )
        return [VehicleResponse.model_validate(v) for v in data]

    def list_entries(
        self, wash_date: date, vehicle_ids: Sequence[UUID]
    ) -> list[WashEntryResponse]:
        data = self._request(
            "GET",
            "/wash-entries",
            params={
                "start": wash_date.isoformat(),
                "end": wash_date.isoformat(),
                "vehicle_id": [str(i) for i in vehicle_ids],
            },
        )
        return [WashEntryResponse.model_validate(e) for e in data]

    def record_wash(
        self,
        actor: Actor,
        vehicle_id: UUID,
        wash_date: date,
        location_ids: Sequence[UUID],
    ) -> WashEntryResponse:
        payload = {
            "vehicle_id": str(vehicle_id),
            "wash_date": wash_date.isoformat(),
            "location_ids": [str(i) for i in location_ids],
        }
        return WashEntryResponse.model_validate(
            self._request("POST", "/wash-entries", actor, json=payload)
        )

    def remove_wash(self, actor: Actor, entry_id: UUID) -> WashEntryResponse:
        return WashEntryResponse.model_validate(
            self._request("POST", f"/wash-entries/{entry_id}/remove", actor)
        )

    def undo_add(self, actor: Actor, entry_id: UUID) -> WashEntryResponse:
        return WashEntryResponse.model_validate(
            self._request("POST", f"/wash-entries/{entry_id}/undo-add", actor)
        )

    def restore_wash(self, actor: Actor, entry_id: UUID) -> WashEntryResponse:
        return WashEntryResponse.model_validate(
            self._request("POST", f"/wash-entries/{entry_id}/restore", actor)
        )

    def request_removal(
        self, actor: Actor, entry_id: UUID, reason: str | None
    ) -> ApprovalResponse:
        payload = {"wash_entry_id": str(entry_id), "reason": reason or ""}
        return ApprovalResponse.model_validate(
            self._request("POST", "/approvals", actor, json=payload)
        )


def _error_from(response: httpx.Response) -> WashLedgerError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    code = body.get("code", "")
    detail = body.get("detail", response.reason_phrase)
    if not isinstance(detail, str):
        # FastAPI request validation errors carry a list of problems
        detail = str(detail)
        code = code or "VALIDATION_ERROR"
    cls = ERRORS_BY_CODE.get(code, WashLedgerError)
    error = cls(detail)
    error.code = code or error.code
    return error
