"""Backends the optimistic tile store talks to.

WashBackend is the transport-neutral surface; LocalBackend runs the
services in-process against a session factory.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Callable, Iterator, Protocol, Sequence
from uuid import UUID

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from wash_ledger.config import Settings
from wash_ledger.errors import NetworkError
from wash_ledger.events import EventEmitter
from wash_ledger.schemas import ApprovalResponse, VehicleResponse, WashEntryResponse
from wash_ledger.services.wash_service import WashService
from wash_ledger.tiles import Actor


class WashBackend(Protocol):
    """Operations the tile store needs from the ledger side."""

    def today(self) -> date: ...

    def current_cutoff(self) -> date | None: ...

    def list_vehicles(self, location_ids: Sequence[UUID]) -> list[VehicleResponse]: ...

    def list_entries(
        self, wash_date: date, vehicle_ids: Sequence[UUID]
    ) -> list[WashEntryResponse]: ...

    def record_wash(
        self,
        actor: Actor,
        vehicle_id: UUID,
        wash_date: date,
        location_ids: Sequence[UUID],
    ) -> WashEntryResponse: ...

    def remove_wash(self, actor: Actor, entry_id: UUID) -> WashEntryResponse: ...

    def undo_add(self, actor: Actor, entry_id: UUID) -> WashEntryResponse: ...

    def restore_wash(self, actor: Actor, entry_id: UUID) -> WashEntryResponse: ...

    def request_removal(
        self, actor: Actor, entry_id: UUID, reason: str | None
    ) -> ApprovalResponse: ...


class LocalBackend:
    """In-process backend: one session and WashService per call."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: Settings | None = None,
        *,
        emitter: EventEmitter | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.emitter = emitter
        self._today = today

    @contextmanager
    def _service(self) -> Iterator[WashService]:
        try:
            with self.session_factory() as session:
                yield WashService(
                    session, self.settings, emitter=self.emitter, today=self._today
                )
        except OperationalError as e:
            raise NetworkError(f"Ledger store unavailable: {e.orig}") from e

    def today(self) -> date:
        return self._today()

    def current_cutoff(self) -> date | None:
        with self._service() as service:
            return service.cutoff.current()

    def list_vehicles(self, location_ids: Sequence[UUID]) -> list[VehicleResponse]:
        with self._service() as service:
            return [
                VehicleResponse.model_validate(v)
                for v in service.list_vehicles(location_ids)
            ]

    def list_entries(
        self, wash_date: date, vehicle_ids: Sequence[UUID]
    ) -> list[WashEntryResponse]:
        with self._service() as service:
            return [
                WashEntryResponse.model_validate(e)
                for e in service.list_entries(wash_date, vehicle_ids=vehicle_ids)
            ]

    def record_wash(
        self,
        actor: Actor,
        vehicle_id: UUID,
        wash_date: date,
        location_ids: Sequence[UUID],
    ) -> WashEntryResponse:
        with self._service() as service:
            entry = service.record_wash(
                vehicle_id, wash_date, actor.user_id, location_ids=location_ids
            )
            return WashEntryResponse.model_validate(entry)

    def remove_wash(self, actor: Actor, entry_id: UUID) -> WashEntryResponse:
        with self._service() as service:
            return WashEntryResponse.model_validate(
                service.remove_wash(entry_id, actor.user_id)
            )

    def undo_add(self, actor: Actor, entry_id: UUID) -> WashEntryResponse:
        with self._service() as service:
            return WashEntryResponse.model_validate(
                service.undo_add(entry_id, actor.user_id)
            )

    def restore_wash(self, actor: Actor, entry_id: UUID) -> WashEntryResponse:
        with self._service() as service:
            return WashEntryResponse.model_validate(
                service.restore_wash(entry_id, actor.user_id)
            )

    def request_removal(
        self, actor: Actor, entry_id: UUID, reason: str | None
    ) -> ApprovalResponse:
        with self._service() as service:
            return ApprovalResponse.model_validate(
                service.request_removal(entry_id, actor.user_id, reason)
            )
