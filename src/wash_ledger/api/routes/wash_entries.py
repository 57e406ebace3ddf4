"""Wash entry endpoints.

Every mutation is re-checked by the mutation guard on the server.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from wash_ledger.api.dependencies import Service, UserId
from wash_ledger.schemas import ErrorResponse, WashEntryCreate, WashEntryResponse
from wash_ledger.services.entry_ledger import EntryStatus

router = APIRouter(prefix="/wash-entries", tags=["wash-entries"])


@router.get(
    "",
    response_model=list[WashEntryResponse],
    responses={422: {"model": ErrorResponse}},
)
def list_wash_entries(
    service: Service,
    start: date,
    end: date | None = None,
    location_id: Annotated[list[UUID] | None, Query()] = None,
    vehicle_id: Annotated[list[UUID] | None, Query()] = None,
    status_filter: Annotated[EntryStatus, Query(alias="status")] = EntryStatus.ACTIVE,
) -> list[WashEntryResponse]:
    """Entries in [start, end], optionally by actual location or vehicle."""
    entries = service.list_entries(
        start, end, location_id, status_filter, vehicle_ids=vehicle_id
    )
    return [WashEntryResponse.model_validate(e) for e in entries]


@router.post(
    "",
    response_model=WashEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
    },
)
def record_wash(
    service: Service,
    user_id: UserId,
    payload: WashEntryCreate,
) -> WashEntryResponse:
    """Record a wash for a vehicle on a service date."""
    entry = service.record_wash(
        payload.vehicle_id,
        payload.wash_date,
        user_id,
        location_ids=payload.location_ids,
        location_id=payload.location_id,
        rate_override=payload.rate_override,
        comment=payload.comment,
    )
    return WashEntryResponse.model_validate(entry)


@router.post(
    "/{entry_id}/remove",
    response_model=WashEntryResponse,
    responses={
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
    },
)
def remove_wash(
    service: Service,
    user_id: UserId,
    entry_id: Annotated[UUID, Path()],
) -> WashEntryResponse:
    """Same-day removal by the owner."""
    return WashEntryResponse.model_validate(service.remove_wash(entry_id, user_id))


@router.post(
    "/{entry_id}/undo-add",
    response_model=WashEntryResponse,
    responses={
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
    },
)
def undo_add(
    service: Service,
    user_id: UserId,
    entry_id: Annotated[UUID, Path()],
) -> WashEntryResponse:
    """Undo a just-recorded wash."""
    return WashEntryResponse.model_validate(service.undo_add(entry_id, user_id))


@router.post(
    "/{entry_id}/restore",
    response_model=WashEntryResponse,
    responses={
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
    },
)
def restore_wash(
    service: Service,
    user_id: UserId,
    entry_id: Annotated[UUID, Path()],
) -> WashEntryResponse:
    """Bring back a removed wash."""
    return WashEntryResponse.model_validate(service.restore_wash(entry_id, user_id))
