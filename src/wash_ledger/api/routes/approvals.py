"""Manager approval endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from wash_ledger.api.dependencies import Service, UserId
from wash_ledger.schemas import ApprovalCreate, ApprovalResponse, ErrorResponse

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.post(
    "",
    response_model=ApprovalResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
def request_removal(
    service: Service,
    user_id: UserId,
    payload: ApprovalCreate,
) -> ApprovalResponse:
    """Ask the requester's manager to remove a past-day wash."""
    request = service.request_removal(payload.wash_entry_id, user_id, payload.reason)
    return ApprovalResponse.model_validate(request)


@router.get("/pending", response_model=list[ApprovalResponse])
def pending_approvals(service: Service, user_id: UserId) -> list[ApprovalResponse]:
    """Pending requests assigned to the calling manager, newest first."""
    return [ApprovalResponse.model_validate(r) for r in service.pending_approvals(user_id)]


@router.get(
    "/{request_id}",
    response_model=ApprovalResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_approval(
    service: Service,
    request_id: Annotated[UUID, Path()],
) -> ApprovalResponse:
    return ApprovalResponse.model_validate(service.approvals.get(request_id))


@router.post(
    "/{request_id}/approve",
    response_model=ApprovalResponse,
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def approve(
    service: Service,
    user_id: UserId,
    request_id: Annotated[UUID, Path()],
) -> ApprovalResponse:
    """Approve a request and remove its entry."""
    return ApprovalResponse.model_validate(service.approve(request_id, user_id))


@router.post(
    "/{request_id}/deny",
    response_model=ApprovalResponse,
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def deny(
    service: Service,
    user_id: UserId,
    request_id: Annotated[UUID, Path()],
) -> ApprovalResponse:
    """Deny a request. The entry is left untouched."""
    return ApprovalResponse.model_validate(service.deny(request_id, user_id))
