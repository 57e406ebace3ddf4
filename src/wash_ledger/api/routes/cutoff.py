"""Cutoff and clock endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from wash_ledger.api.dependencies import Service, Today, UserId
from wash_ledger.schemas import (
    ClockResponse,
    CutoffChangeResponse,
    CutoffExtend,
    CutoffResponse,
    CutoffUpdate,
    ErrorResponse,
)

router = APIRouter(tags=["cutoff"])


@router.get("/cutoff", response_model=CutoffResponse)
def get_cutoff(service: Service) -> CutoffResponse:
    return CutoffResponse(cutoff_date=service.cutoff.current())


@router.post(
    "/cutoff/extend",
    response_model=CutoffResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def extend_cutoff(
    service: Service,
    user_id: UserId,
    payload: CutoffExtend,
) -> CutoffResponse:
    """Move the cutoff forward by a number of days."""
    return CutoffResponse(
        cutoff_date=service.extend_cutoff(payload.days, user_id, payload.reason)
    )


@router.put(
    "/cutoff",
    response_model=CutoffResponse,
    responses={403: {"model": ErrorResponse}},
)
def set_cutoff(
    service: Service,
    user_id: UserId,
    payload: CutoffUpdate,
) -> CutoffResponse:
    """Set the cutoff to an explicit date."""
    return CutoffResponse(
        cutoff_date=service.set_cutoff(payload.cutoff_date, user_id, payload.reason)
    )


@router.get("/cutoff/history", response_model=list[CutoffChangeResponse])
def cutoff_history(
    service: Service,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> list[CutoffChangeResponse]:
    """Cutoff changes, newest first."""
    return [CutoffChangeResponse.model_validate(c) for c in service.cutoff.history(limit)]


@router.get("/clock", response_model=ClockResponse)
def clock(today: Today) -> ClockResponse:
    """The server's calendar day, used by clients for same-day checks."""
    return ClockResponse(today=today())
