"""Vehicle catalog endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from wash_ledger.api.dependencies import Service
from wash_ledger.schemas import VehicleResponse

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=list[VehicleResponse])
def list_vehicles(
    service: Service,
    location_id: Annotated[list[UUID] | None, Query()] = None,
) -> list[VehicleResponse]:
    """Active vehicles homed at any of the given locations."""
    return [
        VehicleResponse.model_validate(v)
        for v in service.list_vehicles(location_id or [])
    ]
