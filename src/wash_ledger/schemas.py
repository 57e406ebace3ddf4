"""Pydantic schemas for API payloads and client-side views."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Catalog schemas
# ============================================================================


class VehicleResponse(BaseModel):
    """Vehicle as shown on a tile."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vehicle_number: str
    vehicle_type_id: UUID
    home_location_id: UUID | None = None
    client_id: UUID | None = None
    last_seen_location_id: UUID | None = None
    last_seen_date: date | None = None
    is_active: bool = True


# ============================================================================
# Wash entry schemas
# ============================================================================


class WashEntryCreate(BaseModel):
    """Schema for recording a wash."""

    vehicle_id: UUID
    wash_date: date
    location_id: UUID | None = None
    location_ids: list[UUID] = Field(default_factory=list)
    rate_override: Decimal | None = None
    comment: str | None = None


class WashEntryResponse(BaseModel):
    """Schema for wash entry response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vehicle_id: UUID
    wash_date: date
    actual_location_id: UUID
    employee_id: UUID
    created_at: datetime
    deleted_at: datetime | None = None
    deleted_by: UUID | None = None
    deletion_reason: str | None = None
    rate_override: Decimal | None = None
    comment: str | None = None


# ============================================================================
# Approval schemas
# ============================================================================


class ApprovalCreate(BaseModel):
    """Schema for requesting removal of a past-day entry."""

    wash_entry_id: UUID
    reason: str = ""


class ApprovalResponse(BaseModel):
    """Schema for approval request response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    manager_id: UUID
    wash_entry_id: UUID
    request_type: str
    reason: str
    status: str
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


# ============================================================================
# Cutoff schemas
# ============================================================================


class CutoffResponse(BaseModel):
    """Current cutoff."""

    cutoff_date: date | None


class CutoffExtend(BaseModel):
    """Schema for extending the cutoff."""

    days: int = Field(ge=1)
    reason: str | None = None


class CutoffUpdate(BaseModel):
    """Schema for setting the cutoff."""

    cutoff_date: date
    reason: str | None = None


class CutoffChangeResponse(BaseModel):
    """One entry of the cutoff history."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    old_value: str | None = None
    new_value: str
    changed_by: UUID | None = None
    changed_at: datetime
    change_reason: str | None = None


class ClockResponse(BaseModel):
    """The server's calendar day."""

    today: date


class ErrorResponse(BaseModel):
    """Error payload."""

    detail: str
    code: str
