"""SQLAlchemy ORM models."""

from wash_ledger.models.base import Base, TimestampMixin
from wash_ledger.models.catalog import AppUser, Location, Vehicle, VehicleType
from wash_ledger.models.wash import WashEntry
from wash_ledger.models.approval import ApprovalRequest
from wash_ledger.models.settings import ENTRY_CUTOFF_KEY, SystemSetting, SystemSettingAudit
from wash_ledger.models.audit import AuditLog

__all__ = [
    "Base",
    "TimestampMixin",
    "AppUser",
    "Location",
    "Vehicle",
    "VehicleType",
    "WashEntry",
    "ApprovalRequest",
    "ENTRY_CUTOFF_KEY",
    "SystemSetting",
    "SystemSettingAudit",
    "AuditLog",
]
