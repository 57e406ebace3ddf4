"""Change-notification events for ledger, approval and cutoff writes.

All events are:
- Immutable (frozen dataclasses)
- Typed with explicit payloads
- Serializable for subscribers that forward them elsewhere

Exactly one event is emitted per logical mutation, after it commits.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from wash_ledger.models.base import utcnow


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    LEDGER = "ledger"
    APPROVAL = "approval"
    CUTOFF = "cutoff"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every event."""

    event_id: UUID
    timestamp: datetime
    actor_id: UUID | None

    @classmethod
    def create(cls, actor_id: UUID | None = None) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(event_id=uuid4(), timestamp=utcnow(), actor_id=actor_id)


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        """Event type name for routing."""
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        """Event category for filtering."""
        raise NotImplementedError("Subclasses must define category")

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        data = _serialize(asdict(self))
        data["event_type"] = self.event_type
        data["category"] = self.category.value
        return data

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict(), default=str)


def _serialize(obj: Any) -> Any:
    """Recursively serialize objects for JSON compatibility."""
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_serialize(v) for v in obj]
    elif isinstance(obj, UUID):
        return str(obj)
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, Enum):
        return obj.value
    return obj


# =============================================================================
# Ledger Events
# =============================================================================


@dataclass(frozen=True)
class WashEntryRecorded(DomainEvent):
    """A wash entry was inserted."""

    entry_id: UUID
    vehicle_id: UUID
    wash_date: date
    location_id: UUID
    employee_id: UUID

    @property
    def category(self) -> EventCategory:
        return EventCategory.LEDGER


@dataclass(frozen=True)
class WashEntryRemoved(DomainEvent):
    """A wash entry was soft-deleted."""

    entry_id: UUID
    vehicle_id: UUID
    wash_date: date
    deleted_by: UUID
    reason: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.LEDGER


@dataclass(frozen=True)
class WashEntryRestored(DomainEvent):
    """A soft-deleted wash entry was made active again."""

    entry_id: UUID
    vehicle_id: UUID
    wash_date: date

    @property
    def category(self) -> EventCategory:
        return EventCategory.LEDGER


# =============================================================================
# Approval Events
# =============================================================================


@dataclass(frozen=True)
class ApprovalRequested(DomainEvent):
    """An employee asked their manager to remove a past-day entry."""

    request_id: UUID
    entry_id: UUID
    employee_id: UUID
    manager_id: UUID
    reason: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.APPROVAL


@dataclass(frozen=True)
class ApprovalResolved(DomainEvent):
    """A pending request was approved or denied."""

    request_id: UUID
    entry_id: UUID
    status: str
    reviewed_by: UUID

    @property
    def category(self) -> EventCategory:
        return EventCategory.APPROVAL


# =============================================================================
# Cutoff Events
# =============================================================================


@dataclass(frozen=True)
class CutoffChanged(DomainEvent):
    """The global entry cutoff moved."""

    old_value: date | None
    new_value: date
    reason: str | None

    @property
    def category(self) -> EventCategory:
        return EventCategory.CUTOFF
