"""Entry ledger - authoritative store of wash entries.

Provides:
- One active entry per (vehicle, date), enforced by a partial unique index
- Soft delete by the owner, restore by clearing the soft-delete fields
- Scoped queries with an active / deleted / all status filter

The ledger is a mechanism, not a policy: it checks ownership on removal
but knows nothing about same-day rules or the cutoff. Each mutation is
committed on its own; the last-seen update, audit append and change event
that follow are best-effort.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wash_ledger.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from wash_ledger.events import (
    DomainEvent,
    EventEmitter,
    EventMetadata,
    WashEntryRecorded,
    WashEntryRemoved,
    WashEntryRestored,
)
from wash_ledger.models import Location, WashEntry
from wash_ledger.models.base import utcnow
from wash_ledger.services.audit_trail import AuditAction, AuditTrail
from wash_ledger.services.catalog import VehicleCatalog

logger = logging.getLogger(__name__)

TABLE_NAME = WashEntry.__tablename__


class EntryStatus(str, Enum):
    """Status filter for ledger queries."""

    ACTIVE = "active"
    DELETED = "deleted"
    ALL = "all"


class EntryLedger:
    """Wash entry store with soft delete and restore."""

    def __init__(
        self,
        session: Session,
        *,
        catalog: VehicleCatalog | None = None,
        audit: AuditTrail | None = None,
        emitter: EventEmitter | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.catalog = catalog or VehicleCatalog(session)
        self.audit = audit or AuditTrail(session, clock)
        self.emitter = emitter
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, entry_id: UUID) -> WashEntry:
        """Load an entry by id, including soft-deleted ones."""
        entry = self.session.get(WashEntry, entry_id)
        if entry is None:
            raise NotFoundError(f"Wash entry {entry_id} not found")
        return entry

    def active_entry(self, vehicle_id: UUID, wash_date: date) -> WashEntry | None:
        """The active entry for a vehicle on a day, if any."""
        return self.session.execute(
            select(WashEntry).where(
                WashEntry.vehicle_id == vehicle_id,
                WashEntry.wash_date == wash_date,
                WashEntry.deleted_at.is_(None),
            )
        ).scalar_one_or_none()

    def query(
        self,
        start: date,
        end: date | None = None,
        location_ids: Sequence[UUID] | None = None,
        status: EntryStatus | str = EntryStatus.ACTIVE,
        vehicle_ids: Sequence[UUID] | None = None,
    ) -> list[WashEntry]:
        """Entries with wash_date in [start, end], optionally scoped.

        location_ids filters on the actual location of the wash. Only
        active entries are returned unless another status is asked for.
        """
        end = end or start
        if end < start:
            raise ValidationError(f"Date range end {end} is before start {start}")

        stmt = select(WashEntry).where(
            WashEntry.wash_date >= start, WashEntry.wash_date <= end
        )
        if location_ids is not None:
            stmt = stmt.where(WashEntry.actual_location_id.in_(list(location_ids)))
        if vehicle_ids is not None:
            stmt = stmt.where(WashEntry.vehicle_id.in_(list(vehicle_ids)))

        status = EntryStatus(status)
        if status == EntryStatus.ACTIVE:
            stmt = stmt.where(WashEntry.deleted_at.is_(None))
        elif status == EntryStatus.DELETED:
            stmt = stmt.where(WashEntry.deleted_at.is_not(None))

        stmt = stmt.order_by(WashEntry.wash_date, WashEntry.created_at)
        return list(self.session.execute(stmt).scalars().all())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        vehicle_id: UUID | None,
        wash_date: date | None,
        location_id: UUID | None,
        employee_id: UUID | None,
        *,
        rate_override: Decimal | None = None,
        comment: str | None = None,
    ) -> WashEntry:
        """Record a wash owned by employee_id.

        Raises ConflictError if an active entry already exists for the
        vehicle on that day.
        """
        if vehicle_id is None:
            raise ValidationError("Vehicle is required")
        if location_id is None:
            raise ValidationError("Location is required")
        if employee_id is None:
            raise ValidationError("Employee is required")
        if wash_date is None or isinstance(wash_date, datetime):
            raise ValidationError("Wash date must be a calendar date")

        vehicle = self.catalog.get(vehicle_id)
        if not vehicle.is_active:
            raise ValidationError(f"Vehicle {vehicle.vehicle_number} is inactive")
        if self.session.get(Location, location_id) is None:
            raise NotFoundError(f"Location {location_id} not found")

        existing = self.active_entry(vehicle_id, wash_date)
        if existing is not None:
            raise ConflictError(
                f"{vehicle.vehicle_number} already washed on {wash_date.isoformat()}"
            )

        entry = WashEntry(
            vehicle_id=vehicle_id,
            wash_date=wash_date,
            actual_location_id=location_id,
            employee_id=employee_id,
            rate_override=rate_override,
            comment=comment,
            created_at=self.clock(),
        )
        self.session.add(entry)
        try:
            self.session.commit()
        except IntegrityError as e:
            # Lost a race against a concurrent insert for the same day.
            self.session.rollback()
            raise ConflictError(
                f"{vehicle.vehicle_number} already washed on {wash_date.isoformat()}"
            ) from e

        logger.info(
            "Recorded wash %s for vehicle %s on %s by %s",
            entry.id,
            vehicle_id,
            wash_date,
            employee_id,
        )

        self.catalog.touch_last_seen(vehicle_id, location_id, wash_date)
        self.audit.append(
            TABLE_NAME, entry.id, AuditAction.INSERT, None, entry.to_dict(), employee_id
        )
        self._publish(
            WashEntryRecorded(
                metadata=EventMetadata.create(actor_id=employee_id),
                entry_id=entry.id,
                vehicle_id=vehicle_id,
                wash_date=wash_date,
                location_id=location_id,
                employee_id=employee_id,
            )
        )
        return entry

    def soft_delete(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reason: str,
        *,
        deleted_by: UUID | None = None,
    ) -> WashEntry:
        """Soft-delete an entry on behalf of its owner.

        actor_id must be the entry's owner. deleted_by records who actually
        performed the removal when it differs (an approving manager).
        """
        entry = self.get(entry_id)
        old_data = self.stage_removal(entry, actor_id, reason, deleted_by=deleted_by)
        self.session.commit()
        self.announce_removal(entry, old_data)
        return entry

    def stage_removal(
        self,
        entry: WashEntry,
        actor_id: UUID,
        reason: str,
        *,
        deleted_by: UUID | None = None,
    ) -> dict:
        """Mark an entry removed in the current transaction without committing.

        Returns the entry's prior state for announce_removal.
        """
        if entry.employee_id != actor_id:
            raise PermissionDeniedError(
                "Only the employee who recorded this wash can remove it"
            )
        if not entry.is_active:
            raise InvalidStateError(f"Wash entry {entry.id} is already removed")

        old_data = entry.to_dict()
        entry.deleted_at = self.clock()
        entry.deleted_by = deleted_by or actor_id
        entry.deletion_reason = reason
        return old_data

    def announce_removal(self, entry: WashEntry, old_data: dict) -> None:
        """Log, audit and publish a committed removal."""
        logger.info("Removed wash %s (%s)", entry.id, entry.deletion_reason)

        self.audit.append(
            TABLE_NAME,
            entry.id,
            AuditAction.UPDATE,
            old_data,
            entry.to_dict(),
            entry.deleted_by,
        )
        self._publish(
            WashEntryRemoved(
                metadata=EventMetadata.create(actor_id=entry.deleted_by),
                entry_id=entry.id,
                vehicle_id=entry.vehicle_id,
                wash_date=entry.wash_date,
                deleted_by=entry.deleted_by,
                reason=entry.deletion_reason,
            )
        )

    def restore(self, entry_id: UUID, actor_id: UUID | None = None) -> WashEntry:
        """Clear the soft-delete fields of an entry.

        Raises ConflictError if another active entry now exists for the
        same vehicle and day.
        """
        entry = self.get(entry_id)
        if entry.is_active:
            raise InvalidStateError(f"Wash entry {entry_id} is not removed")

        other = self.active_entry(entry.vehicle_id, entry.wash_date)
        if other is not None:
            raise ConflictError(
                f"Another wash is already recorded for this vehicle on "
                f"{entry.wash_date.isoformat()}"
            )

        old_data = entry.to_dict()
        entry.deleted_at = None
        entry.deleted_by = None
        entry.deletion_reason = None
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError(
                f"Another wash is already recorded for this vehicle on "
                f"{entry.wash_date.isoformat()}"
            ) from e

        logger.info("Restored wash %s", entry.id)

        self.audit.append(
            TABLE_NAME, entry.id, AuditAction.UPDATE, old_data, entry.to_dict(), actor_id
        )
        self._publish(
            WashEntryRestored(
                metadata=EventMetadata.create(actor_id=actor_id),
                entry_id=entry.id,
                vehicle_id=entry.vehicle_id,
                wash_date=entry.wash_date,
            )
        )
        return entry

    def _publish(self, event: DomainEvent) -> None:
        if self.emitter is not None:
            self.emitter.emit(event)
