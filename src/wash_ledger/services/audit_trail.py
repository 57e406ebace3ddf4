"""Append-only audit trail written after each committed mutation."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from wash_ledger.models import AuditLog
from wash_ledger.models.base import utcnow

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Row-level change kinds."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditTrail:
    """Best-effort audit writer.

    The primary write has already committed when append() runs. A failure
    here is logged and swallowed; it never undoes the business mutation.
    """

    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock

    def append(
        self,
        table_name: str,
        record_id: UUID,
        action: AuditAction | str,
        old_data: dict[str, Any] | None,
        new_data: dict[str, Any] | None,
        actor_id: UUID | None,
        timestamp: datetime | None = None,
    ) -> AuditLog | None:
        """Append one audit record in its own transaction.

        Returns the record, or None if the write failed.
        """
        record = AuditLog(
            table_name=table_name,
            record_id=record_id,
            action=AuditAction(action).value,
            old_data=old_data,
            new_data=new_data,
            changed_by=actor_id,
            changed_at=timestamp or self.clock(),
        )
        try:
            self.session.add(record)
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.exception(
                "Audit append failed for %s %s (%s)", table_name, record_id, action
            )
            return None
        return record

    def for_record(self, table_name: str, record_id: UUID) -> list[AuditLog]:
        """Audit records of one row, oldest first."""
        result = self.session.execute(
            select(AuditLog)
            .where(AuditLog.table_name == table_name, AuditLog.record_id == record_id)
            .order_by(AuditLog.changed_at, AuditLog.id)
        )
        return list(result.scalars().all())
