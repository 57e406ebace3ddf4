"""Append-only audit log."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from wash_ledger.models.base import Base, utcnow


class AuditLog(Base):
    """Row-level change record written after each ledger mutation."""

    __tablename__ = "audit_log"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    table_name: Mapped[str] = mapped_column(String, nullable=False)
    record_id: Mapped[UUID] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    old_data: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)
    new_data: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)
    changed_by: Mapped[UUID | None] = mapped_column(nullable=True)
    changed_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (Index("audit_log_record", "table_name", "record_id"),)
