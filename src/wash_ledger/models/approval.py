"""Manager approval requests for retroactive removals."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from wash_ledger.models.base import Base, TimestampMixin


class ApprovalRequest(Base, TimestampMixin):
    """Employee's request that their manager remove a past-day entry."""

    __tablename__ = "manager_approval_requests"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    manager_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    wash_entry_id: Mapped[UUID] = mapped_column(
        ForeignKey("wash_entries.id"), nullable=False
    )
    request_type: Mapped[str] = mapped_column(
        String, nullable=False, default="remove_entry"
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    reviewed_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        Index(
            "approval_one_pending_per_entry",
            "wash_entry_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("approval_manager_status", "manager_id", "status"),
    )
