"""Wash entry records."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from wash_ledger.models.base import Base, TimestampMixin


class WashEntry(Base, TimestampMixin):
    """One vehicle serviced on one day, owned by the employee who recorded it.

    Removal is a soft delete. At most one row per (vehicle_id, wash_date)
    may have deleted_at IS NULL.
    """

    __tablename__ = "wash_entries"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    vehicle_id: Mapped[UUID] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False
    )
    wash_date: Mapped[date] = mapped_column(Date, nullable=False)
    actual_location_id: Mapped[UUID] = mapped_column(
        ForeignKey("locations.id"), nullable=False
    )
    employee_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deleted_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    deletion_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    rate_override: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "wash_entries_one_active_per_day",
            "vehicle_id",
            "wash_date",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("wash_entries_date_location", "wash_date", "actual_location_id"),
    )

    @property
    def is_active(self) -> bool:
        """True when the entry is not soft-deleted."""
        return self.deleted_at is None
