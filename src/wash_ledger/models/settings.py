"""System settings rows (the entry cutoff lives here) and their history."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from wash_ledger.models.base import Base, utcnow

ENTRY_CUTOFF_KEY = "entry_cutoff_date"


class SystemSetting(Base):
    """Key/value system setting."""

    __tablename__ = "system_settings"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    setting_key: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    setting_value: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class SystemSettingAudit(Base):
    """One change of a system setting."""

    __tablename__ = "system_settings_audit"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    setting_key: Mapped[str] = mapped_column(String, nullable=False)
    old_value: Mapped[str | None] = mapped_column(String, nullable=True)
    new_value: Mapped[str] = mapped_column(String, nullable=False)
    changed_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    changed_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    change_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
