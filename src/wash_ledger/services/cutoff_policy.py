"""Cutoff policy - global date boundary for entry mutability.

Service dates strictly before the cutoff are closed to actors below the
override role. Moving the cutoff is reserved to the admin role and every
change is recorded in the settings history.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from wash_ledger.errors import NotFoundError, PermissionDeniedError, ValidationError
from wash_ledger.events import CutoffChanged, EventEmitter, EventMetadata
from wash_ledger.models import ENTRY_CUTOFF_KEY, AppUser, SystemSetting, SystemSettingAudit
from wash_ledger.models.base import utcnow
from wash_ledger.roles import Role, has_role_or_higher

logger = logging.getLogger(__name__)


def parse_cutoff(value: str | None) -> date | None:
    """Parse a stored cutoff value.

    Older rows hold a full ISO timestamp; only the calendar day matters.
    """
    if not value:
        return None
    return date.fromisoformat(value[:10])


def is_locked_for(
    cutoff: date | None,
    service_date: date,
    actor_role: Role | str,
    override_role: Role | str = Role.MANAGER,
) -> bool:
    """True iff service_date < cutoff and the role cannot override it."""
    if cutoff is None or service_date >= cutoff:
        return False
    return not has_role_or_higher(actor_role, override_role)


class CutoffPolicy:
    """Reads and moves the global entry cutoff."""

    def __init__(
        self,
        session: Session,
        *,
        override_role: Role | str = Role.MANAGER,
        admin_role: Role | str = Role.ADMIN,
        emitter: EventEmitter | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.override_role = Role(override_role)
        self.admin_role = Role(admin_role)
        self.emitter = emitter
        self.clock = clock

    def current(self) -> date | None:
        """The configured cutoff, or None if none is set."""
        setting = self._setting()
        return parse_cutoff(setting.setting_value) if setting else None

    def is_locked(self, service_date: date, actor_role: Role | str) -> bool:
        return is_locked_for(
            self.current(), service_date, actor_role, self.override_role
        )

    def can_override(self, actor_role: Role | str) -> bool:
        return has_role_or_higher(actor_role, self.override_role)

    def extend(self, days: int, actor: AppUser, reason: str | None = None) -> date:
        """Shift the cutoff forward by exactly `days` days."""
        self._require_admin(actor)
        if days < 1:
            raise ValidationError("Cutoff can only be extended by a positive number of days")
        current = self.current()
        if current is None:
            raise NotFoundError("Current cutoff date not found")
        return self._write(current + timedelta(days=days), actor, reason)

    def set(self, new_date: date, actor: AppUser, reason: str | None = None) -> date:
        """Set the cutoff to an explicit date."""
        self._require_admin(actor)
        if not isinstance(new_date, date) or isinstance(new_date, datetime):
            raise ValidationError("Cutoff must be a calendar date")
        return self._write(new_date, actor, reason)

    def history(self, limit: int = 50) -> list[SystemSettingAudit]:
        """Cutoff changes, newest first."""
        result = self.session.execute(
            select(SystemSettingAudit)
            .where(SystemSettingAudit.setting_key == ENTRY_CUTOFF_KEY)
            .order_by(SystemSettingAudit.changed_at.desc(), SystemSettingAudit.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    def _require_admin(self, actor: AppUser) -> None:
        if not has_role_or_higher(actor.role, self.admin_role):
            logger.warning("User %s (%s) tried to move the cutoff", actor.id, actor.role)
            raise PermissionDeniedError(
                f"Changing the cutoff requires the {self.admin_role.value} role"
            )

    def _setting(self) -> SystemSetting | None:
        return self.session.execute(
            select(SystemSetting).where(SystemSetting.setting_key == ENTRY_CUTOFF_KEY)
        ).scalar_one_or_none()

    def _write(self, new_date: date, actor: AppUser, reason: str | None) -> date:
        now = self.clock()
        setting = self._setting()
        old_value = setting.setting_value if setting else None
        if setting is None:
            setting = SystemSetting(
                setting_key=ENTRY_CUTOFF_KEY,
                setting_value=new_date.isoformat(),
                description="Entries dated before this day are closed",
            )
            self.session.add(setting)
        setting.setting_value = new_date.isoformat()
        setting.updated_by = actor.id
        setting.updated_at = now

        self.session.add(
            SystemSettingAudit(
                setting_key=ENTRY_CUTOFF_KEY,
                old_value=old_value,
                new_value=new_date.isoformat(),
                changed_by=actor.id,
                changed_at=now,
                change_reason=reason,
            )
        )
        self.session.commit()

        old_date = parse_cutoff(old_value)
        logger.info("Cutoff moved from %s to %s by %s", old_date, new_date, actor.id)
        if self.emitter is not None:
            self.emitter.emit(
                CutoffChanged(
                    metadata=EventMetadata.create(actor_id=actor.id),
                    old_value=old_date,
                    new_value=new_date,
                    reason=reason,
                )
            )
        return new_date
