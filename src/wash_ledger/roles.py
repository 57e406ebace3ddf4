"""Role hierarchy consumed from the identity collaborator.

Super Admin > Admin > Finance > Manager > Employee
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role values."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    FINANCE = "finance"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ROLE_RANK: dict[Role, int] = {
    Role.EMPLOYEE: 1,
    Role.MANAGER: 2,
    Role.FINANCE: 3,
    Role.ADMIN: 4,
    Role.SUPER_ADMIN: 5,
}


def has_role_or_higher(user_role: str | Role, required_role: str | Role) -> bool:
    """Check if a role sits at or above another in the hierarchy.

    Unknown roles rank below everything.
    """
    try:
        user_rank = ROLE_RANK[Role(user_role)]
    except ValueError:
        return False
    return user_rank >= ROLE_RANK[Role(required_role)]
