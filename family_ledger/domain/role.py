"""
Family role model

Four roles, totally ordered by privilege:
    viewer(0) < member(1) < admin(2) < owner(3)

Every function accepts None for "no membership", which is treated as
below viewer.
"""
from enum import Enum

from family_ledger.domain.errors import DomainValidationError


class FamilyRole(str, Enum):
    VIEWER = "viewer"
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"


ROLE_LEVELS = {
    FamilyRole.VIEWER: 0,
    FamilyRole.MEMBER: 1,
    FamilyRole.ADMIN: 2,
    FamilyRole.OWNER: 3,
}

# Role given to users who join by invite code or are added without a role
DEFAULT_MEMBER_ROLE = FamilyRole.MEMBER


def parse_role(value: str | FamilyRole) -> FamilyRole:
    """
    Convert a stored or transport value into FamilyRole

    Raises:
        DomainValidationError: unknown role name
    """
    if isinstance(value, FamilyRole):
        return value
    try:
        return FamilyRole(str(value).strip().lower())
    except ValueError:
        raise DomainValidationError(
            f"Unknown role: {value!r}. Use owner, admin, member or viewer"
        ) from None


def role_level(role: FamilyRole | None) -> int:
    """Privilege level for ordering comparisons (-1 without membership)"""
    if role is None:
        return -1
    return ROLE_LEVELS[role]


def can_edit(role: FamilyRole | None) -> bool:
    """Viewers are read-only; every other member may write family data"""
    if role is None:
        return False
    return role != FamilyRole.VIEWER


def can_manage(role: FamilyRole | None) -> bool:
    """Admins and the owner manage membership"""
    return role in (FamilyRole.ADMIN, FamilyRole.OWNER)


def is_owner(role: FamilyRole | None) -> bool:
    return role == FamilyRole.OWNER
