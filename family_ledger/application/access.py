"""
Family access evaluator

Loads the caller's membership for a family and turns it into a capability
snapshot. Operation rules that compare the acting member with a target
member are pure functions so they can be checked without a database.
"""
from dataclasses import dataclass

from sqlalchemy.orm import Session

from family_ledger.domain.errors import ForbiddenError, NotFoundError
from family_ledger.domain.role import (
    FamilyRole,
    parse_role,
    can_edit,
    can_manage,
    is_owner,
)
from family_ledger.infrastructure.db.models import Family, FamilyMember


@dataclass(frozen=True)
class FamilyAccess:
    """Capabilities of one user inside one family"""
    family_id: int
    user_id: int
    role: FamilyRole

    @property
    def can_edit(self) -> bool:
        return can_edit(self.role)

    @property
    def can_manage(self) -> bool:
        return can_manage(self.role)

    @property
    def is_owner(self) -> bool:
        return is_owner(self.role)

    def require_edit(self) -> "FamilyAccess":
        if not self.can_edit:
            raise ForbiddenError("Viewers cannot modify family data")
        return self

    def require_manage(self) -> "FamilyAccess":
        if not self.can_manage:
            raise ForbiddenError("Only the owner or an admin can manage this family")
        return self

    def require_owner(self) -> "FamilyAccess":
        if not self.is_owner:
            raise ForbiddenError("Only the family owner can do this")
        return self

    def as_dict(self) -> dict:
        return {
            "family_id": self.family_id,
            "role": self.role.value,
            "can_edit": self.can_edit,
            "can_manage": self.can_manage,
            "is_owner": self.is_owner,
        }


class FamilyAccessGuard:
    """
    Service: resolve (user, family) into FamilyAccess

    Usage:
        access = FamilyAccessGuard(db).load(user_id, family_id).require_edit()
    """

    def __init__(self, db: Session):
        self.db = db

    def get_membership(self, family_id: int, user_id: int) -> FamilyMember | None:
        return self.db.query(FamilyMember).filter(
            FamilyMember.family_id == family_id,
            FamilyMember.user_id == user_id
        ).first()

    def load(self, user_id: int, family_id: int | None) -> FamilyAccess:
        """
        Raises:
            ForbiddenError: no family selected, or the user is not a member
            NotFoundError: the family does not exist
        """
        if family_id is None:
            raise ForbiddenError("Join or create a family first")

        family = self.db.query(Family).filter(Family.id == family_id).first()
        if not family:
            raise NotFoundError(f"Family #{family_id} not found")

        membership = self.get_membership(family_id, user_id)
        if not membership:
            raise ForbiddenError("You are not a member of this family")

        return FamilyAccess(
            family_id=family_id,
            user_id=user_id,
            role=parse_role(membership.role),
        )


# ============================================================================
# Member management rules (actor role vs. target role)
# ============================================================================


def check_add_member(actor: FamilyRole, new_role: FamilyRole) -> None:
    if not can_manage(actor):
        raise ForbiddenError("Only the owner or an admin can add members")
    if new_role == FamilyRole.OWNER:
        raise ForbiddenError("A family has exactly one owner; members cannot be added as owner")


def check_remove_member(actor: FamilyRole, target: FamilyRole) -> None:
    if not can_manage(actor):
        raise ForbiddenError("Only the owner or an admin can remove members")
    if target == FamilyRole.OWNER:
        raise ForbiddenError("The family owner cannot be removed")
    if target == FamilyRole.ADMIN and not is_owner(actor):
        raise ForbiddenError("Only the owner can remove an admin")


def check_update_member_role(actor: FamilyRole, target: FamilyRole, new_role: FamilyRole) -> None:
    if not is_owner(actor):
        raise ForbiddenError("Only the owner can change member roles")
    if target == FamilyRole.OWNER:
        raise ForbiddenError("The owner's role cannot be changed")
    if new_role == FamilyRole.OWNER:
        raise ForbiddenError("Members cannot be promoted to owner")
