"""
Family use cases - families, membership and invite codes

Every use case stages its writes and commits once at the end. Store-level
uniqueness (invite code, one membership per user and family) is the race
detector: an IntegrityError on commit is rolled back and reported as a
ConflictError.
"""
import logging
import secrets
import string

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from family_ledger.application.access import (
    FamilyAccessGuard,
    check_add_member,
    check_remove_member,
    check_update_member_role,
)
from family_ledger.application.categories import seed_default_categories
from family_ledger.config import get_settings
from family_ledger.domain.errors import (
    ConflictError,
    DomainValidationError,
    ForbiddenError,
    NotFoundError,
)
from family_ledger.domain.role import FamilyRole, DEFAULT_MEMBER_ROLE, parse_role
from family_ledger.infrastructure.db.models import (
    Asset,
    AssetCategory,
    AssetChange,
    Family,
    FamilyMember,
    Transaction,
    TransactionCategory,
    User,
)

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits


class FamilyValidationError(DomainValidationError):
    """Family operation rejected"""
    pass


# ============================================================================
# Helpers shared with the family initializer
# ============================================================================


def generate_invite_code(length: int | None = None) -> str:
    """Random uppercase alphanumeric code, e.g. 'K7Q2M9XA'"""
    length = length or get_settings().INVITE_CODE_LENGTH
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def normalize_invite_code(code: str) -> str:
    return (code or "").strip().upper()


def allocate_invite_code(db: Session) -> str:
    """
    Draw codes until one is unused.

    The unique constraint on families.invite_code still guards the window
    between this check and the commit.

    Raises:
        ConflictError: no free code after INVITE_CODE_MAX_ATTEMPTS draws
    """
    settings = get_settings()
    for _ in range(settings.INVITE_CODE_MAX_ATTEMPTS):
        code = generate_invite_code(settings.INVITE_CODE_LENGTH)
        taken = db.query(Family.id).filter(Family.invite_code == code).first()
        if not taken:
            return code
    raise ConflictError("Could not allocate a unique invite code, try again")


def stage_family_with_owner(
    db: Session,
    user: User,
    name: str,
    description: str | None = None,
) -> Family:
    """
    Stage (flush, no commit) a family, its owner membership, the owner's
    current_family_id pointer and the default category trees.

    Callers commit once so the four writes land together or not at all.
    """
    name = (name or "").strip()
    if not name:
        raise FamilyValidationError("Family name cannot be empty")

    family = Family(
        name=name,
        description=description,
        created_by=user.id,
        invite_code=allocate_invite_code(db),
    )
    db.add(family)
    db.flush()

    db.add(FamilyMember(
        family_id=family.id,
        user_id=user.id,
        role=FamilyRole.OWNER.value,
    ))
    user.current_family_id = family.id
    seed_default_categories(db, family.id)
    db.flush()
    return family


def repoint_current_family(db: Session, user_id: int, left_family_id: int) -> None:
    """
    If the user's default family is the one they just left, fall back to any
    remaining membership (or none). Staged, no commit.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user or user.current_family_id != left_family_id:
        return

    other = db.query(FamilyMember).filter(
        FamilyMember.user_id == user_id,
        FamilyMember.family_id != left_family_id
    ).order_by(FamilyMember.joined_at.asc(), FamilyMember.id.asc()).first()
    user.current_family_id = other.family_id if other else None


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User #{user_id} not found")
    return user


def _get_family(db: Session, family_id: int) -> Family:
    family = db.query(Family).filter(Family.id == family_id).first()
    if not family:
        raise NotFoundError(f"Family #{family_id} not found")
    return family


def _get_membership(db: Session, family_id: int, user_id: int) -> FamilyMember:
    membership = db.query(FamilyMember).filter(
        FamilyMember.family_id == family_id,
        FamilyMember.user_id == user_id
    ).first()
    if not membership:
        raise NotFoundError(f"User #{user_id} is not a member of family #{family_id}")
    return membership


def _commit(db: Session, conflict_message: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(conflict_message) from None


# ============================================================================
# Families
# ============================================================================


class CreateFamilyUseCase:
    """
    Use case: create a family owned by the caller

    Process (single commit):
    1. Allocate a unique invite code
    2. Insert the family and the owner membership
    3. Point the creator's current_family_id at it
    4. Seed default asset and transaction categories
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, name: str, description: str | None = None) -> Family:
        """
        Args:
            user_id: creator, becomes the owner
            name: family name
            description: optional free text

        Returns:
            The committed Family row
        """
        user = _get_user(self.db, user_id)
        try:
            family = stage_family_with_owner(self.db, user, name, description)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Invite code collision, try again") from None
        except Exception:
            self.db.rollback()
            raise

        logger.info("Family %d created by user %d", family.id, user_id)
        return family


class ListFamiliesService:
    """Service: families the user belongs to, with the user's role in each"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int) -> list[dict]:
        user = _get_user(self.db, user_id)

        rows = (
            self.db.query(Family, FamilyMember.role)
            .join(FamilyMember, FamilyMember.family_id == Family.id)
            .filter(FamilyMember.user_id == user_id)
            .order_by(FamilyMember.joined_at.asc(), Family.id.asc())
            .all()
        )

        member_counts = dict(
            self.db.query(FamilyMember.family_id, func.count(FamilyMember.id))
            .filter(FamilyMember.family_id.in_([f.id for f, _ in rows] or [0]))
            .group_by(FamilyMember.family_id)
            .all()
        )

        return [
            {
                "id": family.id,
                "name": family.name,
                "description": family.description,
                "invite_code": family.invite_code,
                "role": role,
                "member_count": member_counts.get(family.id, 0),
                "is_current": family.id == user.current_family_id,
            }
            for family, role in rows
        ]


class GetFamilyService:
    """Service: family details with members (members only)"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, family_id: int, user_id: int) -> dict:
        access = FamilyAccessGuard(self.db).load(user_id, family_id)
        family = _get_family(self.db, family_id)

        members = (
            self.db.query(FamilyMember, User)
            .join(User, User.id == FamilyMember.user_id)
            .filter(FamilyMember.family_id == family_id)
            .order_by(FamilyMember.joined_at.asc(), FamilyMember.id.asc())
            .all()
        )

        return {
            "id": family.id,
            "name": family.name,
            "description": family.description,
            "created_by": family.created_by,
            "invite_code": family.invite_code,
            "access": access.as_dict(),
            "members": [
                {
                    "user_id": user.id,
                    "name": user.name,
                    "email": user.email,
                    "role": member.role,
                    "joined_at": member.joined_at,
                }
                for member, user in members
            ],
        }


class UpdateFamilyUseCase:
    """Use case: rename / re-describe a family (owner or admin)"""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        family_id: int,
        user_id: int,
        name: str | None = None,
        description: str | None = ...,  # sentinel: ... means "not provided"
    ) -> Family:
        FamilyAccessGuard(self.db).load(user_id, family_id).require_manage()
        family = _get_family(self.db, family_id)

        if name is not None:
            name = name.strip()
            if not name:
                raise FamilyValidationError("Family name cannot be empty")
            family.name = name

        if description is not ...:
            family.description = description

        self.db.commit()
        return family


class DeleteFamilyUseCase:
    """
    Use case: delete a family and everything scoped to it (owner only)

    Members whose default family was this one are re-pointed to another
    membership in the same commit.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, family_id: int, user_id: int) -> None:
        FamilyAccessGuard(self.db).load(user_id, family_id).require_owner()
        family = _get_family(self.db, family_id)

        member_ids = [
            row[0] for row in
            self.db.query(FamilyMember.user_id).filter(FamilyMember.family_id == family_id).all()
        ]

        try:
            asset_ids = self.db.query(Asset.id).filter(Asset.family_id == family_id)
            self.db.query(AssetChange).filter(
                AssetChange.asset_id.in_(asset_ids.scalar_subquery())
            ).delete(synchronize_session=False)
            self.db.query(Asset).filter(Asset.family_id == family_id).delete(synchronize_session=False)
            self.db.query(AssetCategory).filter(
                AssetCategory.family_id == family_id
            ).delete(synchronize_session=False)
            self.db.query(Transaction).filter(
                Transaction.family_id == family_id
            ).delete(synchronize_session=False)
            self.db.query(TransactionCategory).filter(
                TransactionCategory.family_id == family_id
            ).delete(synchronize_session=False)

            for member_id in member_ids:
                repoint_current_family(self.db, member_id, family_id)

            self.db.query(FamilyMember).filter(
                FamilyMember.family_id == family_id
            ).delete(synchronize_session=False)
            self.db.delete(family)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Family %d deleted by user %d", family_id, user_id)


class RegenerateInviteCodeUseCase:
    """
    Use case: replace the invite code (owner or admin)

    Existing memberships are untouched; only joins with the old code stop working.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, family_id: int, user_id: int) -> str:
        FamilyAccessGuard(self.db).load(user_id, family_id).require_manage()
        family = _get_family(self.db, family_id)

        family.invite_code = allocate_invite_code(self.db)
        _commit(self.db, "Invite code collision, try again")
        return family.invite_code


# ============================================================================
# Membership
# ============================================================================


class AddMemberUseCase:
    """Use case: add an existing user to the family (owner or admin)"""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        family_id: int,
        actor_user_id: int,
        target_user_id: int,
        role: str | FamilyRole = DEFAULT_MEMBER_ROLE,
    ) -> FamilyMember:
        actor = FamilyAccessGuard(self.db).load(actor_user_id, family_id)
        new_role = parse_role(role)
        check_add_member(actor.role, new_role)

        target = _get_user(self.db, target_user_id)

        existing = self.db.query(FamilyMember.id).filter(
            FamilyMember.family_id == family_id,
            FamilyMember.user_id == target_user_id
        ).first()
        if existing:
            raise ConflictError("User is already a member of this family")

        member = FamilyMember(
            family_id=family_id,
            user_id=target_user_id,
            role=new_role.value,
            invited_by=actor_user_id,
        )
        self.db.add(member)
        if target.current_family_id is None:
            target.current_family_id = family_id
        _commit(self.db, "User is already a member of this family")

        logger.info("User %d added to family %d as %s", target_user_id, family_id, new_role.value)
        return member


class RemoveMemberUseCase:
    """
    Use case: remove a member

    Rules: actor is owner or admin; the owner is never removable; only the
    owner removes an admin.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, family_id: int, actor_user_id: int, target_user_id: int) -> None:
        actor = FamilyAccessGuard(self.db).load(actor_user_id, family_id)
        target = _get_membership(self.db, family_id, target_user_id)

        check_remove_member(actor.role, parse_role(target.role))

        self.db.delete(target)
        repoint_current_family(self.db, target_user_id, family_id)
        self.db.commit()

        logger.info("User %d removed from family %d by %d", target_user_id, family_id, actor_user_id)


class UpdateMemberRoleUseCase:
    """
    Use case: change a member's role (owner only)

    The owner role itself is immutable here: it cannot be taken away and
    cannot be granted.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        family_id: int,
        actor_user_id: int,
        target_user_id: int,
        role: str | FamilyRole,
    ) -> FamilyMember:
        actor = FamilyAccessGuard(self.db).load(actor_user_id, family_id)
        target = _get_membership(self.db, family_id, target_user_id)
        new_role = parse_role(role)

        check_update_member_role(actor.role, parse_role(target.role), new_role)

        target.role = new_role.value
        self.db.commit()
        return target


class JoinFamilyUseCase:
    """Use case: self-join a family with its invite code (role: member)"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, invite_code: str) -> FamilyMember:
        """
        Raises:
            NotFoundError: no family has this code
            ConflictError: the user is already a member
        """
        user = _get_user(self.db, user_id)
        code = normalize_invite_code(invite_code)

        family = self.db.query(Family).filter(Family.invite_code == code).first() if code else None
        if not family:
            raise NotFoundError("Invalid invite code")

        existing = self.db.query(FamilyMember.id).filter(
            FamilyMember.family_id == family.id,
            FamilyMember.user_id == user_id
        ).first()
        if existing:
            raise ConflictError("You are already a member of this family")

        member = FamilyMember(
            family_id=family.id,
            user_id=user_id,
            role=DEFAULT_MEMBER_ROLE.value,
        )
        self.db.add(member)
        # First family becomes the default one
        if user.current_family_id is None:
            user.current_family_id = family.id
        _commit(self.db, "You are already a member of this family")

        logger.info("User %d joined family %d by invite code", user_id, family.id)
        return member


class SwitchFamilyUseCase:
    """
    Use case: change the user's default family

    Last write wins: two sessions switching at once may leave either value.
    The active family of a request travels in its signed session, so this
    only decides which family a fresh login starts in.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, family_id: int) -> User:
        user = _get_user(self.db, user_id)

        membership = FamilyAccessGuard(self.db).get_membership(family_id, user_id)
        if not membership:
            raise ForbiddenError("You are not a member of this family")

        user.current_family_id = family_id
        self.db.commit()
        return user
