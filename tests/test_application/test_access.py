"""Tests for the access evaluator: membership lookup and member-management rules"""
import pytest

from family_ledger.application.access import (
    FamilyAccess,
    FamilyAccessGuard,
    check_add_member,
    check_remove_member,
    check_update_member_role,
)
from family_ledger.application.families import CreateFamilyUseCase, AddMemberUseCase
from family_ledger.domain.errors import ForbiddenError, NotFoundError
from family_ledger.domain.role import FamilyRole

VIEWER, MEMBER, ADMIN, OWNER = FamilyRole.VIEWER, FamilyRole.MEMBER, FamilyRole.ADMIN, FamilyRole.OWNER


class TestFamilyAccessGuard:
    def test_load_returns_role_capabilities(self, db_session, make_user):
        owner = make_user("owner")
        viewer = make_user("viewer")
        family = CreateFamilyUseCase(db_session).execute(owner.id, "Smiths")
        AddMemberUseCase(db_session).execute(family.id, owner.id, viewer.id, "viewer")

        access = FamilyAccessGuard(db_session).load(viewer.id, family.id)
        assert access.role is VIEWER
        assert access.can_edit is False
        with pytest.raises(ForbiddenError, match="Viewers"):
            access.require_edit()

        owner_access = FamilyAccessGuard(db_session).load(owner.id, family.id)
        assert owner_access.require_owner() is owner_access
        assert owner_access.as_dict()["can_manage"] is True

    def test_missing_family_is_not_found(self, db_session, make_user):
        user = make_user("user")
        with pytest.raises(NotFoundError):
            FamilyAccessGuard(db_session).load(user.id, 404)

    def test_non_member_is_forbidden(self, db_session, make_user):
        owner = make_user("owner")
        stranger = make_user("stranger")
        family = CreateFamilyUseCase(db_session).execute(owner.id, "Smiths")
        with pytest.raises(ForbiddenError, match="not a member"):
            FamilyAccessGuard(db_session).load(stranger.id, family.id)

    def test_no_family_selected_is_forbidden(self, db_session, make_user):
        user = make_user("user")
        with pytest.raises(ForbiddenError):
            FamilyAccessGuard(db_session).load(user.id, None)


def test_member_cannot_manage():
    access = FamilyAccess(family_id=1, user_id=1, role=MEMBER)
    assert access.require_edit() is access
    with pytest.raises(ForbiddenError):
        access.require_manage()


class TestAddMemberRule:
    @pytest.mark.parametrize("actor", [OWNER, ADMIN])
    @pytest.mark.parametrize("new_role", [ADMIN, MEMBER, VIEWER])
    def test_managers_add_non_owner_roles(self, actor, new_role):
        check_add_member(actor, new_role)

    @pytest.mark.parametrize("actor", [MEMBER, VIEWER])
    def test_non_managers_cannot_add(self, actor):
        with pytest.raises(ForbiddenError):
            check_add_member(actor, VIEWER)

    @pytest.mark.parametrize("actor", [OWNER, ADMIN])
    def test_owner_role_cannot_be_granted(self, actor):
        with pytest.raises(ForbiddenError):
            check_add_member(actor, OWNER)


class TestRemoveMemberRule:
    @pytest.mark.parametrize("actor", [OWNER, ADMIN, MEMBER, VIEWER])
    def test_owner_is_never_removable(self, actor):
        with pytest.raises(ForbiddenError):
            check_remove_member(actor, OWNER)

    def test_only_owner_removes_admin(self):
        check_remove_member(OWNER, ADMIN)
        with pytest.raises(ForbiddenError, match="Only the owner"):
            check_remove_member(ADMIN, ADMIN)

    @pytest.mark.parametrize("actor", [OWNER, ADMIN])
    @pytest.mark.parametrize("target", [MEMBER, VIEWER])
    def test_managers_remove_members_and_viewers(self, actor, target):
        check_remove_member(actor, target)

    @pytest.mark.parametrize("actor", [MEMBER, VIEWER])
    def test_non_managers_cannot_remove(self, actor):
        with pytest.raises(ForbiddenError):
            check_remove_member(actor, VIEWER)


class TestUpdateMemberRoleRule:
    @pytest.mark.parametrize("actor", [ADMIN, MEMBER, VIEWER])
    def test_only_owner_changes_roles(self, actor):
        with pytest.raises(ForbiddenError):
            check_update_member_role(actor, MEMBER, VIEWER)

    @pytest.mark.parametrize("target", [ADMIN, MEMBER, VIEWER])
    @pytest.mark.parametrize("new_role", [ADMIN, MEMBER, VIEWER])
    def test_owner_sets_any_non_owner_role(self, target, new_role):
        check_update_member_role(OWNER, target, new_role)

    def test_owner_target_is_immutable(self):
        with pytest.raises(ForbiddenError):
            check_update_member_role(OWNER, OWNER, ADMIN)

    def test_promotion_to_owner_is_forbidden(self):
        with pytest.raises(ForbiddenError):
            check_update_member_role(OWNER, ADMIN, OWNER)
