"""
Family API endpoints (families, members, invite codes, switching)
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from family_ledger.api.deps import get_db, get_identity, Identity
from family_ledger.application.families import (
    CreateFamilyUseCase,
    ListFamiliesService,
    GetFamilyService,
    UpdateFamilyUseCase,
    DeleteFamilyUseCase,
    RegenerateInviteCodeUseCase,
    AddMemberUseCase,
    RemoveMemberUseCase,
    UpdateMemberRoleUseCase,
    JoinFamilyUseCase,
    SwitchFamilyUseCase,
)
from family_ledger.domain.role import FamilyRole, DEFAULT_MEMBER_ROLE
from family_ledger.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/families", tags=["families"])


# === Request/Response models ===

class CreateFamilyRequest(BaseModel):
    name: str
    description: str | None = None


class UpdateFamilyRequest(BaseModel):
    name: str | None = None
    description: str | None = None


class AddMemberRequest(BaseModel):
    user_id: int
    role: FamilyRole = DEFAULT_MEMBER_ROLE


class UpdateMemberRoleRequest(BaseModel):
    role: FamilyRole


class JoinFamilyRequest(BaseModel):
    invite_code: str


class FamilyResponse(BaseModel):
    id: int
    name: str
    description: str | None
    invite_code: str


class FamilySummaryResponse(FamilyResponse):
    role: str
    member_count: int
    is_current: bool


class MemberResponse(BaseModel):
    user_id: int
    name: str | None = None
    email: str | None = None
    role: str
    joined_at: datetime | None = None


class FamilyAccessResponse(BaseModel):
    family_id: int
    role: str
    can_edit: bool
    can_manage: bool
    is_owner: bool


class FamilyDetailResponse(FamilyResponse):
    created_by: int
    access: FamilyAccessResponse
    members: list[MemberResponse]


class MembershipResponse(BaseModel):
    family_id: int
    user_id: int
    role: str


class CurrentFamilyResponse(BaseModel):
    current_family_id: int | None


class InviteCodeResponse(BaseModel):
    invite_code: str


# === Helper functions ===

def _family_response(family) -> FamilyResponse:
    return FamilyResponse(
        id=family.id,
        name=family.name,
        description=family.description,
        invite_code=family.invite_code,
    )


def _membership_response(member) -> MembershipResponse:
    return MembershipResponse(family_id=member.family_id, user_id=member.user_id, role=member.role)


def _sync_session_family(request: Request, db: Session, user_id: int) -> int | None:
    """Copy the user's stored default family into the session"""
    user = db.query(User).filter(User.id == user_id).first()
    family_id = user.current_family_id if user else None
    request.session["family_id"] = family_id
    return family_id


# === Endpoints ===

@router.post("", response_model=FamilyResponse, status_code=201)
def create_family(
    request: Request,
    req: CreateFamilyRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Create a family; the caller becomes its owner and switches to it"""
    family = CreateFamilyUseCase(db).execute(identity.user_id, req.name, req.description)
    request.session["family_id"] = family.id
    return _family_response(family)


@router.get("", response_model=list[FamilySummaryResponse])
def list_families(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return ListFamiliesService(db).execute(identity.user_id)


@router.post("/join", response_model=MembershipResponse, status_code=201)
def join_family(
    request: Request,
    req: JoinFamilyRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Join a family with its invite code"""
    member = JoinFamilyUseCase(db).execute(identity.user_id, req.invite_code)
    response = _membership_response(member)
    if identity.family_id is None:
        _sync_session_family(request, db, identity.user_id)
    return response


@router.get("/{family_id}", response_model=FamilyDetailResponse)
def get_family(family_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return GetFamilyService(db).execute(family_id, identity.user_id)


@router.patch("/{family_id}", response_model=FamilyResponse)
def update_family(
    family_id: int,
    req: UpdateFamilyRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    changes = req.model_dump(exclude_unset=True)
    family = UpdateFamilyUseCase(db).execute(
        family_id,
        identity.user_id,
        name=changes.get("name"),
        description=changes["description"] if "description" in changes else ...,
    )
    return _family_response(family)


@router.delete("/{family_id}", response_model=CurrentFamilyResponse)
def delete_family(
    request: Request,
    family_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Delete a family with all its data (owner only)"""
    DeleteFamilyUseCase(db).execute(family_id, identity.user_id)

    active = request.session.get("family_id")
    # Only a session that was acting in the deleted family falls back to the stored default
    if active is None or active == family_id:
        active = _sync_session_family(request, db, identity.user_id)
    return CurrentFamilyResponse(current_family_id=active)


@router.post("/{family_id}/switch", response_model=CurrentFamilyResponse)
def switch_family(
    request: Request,
    family_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Make this family the active one for the session and the stored default"""
    user = SwitchFamilyUseCase(db).execute(identity.user_id, family_id)
    request.session["family_id"] = user.current_family_id
    return CurrentFamilyResponse(current_family_id=user.current_family_id)


@router.post("/{family_id}/invite-code", response_model=InviteCodeResponse)
def regenerate_invite_code(family_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    code = RegenerateInviteCodeUseCase(db).execute(family_id, identity.user_id)
    return InviteCodeResponse(invite_code=code)


@router.post("/{family_id}/members", response_model=MembershipResponse, status_code=201)
def add_member(
    family_id: int,
    req: AddMemberRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    member = AddMemberUseCase(db).execute(family_id, identity.user_id, req.user_id, req.role)
    return _membership_response(member)


@router.patch("/{family_id}/members/{user_id}", response_model=MembershipResponse)
def update_member_role(
    family_id: int,
    user_id: int,
    req: UpdateMemberRoleRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    member = UpdateMemberRoleUseCase(db).execute(family_id, identity.user_id, user_id, req.role)
    return _membership_response(member)


@router.delete("/{family_id}/members/{user_id}", status_code=204)
def remove_member(
    family_id: int,
    user_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    RemoveMemberUseCase(db).execute(family_id, identity.user_id, user_id)
