"""
Authentication routes (register, login, logout, me)
"""
import logging

from fastapi import APIRouter, Request, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from family_ledger.api.deps import get_db, get_current_user, login_session
from family_ledger.application.families import stage_family_with_owner
from family_ledger.application.family_init import default_family_name
from family_ledger.auth import hash_password, verify_password, get_user_by_email, normalize_email
from family_ledger.domain.errors import ConflictError, UnauthorizedError, DomainValidationError
from family_ledger.infrastructure.db.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 8


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = normalize_email(v)
        if "@" not in v:
            raise ValueError("Invalid email")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    name: str | None
    current_family_id: int | None
    is_admin: bool


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        current_family_id=user.current_family_id,
        is_admin=user.is_admin,
    )


@router.post("/register", response_model=UserResponse, status_code=201)
def register(request: Request, req: RegisterRequest, db: Session = Depends(get_db)):
    """
    Create an account together with its default family, then log in
    """
    if len(req.password) < MIN_PASSWORD_LENGTH:
        raise DomainValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if get_user_by_email(db, req.email):
        raise ConflictError("Email is already registered")

    user = User(
        email=req.email,
        password_hash=hash_password(req.password),
        name=req.name.strip() or req.email,
    )
    try:
        db.add(user)
        db.flush()
        stage_family_with_owner(db, user, default_family_name(user))
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email is already registered") from None
    except Exception:
        db.rollback()
        raise

    logger.info("User %d registered with family %d", user.id, user.current_family_id)
    login_session(request, user)
    return _user_response(user)


@router.post("/login", response_model=UserResponse)
def login(request: Request, req: LoginRequest, db: Session = Depends(get_db)):
    user = get_user_by_email(db, req.email)

    if not user or not verify_password(req.password, user.password_hash):
        raise UnauthorizedError("Invalid email or password")

    login_session(request, user)
    return _user_response(user)


@router.post("/logout", status_code=204)
def logout(request: Request):
    request.session.clear()


@router.get("/me", response_model=UserResponse)
def me(request: Request, user: User = Depends(get_current_user)):
    response = _user_response(user)
    # Active family of this session, which may differ from the stored default
    response.current_family_id = request.session.get("family_id", user.current_family_id)
    return response
