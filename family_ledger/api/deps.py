"""
FastAPI dependencies (DB session, identity)
"""
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from family_ledger.domain.errors import UnauthorizedError, ForbiddenError, DomainValidationError
from family_ledger.infrastructure.db.models import User
from family_ledger.infrastructure.db.session import get_db as _get_db


# Re-export get_db so routers and test overrides share one dependency
get_db = _get_db

FAMILY_HEADER = "X-Family-Id"


@dataclass(frozen=True)
class Identity:
    """
    Who is calling and which family the request acts on.

    family_id comes from the signed session (set at login / switch) and can
    be overridden for a single request with the X-Family-Id header. It is
    None when the user has no family yet.
    """
    user_id: int
    family_id: int | None


def login_session(request: Request, user: User) -> None:
    """Store the identity of a freshly authenticated user in the session"""
    request.session["user_id"] = user.id
    request.session["family_id"] = user.current_family_id
    request.session["is_admin"] = user.is_admin


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Raises:
        UnauthorizedError: not logged in, or the user no longer exists
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise UnauthorizedError("Not authenticated")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        request.session.clear()
        raise UnauthorizedError("User not found")

    return user


def get_identity(request: Request, user: User = Depends(get_current_user)) -> Identity:
    """
    Usage:
        @router.get("/assets")
        def list_assets(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
            ...
    """
    header = request.headers.get(FAMILY_HEADER)
    if header:
        try:
            family_id = int(header)
        except ValueError:
            raise DomainValidationError(f"{FAMILY_HEADER} must be an integer") from None
    else:
        family_id = request.session.get("family_id", user.current_family_id)

    return Identity(user_id=user.id, family_id=family_id)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("Administrator access required")
    return user
