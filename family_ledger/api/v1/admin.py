"""
Admin maintenance endpoints: family initialization and orphan-data migration.

Access: only users with is_admin=True.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from family_ledger.api.deps import get_db, require_admin
from family_ledger.application.family_init import FamilyInitService
from family_ledger.infrastructure.db.models import User

router = APIRouter(prefix="/api/v1/admin/maintenance", tags=["admin"])


@router.post("/init-users")
def init_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Create a default family for every user without one"""
    return FamilyInitService(db).initialize_all_users()


@router.post("/migrate-orphans")
def migrate_orphans(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Backfill family_id on legacy assets and transactions"""
    return FamilyInitService(db).migrate_orphan_data()


@router.post("/migrate-user/{user_id}")
def migrate_user(user_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return FamilyInitService(db).migrate_user_data_to_family(user_id)


@router.post("/families/{family_id}/categories", status_code=204)
def init_categories(family_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    FamilyInitService(db).initialize_default_categories(family_id)
