"""
Family initializer and orphan-data migrator.

Maintenance entry points for data created before every record was scoped to
a family. Batch methods walk their working set one row at a time: each row
commits on its own, a failing row is rolled back, logged and skipped, and
the batch returns a summary instead of raising.
"""
import logging

from sqlalchemy import exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from family_ledger.application.categories import seed_default_categories
from family_ledger.application.families import stage_family_with_owner
from family_ledger.domain.errors import ConflictError, NotFoundError
from family_ledger.infrastructure.db.models import User, Family, FamilyMember, Asset, Transaction

logger = logging.getLogger(__name__)


def _summary() -> dict:
    return {"processed": 0, "succeeded": 0, "failed": 0}


def default_family_name(user: User) -> str:
    return f"{user.name or user.email}'s Family"


class FamilyInitService:
    """
    Usage:
        service = FamilyInitService(db)
        service.initialize_all_users()
        service.migrate_orphan_data()
    """

    def __init__(self, db: Session):
        self.db = db

    def create_default_family_for_user(self, user_id: int) -> Family:
        """
        Make sure the user resolves to a family; never creates a second one.

        1. current_family_id points to an existing family the user belongs to: return it
        2. the user has any membership: adopt that family as current
        3. otherwise: create "<name>'s Family" with the user as owner

        Raises:
            NotFoundError: no such user
            ConflictError: a concurrent write hit a unique constraint
        """
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError(f"User #{user_id} not found")

        if user.current_family_id is not None:
            current = self.db.query(Family).join(
                FamilyMember, FamilyMember.family_id == Family.id
            ).filter(
                Family.id == user.current_family_id,
                FamilyMember.user_id == user_id
            ).first()
            if current:
                logger.info("User %d already has family %d", user_id, current.id)
                return current

        membership = self.db.query(FamilyMember).filter(
            FamilyMember.user_id == user_id
        ).order_by(FamilyMember.joined_at.asc(), FamilyMember.id.asc()).first()

        if membership:
            user.current_family_id = membership.family_id
            self.db.commit()
            logger.info("Set existing family %d as current for user %d", membership.family_id, user_id)
            return self.db.query(Family).filter(Family.id == membership.family_id).one()

        try:
            family = stage_family_with_owner(self.db, user, default_family_name(user))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(f"Could not create a default family for user #{user_id}") from None
        except Exception:
            self.db.rollback()
            raise

        logger.info("Created default family %d for user %d", family.id, user_id)
        return family

    def initialize_default_categories(self, family_id: int) -> None:
        """Seed the default category trees of a family (no-op for kinds already present)"""
        family = self.db.query(Family).filter(Family.id == family_id).first()
        if not family:
            raise NotFoundError(f"Family #{family_id} not found")

        seed_default_categories(self.db, family_id)
        self.db.commit()

    def initialize_all_users(self) -> dict:
        """Create a default family for every user without a membership"""
        has_membership = exists().where(FamilyMember.user_id == User.id)
        user_ids = [
            row[0]
            for row in self.db.query(User.id).filter(~has_membership).order_by(User.id).all()
        ]
        logger.info("Found %d users without a family", len(user_ids))

        summary = _summary()
        for user_id in user_ids:
            summary["processed"] += 1
            try:
                self.create_default_family_for_user(user_id)
                summary["succeeded"] += 1
            except Exception:
                self.db.rollback()
                summary["failed"] += 1
                logger.exception("Failed to create a family for user %d", user_id)

        logger.info("Initialize users finished: %s", summary)
        return summary

    def migrate_orphan_data(self) -> dict:
        """
        Backfill family_id on assets and transactions whose owner has a family.

        Rows whose owner has no family stay untouched, so a second run finds
        nothing to do.
        """
        result = {
            "assets": self._backfill(Asset, Asset.holder_id),
            "transactions": self._backfill(Transaction, Transaction.member_id),
        }
        logger.info("Orphan data migration finished: %s", result)
        return result

    def _backfill(self, model, owner_column) -> dict:
        rows = (
            self.db.query(model.id, User.current_family_id)
            .join(User, User.id == owner_column)
            .filter(model.family_id.is_(None), User.current_family_id.isnot(None))
            .order_by(model.id)
            .all()
        )

        summary = _summary()
        for row_id, family_id in rows:
            summary["processed"] += 1
            try:
                self.db.query(model).filter(
                    model.id == row_id,
                    model.family_id.is_(None)
                ).update({model.family_id: family_id}, synchronize_session=False)
                self.db.commit()
                summary["succeeded"] += 1
            except Exception:
                self.db.rollback()
                summary["failed"] += 1
                logger.exception("Failed to migrate %s %d", model.__tablename__, row_id)

        return summary

    def migrate_user_data_to_family(self, user_id: int) -> dict:
        """
        Ensure the user has a family, then move only their own orphan rows into it.

        Returns:
            {"family_id": ..., "assets": <rows moved>, "transactions": <rows moved>}
        """
        family = self.create_default_family_for_user(user_id)

        try:
            assets = self.db.query(Asset).filter(
                Asset.holder_id == user_id,
                Asset.family_id.is_(None)
            ).update({Asset.family_id: family.id}, synchronize_session=False)
            transactions = self.db.query(Transaction).filter(
                Transaction.member_id == user_id,
                Transaction.family_id.is_(None)
            ).update({Transaction.family_id: family.id}, synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Migrated %d assets and %d transactions of user %d to family %d",
            assets, transactions, user_id, family.id
        )
        return {"family_id": family.id, "assets": assets, "transactions": transactions}
