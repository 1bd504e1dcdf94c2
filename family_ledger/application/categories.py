"""
Category use cases - asset and transaction categories of a family
"""
import logging

from sqlalchemy.orm import Session

from family_ledger.application.access import FamilyAccessGuard
from family_ledger.domain.category import (
    CATEGORY_TYPE_INCOME,
    CATEGORY_TYPE_EXPENSE,
    DEFAULT_ASSET_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    DEFAULT_EXPENSE_CATEGORIES,
    INCOME_COLOR,
    EXPENSE_COLOR,
)
from family_ledger.domain.errors import DomainValidationError, NotFoundError
from family_ledger.infrastructure.db.models import (
    AssetCategory,
    Asset,
    TransactionCategory,
    Transaction,
)

logger = logging.getLogger(__name__)


class CategoryValidationError(DomainValidationError):
    """Category operation rejected"""
    pass


def seed_default_categories(db: Session, family_id: int) -> None:
    """
    Stage the default category trees for a family (no commit).

    Each tree is seeded only when the family has no categories of that kind,
    so calling this twice is harmless. The caller commits together with
    whatever else it is creating.
    """
    has_asset_categories = db.query(AssetCategory.id).filter(
        AssetCategory.family_id == family_id
    ).first()
    if not has_asset_categories:
        for parent_order, parent_def in enumerate(DEFAULT_ASSET_CATEGORIES, start=1):
            parent = AssetCategory(
                family_id=family_id,
                name=parent_def["name"],
                parent_id=None,
                icon=parent_def["icon"],
                color=parent_def["color"],
                is_builtin=True,
                sort_order=parent_order,
            )
            db.add(parent)
            db.flush()  # parent.id for the children
            for child_order, child_def in enumerate(parent_def["children"], start=1):
                db.add(AssetCategory(
                    family_id=family_id,
                    name=child_def["name"],
                    parent_id=parent.id,
                    icon=child_def["icon"],
                    color=parent_def["color"],
                    is_builtin=True,
                    sort_order=child_order,
                ))
        logger.info("Seeded default asset categories for family %d", family_id)

    has_transaction_categories = db.query(TransactionCategory.id).filter(
        TransactionCategory.family_id == family_id
    ).first()
    if not has_transaction_categories:
        for category_type, entries, color in (
            (CATEGORY_TYPE_INCOME, DEFAULT_INCOME_CATEGORIES, INCOME_COLOR),
            (CATEGORY_TYPE_EXPENSE, DEFAULT_EXPENSE_CATEGORIES, EXPENSE_COLOR),
        ):
            for order, entry in enumerate(entries, start=1):
                db.add(TransactionCategory(
                    family_id=family_id,
                    name=entry["name"],
                    category_type=category_type,
                    parent_id=None,
                    icon=entry["icon"],
                    color=color,
                    is_builtin=True,
                    sort_order=order,
                ))
        logger.info("Seeded default transaction categories for family %d", family_id)

    db.flush()


class ListAssetCategoriesService:
    """Service: asset category tree of a family (parents with their children)"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, family_id: int, user_id: int) -> list[dict]:
        FamilyAccessGuard(self.db).load(user_id, family_id)

        categories = self.db.query(AssetCategory).filter(
            AssetCategory.family_id == family_id
        ).order_by(AssetCategory.sort_order.asc(), AssetCategory.id.asc()).all()

        children_by_parent: dict[int, list[AssetCategory]] = {}
        for cat in categories:
            if cat.parent_id is not None:
                children_by_parent.setdefault(cat.parent_id, []).append(cat)

        return [
            {
                **_asset_category_dict(parent),
                "children": [_asset_category_dict(c) for c in children_by_parent.get(parent.id, [])],
            }
            for parent in categories
            if parent.parent_id is None
        ]


def _asset_category_dict(cat: AssetCategory) -> dict:
    return {
        "id": cat.id,
        "name": cat.name,
        "parent_id": cat.parent_id,
        "icon": cat.icon,
        "color": cat.color,
        "is_builtin": cat.is_builtin,
        "sort_order": cat.sort_order,
    }


class CreateAssetCategoryUseCase:
    """Use case: add an asset category (two levels at most)"""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        family_id: int,
        user_id: int,
        name: str,
        parent_id: int | None = None,
        icon: str = "",
        color: str = "",
    ) -> int:
        FamilyAccessGuard(self.db).load(user_id, family_id).require_edit()

        name = name.strip()
        if not name:
            raise CategoryValidationError("Category name cannot be empty")

        if parent_id is not None:
            parent = self.db.query(AssetCategory).filter(
                AssetCategory.id == parent_id,
                AssetCategory.family_id == family_id
            ).first()
            if not parent:
                raise NotFoundError(f"Parent category #{parent_id} not found")
            if parent.parent_id is not None:
                raise CategoryValidationError("Asset categories can only be nested one level deep")
            color = color or parent.color

        max_order = self.db.query(AssetCategory.sort_order).filter(
            AssetCategory.family_id == family_id,
            AssetCategory.parent_id == parent_id
        ).order_by(AssetCategory.sort_order.desc()).first()

        category = AssetCategory(
            family_id=family_id,
            name=name,
            parent_id=parent_id,
            icon=icon,
            color=color,
            is_builtin=False,
            sort_order=(max_order[0] + 1) if max_order else 1,
        )
        self.db.add(category)
        self.db.flush()
        self.db.commit()
        return category.id


class DeleteAssetCategoryUseCase:
    """Use case: delete a custom asset category that nothing references"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, category_id: int, user_id: int) -> None:
        category = self.db.query(AssetCategory).filter(AssetCategory.id == category_id).first()
        if not category:
            raise NotFoundError(f"Category #{category_id} not found")

        FamilyAccessGuard(self.db).load(user_id, category.family_id).require_edit()

        if category.is_builtin:
            raise CategoryValidationError("Built-in categories cannot be deleted")

        has_children = self.db.query(AssetCategory.id).filter(
            AssetCategory.parent_id == category_id
        ).first()
        if has_children:
            raise CategoryValidationError("Delete the child categories first")

        in_use = self.db.query(Asset.id).filter(Asset.category_id == category_id).first()
        if in_use:
            raise CategoryValidationError("Category is used by assets")

        self.db.delete(category)
        self.db.commit()


class ListTransactionCategoriesService:
    """Service: transaction categories of a family, optionally by type"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, family_id: int, user_id: int, category_type: str | None = None) -> list[TransactionCategory]:
        FamilyAccessGuard(self.db).load(user_id, family_id)

        query = self.db.query(TransactionCategory).filter(
            TransactionCategory.family_id == family_id
        )
        if category_type:
            _validate_category_type(category_type)
            query = query.filter(TransactionCategory.category_type == category_type)

        return query.order_by(
            TransactionCategory.category_type.asc(),
            TransactionCategory.sort_order.asc()
        ).all()


def _validate_category_type(category_type: str) -> None:
    if category_type not in (CATEGORY_TYPE_INCOME, CATEGORY_TYPE_EXPENSE):
        raise CategoryValidationError(
            f"Invalid category type: {category_type}. Use income or expense"
        )


class CreateTransactionCategoryUseCase:
    """Use case: add an income/expense category"""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        family_id: int,
        user_id: int,
        name: str,
        category_type: str,
        icon: str = "",
        color: str = "",
    ) -> int:
        FamilyAccessGuard(self.db).load(user_id, family_id).require_edit()
        _validate_category_type(category_type)

        name = name.strip()
        if not name:
            raise CategoryValidationError("Category name cannot be empty")

        max_order = self.db.query(TransactionCategory.sort_order).filter(
            TransactionCategory.family_id == family_id,
            TransactionCategory.category_type == category_type
        ).order_by(TransactionCategory.sort_order.desc()).first()

        category = TransactionCategory(
            family_id=family_id,
            name=name,
            category_type=category_type,
            icon=icon,
            color=color or (INCOME_COLOR if category_type == CATEGORY_TYPE_INCOME else EXPENSE_COLOR),
            is_builtin=False,
            sort_order=(max_order[0] + 1) if max_order else 1,
        )
        self.db.add(category)
        self.db.flush()
        self.db.commit()
        return category.id


class DeleteTransactionCategoryUseCase:
    """Use case: delete a custom transaction category that nothing references"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, category_id: int, user_id: int) -> None:
        category = self.db.query(TransactionCategory).filter(
            TransactionCategory.id == category_id
        ).first()
        if not category:
            raise NotFoundError(f"Category #{category_id} not found")

        FamilyAccessGuard(self.db).load(user_id, category.family_id).require_edit()

        if category.is_builtin:
            raise CategoryValidationError("Built-in categories cannot be deleted")

        in_use = self.db.query(Transaction.id).filter(Transaction.category_id == category_id).first()
        if in_use:
            raise CategoryValidationError("Category is used by transactions")

        self.db.delete(category)
        self.db.commit()
