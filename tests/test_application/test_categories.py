"""Tests for asset and transaction category use cases"""
import pytest

from family_ledger.application.assets import CreateAssetUseCase
from family_ledger.application.categories import (
    CategoryValidationError,
    CreateAssetCategoryUseCase,
    CreateTransactionCategoryUseCase,
    DeleteAssetCategoryUseCase,
    DeleteTransactionCategoryUseCase,
    ListAssetCategoriesService,
    ListTransactionCategoriesService,
)
from family_ledger.application.families import CreateFamilyUseCase
from family_ledger.domain.errors import ForbiddenError, NotFoundError
from family_ledger.infrastructure.db.models import AssetCategory


@pytest.fixture
def owner(make_user):
    return make_user("owner")


@pytest.fixture
def family(db_session, owner):
    return CreateFamilyUseCase(db_session).execute(owner.id, "Smiths")


def _top_level(db_session, family_id: int, name: str) -> AssetCategory:
    return db_session.query(AssetCategory).filter(
        AssetCategory.family_id == family_id,
        AssetCategory.name == name,
        AssetCategory.parent_id.is_(None),
    ).one()


class TestAssetCategories:
    def test_default_tree(self, db_session, family, owner):
        tree = ListAssetCategoriesService(db_session).execute(family.id, owner.id)

        assert [c["name"] for c in tree] == [
            "Fixed Assets", "Liquid Assets", "Investment Assets", "Liabilities",
        ]
        liquid = tree[1]
        assert [c["name"] for c in liquid["children"]] == ["Cash", "Bank Deposits", "Money Market Funds"]
        assert all(c["is_builtin"] for c in liquid["children"])

    def test_create_child_inherits_color(self, db_session, family, owner):
        parent = _top_level(db_session, family.id, "Investment Assets")

        category_id = CreateAssetCategoryUseCase(db_session).execute(
            family.id, owner.id, "  Gold  ", parent_id=parent.id
        )

        category = db_session.get(AssetCategory, category_id)
        assert category.name == "Gold"
        assert category.color == parent.color
        assert category.sort_order == 5
        assert category.is_builtin is False

    def test_third_level_is_rejected(self, db_session, family, owner):
        child = db_session.query(AssetCategory).filter(
            AssetCategory.family_id == family.id,
            AssetCategory.name == "Cash",
        ).one()
        with pytest.raises(CategoryValidationError, match="one level"):
            CreateAssetCategoryUseCase(db_session).execute(
                family.id, owner.id, "Coins", parent_id=child.id
            )

    def test_missing_parent(self, db_session, family, owner):
        with pytest.raises(NotFoundError):
            CreateAssetCategoryUseCase(db_session).execute(family.id, owner.id, "X", parent_id=404)

    def test_empty_name(self, db_session, family, owner):
        with pytest.raises(CategoryValidationError):
            CreateAssetCategoryUseCase(db_session).execute(family.id, owner.id, "   ")

    def test_builtin_cannot_be_deleted(self, db_session, family, owner):
        parent = _top_level(db_session, family.id, "Liabilities")
        with pytest.raises(CategoryValidationError, match="Built-in"):
            DeleteAssetCategoryUseCase(db_session).execute(parent.id, owner.id)

    def test_category_in_use_cannot_be_deleted(self, db_session, family, owner):
        parent = _top_level(db_session, family.id, "Fixed Assets")
        category_id = CreateAssetCategoryUseCase(db_session).execute(
            family.id, owner.id, "Art", parent_id=parent.id
        )
        CreateAssetUseCase(db_session).execute(family.id, owner.id, "Painting", category_id, "500")

        with pytest.raises(CategoryValidationError, match="used by assets"):
            DeleteAssetCategoryUseCase(db_session).execute(category_id, owner.id)

    def test_delete_custom_category(self, db_session, family, owner):
        category_id = CreateAssetCategoryUseCase(db_session).execute(family.id, owner.id, "Misc")
        DeleteAssetCategoryUseCase(db_session).execute(category_id, owner.id)
        assert db_session.get(AssetCategory, category_id) is None

    def test_stranger_cannot_list(self, db_session, family, make_user):
        stranger = make_user("stranger")
        with pytest.raises(ForbiddenError):
            ListAssetCategoriesService(db_session).execute(family.id, stranger.id)


class TestTransactionCategories:
    def test_list_by_type(self, db_session, family, owner):
        income = ListTransactionCategoriesService(db_session).execute(family.id, owner.id, "income")
        assert [c.name for c in income][:2] == ["Salary", "Bonus"]
        assert all(c.category_type == "income" for c in income)

    def test_invalid_type(self, db_session, family, owner):
        with pytest.raises(CategoryValidationError):
            ListTransactionCategoriesService(db_session).execute(family.id, owner.id, "transfer")

    def test_create_and_delete(self, db_session, family, owner):
        category_id = CreateTransactionCategoryUseCase(db_session).execute(
            family.id, owner.id, "Pets", "expense"
        )
        names = [c.name for c in ListTransactionCategoriesService(db_session).execute(family.id, owner.id, "expense")]
        assert names[-1] == "Pets"

        DeleteTransactionCategoryUseCase(db_session).execute(category_id, owner.id)
        names = [c.name for c in ListTransactionCategoriesService(db_session).execute(family.id, owner.id, "expense")]
        assert "Pets" not in names

    def test_builtin_cannot_be_deleted(self, db_session, family, owner):
        salary = ListTransactionCategoriesService(db_session).execute(family.id, owner.id, "income")[0]
        with pytest.raises(CategoryValidationError):
            DeleteTransactionCategoryUseCase(db_session).execute(salary.id, owner.id)
