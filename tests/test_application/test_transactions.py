"""Tests for transaction use cases"""
from datetime import date
from decimal import Decimal

import pytest

from family_ledger.application.families import CreateFamilyUseCase, AddMemberUseCase
from family_ledger.application.transactions import (
    CreateTransactionUseCase,
    DeleteTransactionUseCase,
    GetTransactionService,
    ListTransactionsService,
    TransactionValidationError,
    UpdateTransactionUseCase,
)
from family_ledger.domain.errors import ForbiddenError, NotFoundError
from family_ledger.infrastructure.db.models import Transaction, TransactionCategory


@pytest.fixture
def owner(make_user):
    return make_user("owner")


@pytest.fixture
def family(db_session, owner):
    return CreateFamilyUseCase(db_session).execute(owner.id, "Smiths")


@pytest.fixture
def category(db_session, family):
    def _lookup(name: str) -> int:
        return db_session.query(TransactionCategory.id).filter(
            TransactionCategory.family_id == family.id,
            TransactionCategory.name == name,
        ).scalar()
    return _lookup


class TestCreateTransaction:
    def test_create_expense(self, db_session, family, owner, category):
        tx = CreateTransactionUseCase(db_session).execute(
            family.id, owner.id, "expense", "45.678", category("Food"),
            tx_date=date(2026, 3, 1), notes="Lunch", tags=["work"],
        )

        assert tx.amount == Decimal("45.68")
        assert tx.member_id == owner.id
        assert tx.family_id == family.id
        assert tx.tags == ["work"]

    def test_category_type_must_match(self, db_session, family, owner, category):
        with pytest.raises(TransactionValidationError, match="expense category"):
            CreateTransactionUseCase(db_session).execute(
                family.id, owner.id, "income", "10", category("Food")
            )

    def test_transfer_accepts_any_category(self, db_session, family, owner, category):
        tx = CreateTransactionUseCase(db_session).execute(
            family.id, owner.id, "transfer", "10", category("Salary")
        )
        assert tx.transaction_type == "transfer"

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_amount_must_be_positive(self, db_session, family, owner, category, amount):
        with pytest.raises(TransactionValidationError):
            CreateTransactionUseCase(db_session).execute(
                family.id, owner.id, "expense", amount, category("Food")
            )

    def test_unknown_type(self, db_session, family, owner, category):
        with pytest.raises(TransactionValidationError, match="Invalid transaction type"):
            CreateTransactionUseCase(db_session).execute(
                family.id, owner.id, "gift", "10", category("Food")
            )

    def test_unsupported_currency(self, db_session, family, owner, category):
        with pytest.raises(TransactionValidationError, match="Unsupported currency"):
            CreateTransactionUseCase(db_session).execute(
                family.id, owner.id, "expense", "10", category("Food"), currency="XYZ"
            )

    def test_category_of_other_family(self, db_session, family, owner, make_user):
        other_owner = make_user("other")
        other = CreateFamilyUseCase(db_session).execute(other_owner.id, "Joneses")
        foreign = db_session.query(TransactionCategory.id).filter(
            TransactionCategory.family_id == other.id,
            TransactionCategory.category_type == "expense",
        ).first()[0]

        with pytest.raises(NotFoundError):
            CreateTransactionUseCase(db_session).execute(
                family.id, owner.id, "expense", "10", foreign
            )

    def test_viewer_cannot_create(self, db_session, family, owner, category, make_user):
        viewer = make_user("viewer")
        AddMemberUseCase(db_session).execute(family.id, owner.id, viewer.id, "viewer")

        with pytest.raises(ForbiddenError):
            CreateTransactionUseCase(db_session).execute(
                family.id, viewer.id, "expense", "10", category("Food")
            )
        assert db_session.query(Transaction).count() == 0

    def test_member_attribution_requires_membership(self, db_session, family, owner, category, make_user):
        stranger = make_user("stranger")
        with pytest.raises(TransactionValidationError, match="not a member"):
            CreateTransactionUseCase(db_session).execute(
                family.id, owner.id, "expense", "10", category("Food"), member_id=stranger.id
            )


class TestReadTransactions:
    @pytest.fixture
    def seeded(self, db_session, family, owner, category):
        create = CreateTransactionUseCase(db_session).execute
        return [
            create(family.id, owner.id, "income", "1000", category("Salary"), tx_date=date(2026, 1, 1)),
            create(family.id, owner.id, "expense", "20", category("Food"), tx_date=date(2026, 1, 15)),
            create(family.id, owner.id, "expense", "30", category("Transport"), tx_date=date(2026, 2, 1)),
        ]

    def test_newest_first(self, db_session, family, owner, seeded):
        listed = ListTransactionsService(db_session).execute(family.id, owner.id)
        assert [t.id for t in listed] == [seeded[2].id, seeded[1].id, seeded[0].id]

    def test_filters(self, db_session, family, owner, category, seeded):
        service = ListTransactionsService(db_session)
        assert len(service.execute(family.id, owner.id, transaction_type="expense")) == 2
        assert len(service.execute(family.id, owner.id, category_id=category("Food"))) == 1
        assert len(service.execute(
            family.id, owner.id, date_from=date(2026, 1, 10), date_to=date(2026, 1, 31)
        )) == 1

    def test_get_requires_membership(self, db_session, seeded, make_user):
        stranger = make_user("stranger")
        with pytest.raises(ForbiddenError):
            GetTransactionService(db_session).execute(seeded[0].id, stranger.id)

    def test_get_missing(self, db_session, owner):
        with pytest.raises(NotFoundError):
            GetTransactionService(db_session).execute(404, owner.id)


class TestUpdateTransaction:
    def test_update_amount_and_notes(self, db_session, family, owner, category):
        tx = CreateTransactionUseCase(db_session).execute(
            family.id, owner.id, "expense", "10", category("Food")
        )

        updated = UpdateTransactionUseCase(db_session).execute(
            tx.id, owner.id, amount="12.5", notes="Dinner"
        )

        assert updated.amount == Decimal("12.50")
        assert updated.notes == "Dinner"

    def test_type_change_rechecks_category(self, db_session, family, owner, category):
        tx = CreateTransactionUseCase(db_session).execute(
            family.id, owner.id, "expense", "10", category("Food")
        )
        with pytest.raises(TransactionValidationError):
            UpdateTransactionUseCase(db_session).execute(tx.id, owner.id, transaction_type="income")

        updated = UpdateTransactionUseCase(db_session).execute(
            tx.id, owner.id, transaction_type="income", category_id=category("Bonus")
        )
        assert updated.transaction_type == "income"

    def test_unknown_field(self, db_session, family, owner, category):
        tx = CreateTransactionUseCase(db_session).execute(
            family.id, owner.id, "expense", "10", category("Food")
        )
        with pytest.raises(TransactionValidationError, match="Cannot update"):
            UpdateTransactionUseCase(db_session).execute(tx.id, owner.id, family_id=2)


class TestDeleteTransaction:
    def test_delete(self, db_session, family, owner, category):
        tx = CreateTransactionUseCase(db_session).execute(
            family.id, owner.id, "expense", "10", category("Food")
        )
        DeleteTransactionUseCase(db_session).execute(tx.id, owner.id)
        assert db_session.query(Transaction).count() == 0

    def test_viewer_cannot_delete(self, db_session, family, owner, category, make_user):
        viewer = make_user("viewer")
        AddMemberUseCase(db_session).execute(family.id, owner.id, viewer.id, "viewer")
        tx = CreateTransactionUseCase(db_session).execute(
            family.id, owner.id, "expense", "10", category("Food")
        )
        with pytest.raises(ForbiddenError):
            DeleteTransactionUseCase(db_session).execute(tx.id, viewer.id)
