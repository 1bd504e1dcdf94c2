"""
Transaction use cases - income / expense / transfer records of a family
"""
import logging
from datetime import date

from sqlalchemy.orm import Session

from family_ledger.application.access import FamilyAccessGuard
from family_ledger.domain.category import CATEGORY_TYPE_INCOME, CATEGORY_TYPE_EXPENSE
from family_ledger.domain.errors import DomainValidationError, NotFoundError
from family_ledger.infrastructure.db.models import Transaction, TransactionCategory, FamilyMember
from family_ledger.utils.money import quantize_money, is_supported_currency

logger = logging.getLogger(__name__)

TRANSACTION_TYPE_INCOME = CATEGORY_TYPE_INCOME
TRANSACTION_TYPE_EXPENSE = CATEGORY_TYPE_EXPENSE
TRANSACTION_TYPE_TRANSFER = "transfer"

TRANSACTION_TYPES = (TRANSACTION_TYPE_INCOME, TRANSACTION_TYPE_EXPENSE, TRANSACTION_TYPE_TRANSFER)


class TransactionValidationError(DomainValidationError):
    """Transaction rejected"""
    pass


def _validate_type(transaction_type: str) -> None:
    if transaction_type not in TRANSACTION_TYPES:
        raise TransactionValidationError(
            f"Invalid transaction type: {transaction_type}. Use one of {', '.join(TRANSACTION_TYPES)}"
        )


def _validate_amount(amount):
    amount = quantize_money(amount)
    if amount <= 0:
        raise TransactionValidationError("Amount must be greater than zero")
    return amount


def _validate_category(db: Session, family_id: int, category_id: int, transaction_type: str) -> None:
    category = db.query(TransactionCategory).filter(
        TransactionCategory.id == category_id,
        TransactionCategory.family_id == family_id
    ).first()
    if not category:
        raise NotFoundError(f"Transaction category #{category_id} not found in this family")

    if transaction_type != TRANSACTION_TYPE_TRANSFER and category.category_type != transaction_type:
        raise TransactionValidationError(
            f"Category '{category.name}' is an {category.category_type} category"
        )


def _validate_member(db: Session, family_id: int, member_id: int) -> None:
    is_member = db.query(FamilyMember.id).filter(
        FamilyMember.family_id == family_id,
        FamilyMember.user_id == member_id
    ).first()
    if not is_member:
        raise TransactionValidationError(f"User #{member_id} is not a member of this family")


def _load_transaction(db: Session, transaction_id: int) -> Transaction:
    tx = db.query(Transaction).filter(Transaction.id == transaction_id).first()
    if not tx:
        raise NotFoundError(f"Transaction #{transaction_id} not found")
    return tx


class CreateTransactionUseCase:
    """
    Use case: record income, an expense or a transfer

    The category must belong to the family; for income and expense it must
    also be of the same type.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        family_id: int,
        user_id: int,
        transaction_type: str,
        amount,
        category_id: int,
        currency: str = "CNY",
        tx_date: date | None = None,
        member_id: int | None = None,
        notes: str | None = None,
        tags: list | None = None,
        related_asset_id: int | None = None,
    ) -> Transaction:
        """
        Args:
            family_id: family the record belongs to
            user_id: caller (needs edit capability)
            transaction_type: income / expense / transfer
            amount: positive amount
            category_id: transaction category of the family
            currency: code from the static rate table
            tx_date: business date (default today)
            member_id: member the record is attributed to (default: caller)
            notes / tags: free-form
            related_asset_id: optional link to an asset

        Returns:
            The committed Transaction
        """
        FamilyAccessGuard(self.db).load(user_id, family_id).require_edit()

        _validate_type(transaction_type)
        amount = _validate_amount(amount)
        if not is_supported_currency(currency):
            raise TransactionValidationError(f"Unsupported currency: {currency}")
        _validate_category(self.db, family_id, category_id, transaction_type)

        member_id = member_id or user_id
        _validate_member(self.db, family_id, member_id)

        tx = Transaction(
            family_id=family_id,
            member_id=member_id,
            category_id=category_id,
            transaction_type=transaction_type,
            amount=amount,
            currency=currency,
            date=tx_date or date.today(),
            notes=notes,
            tags=tags,
            related_asset_id=related_asset_id,
        )
        self.db.add(tx)
        self.db.commit()

        logger.info("Transaction %d (%s) created in family %d", tx.id, transaction_type, family_id)
        return tx


class ListTransactionsService:
    """Service: transactions of a family, newest first"""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        family_id: int,
        user_id: int,
        transaction_type: str | None = None,
        category_id: int | None = None,
        member_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Transaction]:
        FamilyAccessGuard(self.db).load(user_id, family_id)

        query = self.db.query(Transaction).filter(Transaction.family_id == family_id)

        if transaction_type:
            _validate_type(transaction_type)
            query = query.filter(Transaction.transaction_type == transaction_type)
        if category_id is not None:
            query = query.filter(Transaction.category_id == category_id)
        if member_id is not None:
            query = query.filter(Transaction.member_id == member_id)
        if date_from:
            query = query.filter(Transaction.date >= date_from)
        if date_to:
            query = query.filter(Transaction.date <= date_to)

        return query.order_by(Transaction.date.desc(), Transaction.id.desc()).all()


class GetTransactionService:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, transaction_id: int, user_id: int) -> Transaction:
        tx = _load_transaction(self.db, transaction_id)
        FamilyAccessGuard(self.db).load(user_id, tx.family_id)
        return tx


class UpdateTransactionUseCase:
    """Use case: edit a transaction (type, amount, category, date, notes, tags)"""

    _FIELDS = (
        "transaction_type", "amount", "category_id", "currency",
        "date", "member_id", "notes", "tags", "related_asset_id",
    )

    def __init__(self, db: Session):
        self.db = db

    def execute(self, transaction_id: int, user_id: int, **changes) -> Transaction:
        tx = _load_transaction(self.db, transaction_id)
        FamilyAccessGuard(self.db).load(user_id, tx.family_id).require_edit()

        unknown = set(changes) - set(self._FIELDS)
        if unknown:
            raise TransactionValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        transaction_type = changes.get("transaction_type") or tx.transaction_type
        _validate_type(transaction_type)

        if changes.get("amount") is not None:
            changes["amount"] = _validate_amount(changes["amount"])
        if changes.get("currency") is not None and not is_supported_currency(changes["currency"]):
            raise TransactionValidationError(f"Unsupported currency: {changes['currency']}")

        # Re-check the category whenever either side of the type match moves
        if "transaction_type" in changes or changes.get("category_id") is not None:
            _validate_category(
                self.db, tx.family_id, changes.get("category_id") or tx.category_id, transaction_type
            )
        if changes.get("member_id") is not None:
            _validate_member(self.db, tx.family_id, changes["member_id"])

        for field, value in changes.items():
            if value is None and field in ("transaction_type", "amount", "category_id", "currency", "date", "member_id"):
                continue
            setattr(tx, field, value)

        self.db.commit()
        return tx


class DeleteTransactionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, transaction_id: int, user_id: int) -> None:
        tx = _load_transaction(self.db, transaction_id)
        FamilyAccessGuard(self.db).load(user_id, tx.family_id).require_edit()

        self.db.delete(tx)
        self.db.commit()
        logger.info("Transaction %d deleted by user %d", transaction_id, user_id)
