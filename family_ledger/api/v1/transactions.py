"""
Transaction API endpoints (records, categories, statistics) for the active family
"""
from datetime import date as date_type

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.orm import Session

from family_ledger.api.deps import get_db, get_identity, Identity
from family_ledger.application.categories import (
    ListTransactionCategoriesService,
    CreateTransactionCategoryUseCase,
    DeleteTransactionCategoryUseCase,
)
from family_ledger.application.statistics import TransactionStatisticsService
from family_ledger.application.transactions import (
    CreateTransactionUseCase,
    ListTransactionsService,
    GetTransactionService,
    UpdateTransactionUseCase,
    DeleteTransactionUseCase,
)
from family_ledger.infrastructure.db.models import Transaction
from family_ledger.utils.validation import validate_and_normalize_amount, validate_currency_code


router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


# === Request/Response models ===

class CreateTransactionRequest(BaseModel):
    transaction_type: str  # income, expense, transfer
    amount: str
    category_id: int
    currency: str = "CNY"
    date: date_type | None = None
    member_id: int | None = None
    notes: str | None = None
    tags: list[str] | None = None
    related_asset_id: int | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return validate_currency_code(v)


class UpdateTransactionRequest(BaseModel):
    transaction_type: str | None = None
    amount: str | None = None
    category_id: int | None = None
    currency: str | None = None
    date: date_type | None = None
    member_id: int | None = None
    notes: str | None = None
    tags: list[str] | None = None
    related_asset_id: int | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str | None) -> str | None:
        return validate_and_normalize_amount(v) if v is not None else v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str | None) -> str | None:
        return validate_currency_code(v) if v is not None else v


class CreateCategoryRequest(BaseModel):
    name: str
    category_type: str  # income, expense
    icon: str = ""
    color: str = ""


class TransactionResponse(BaseModel):
    id: int
    family_id: int | None
    member_id: int
    category_id: int
    transaction_type: str
    amount: str  # Decimal as string
    currency: str
    date: date_type
    notes: str | None
    tags: list[str] | None
    related_asset_id: int | None


class TransactionCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category_type: str
    icon: str
    color: str
    is_builtin: bool
    sort_order: int


# === Helper functions ===

def _transaction_response(tx: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=tx.id,
        family_id=tx.family_id,
        member_id=tx.member_id,
        category_id=tx.category_id,
        transaction_type=tx.transaction_type,
        amount=str(tx.amount),
        currency=tx.currency,
        date=tx.date,
        notes=tx.notes,
        tags=tx.tags,
        related_asset_id=tx.related_asset_id,
    )


def _stringify_amounts(value):
    """Decimals to strings, recursively (statistics payload)"""
    if isinstance(value, dict):
        return {k: _stringify_amounts(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_stringify_amounts(v) for v in value]
    if isinstance(value, (int, str)) or value is None:
        return value
    return str(value)


# === Endpoints ===

@router.get("", response_model=list[TransactionResponse])
def list_transactions(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    transaction_type: str | None = None,
    category_id: int | None = None,
    member_id: int | None = None,
    date_from: date_type | None = None,
    date_to: date_type | None = None,
):
    transactions = ListTransactionsService(db).execute(
        identity.family_id, identity.user_id,
        transaction_type=transaction_type,
        category_id=category_id,
        member_id=member_id,
        date_from=date_from,
        date_to=date_to,
    )
    return [_transaction_response(t) for t in transactions]


@router.post("", response_model=TransactionResponse, status_code=201)
def create_transaction(
    req: CreateTransactionRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    tx = CreateTransactionUseCase(db).execute(
        family_id=identity.family_id,
        user_id=identity.user_id,
        transaction_type=req.transaction_type,
        amount=req.amount,
        category_id=req.category_id,
        currency=req.currency,
        tx_date=req.date,
        member_id=req.member_id,
        notes=req.notes,
        tags=req.tags,
        related_asset_id=req.related_asset_id,
    )
    return _transaction_response(tx)


@router.get("/statistics")
def get_statistics(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    date_from: date_type | None = None,
    date_to: date_type | None = None,
):
    """Income / expense totals with per-category and per-month breakdowns"""
    stats = TransactionStatisticsService(db).execute(
        identity.family_id, identity.user_id, date_from=date_from, date_to=date_to
    )
    return _stringify_amounts(stats)


@router.get("/categories", response_model=list[TransactionCategoryResponse])
def list_categories(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    category_type: str | None = None,
):
    return ListTransactionCategoriesService(db).execute(
        identity.family_id, identity.user_id, category_type=category_type
    )


@router.post("/categories", status_code=201)
def create_category(req: CreateCategoryRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    category_id = CreateTransactionCategoryUseCase(db).execute(
        identity.family_id, identity.user_id, req.name, req.category_type,
        icon=req.icon, color=req.color,
    )
    return {"id": category_id}


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    DeleteTransactionCategoryUseCase(db).execute(category_id, identity.user_id)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return _transaction_response(GetTransactionService(db).execute(transaction_id, identity.user_id))


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    req: UpdateTransactionRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    tx = UpdateTransactionUseCase(db).execute(
        transaction_id, identity.user_id, **req.model_dump(exclude_unset=True)
    )
    return _transaction_response(tx)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    DeleteTransactionUseCase(db).execute(transaction_id, identity.user_id)
