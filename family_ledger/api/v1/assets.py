"""
Asset API endpoints (assets, valuation ledger, categories, statistics)

All endpoints act on the request's active family (session or X-Family-Id).
"""
from datetime import date as date_type

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from family_ledger.api.deps import get_db, get_identity, Identity
from family_ledger.application.assets import (
    CreateAssetUseCase,
    ListAssetsService,
    GetAssetService,
    UpdateAssetUseCase,
    DeleteAssetUseCase,
    ListAssetChangesService,
    RecordAssetChangeUseCase,
    AssetChangeStatisticsService,
)
from family_ledger.application.categories import (
    ListAssetCategoriesService,
    CreateAssetCategoryUseCase,
    DeleteAssetCategoryUseCase,
)
from family_ledger.application.statistics import AssetStatisticsService
from family_ledger.infrastructure.db.models import Asset, AssetChange
from family_ledger.utils.validation import validate_and_normalize_amount, validate_currency_code


router = APIRouter(prefix="/api/v1/assets", tags=["assets"])


# === Request/Response models ===

class CreateAssetRequest(BaseModel):
    name: str
    category_id: int
    initial_value: str
    current_value: str | None = None
    currency: str = "CNY"
    purchase_date: date_type | None = None
    holder_id: int | None = None
    status: str = "active"
    attributes: dict | None = None
    notes: str | None = None

    @field_validator("initial_value", "current_value")
    @classmethod
    def validate_amount(cls, v: str | None) -> str | None:
        return validate_and_normalize_amount(v) if v is not None else v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return validate_currency_code(v)


class UpdateAssetRequest(BaseModel):
    name: str | None = None
    category_id: int | None = None
    holder_id: int | None = None
    current_value: str | None = None
    status: str | None = None
    purchase_date: date_type | None = None
    attributes: dict | None = None
    notes: str | None = None

    @field_validator("current_value")
    @classmethod
    def validate_amount(cls, v: str | None) -> str | None:
        return validate_and_normalize_amount(v) if v is not None else v


class AmountRequest(BaseModel):
    amount: str
    date: date_type | None = None
    notes: str | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class TransferRequest(AmountRequest):
    related_asset_id: int | None = None


class ValueChangeRequest(BaseModel):
    new_value: str
    date: date_type | None = None
    notes: str | None = None

    @field_validator("new_value")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class DisposeRequest(BaseModel):
    dispose_value: str = "0"
    date: date_type | None = None
    notes: str | None = None

    @field_validator("dispose_value")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class CreateCategoryRequest(BaseModel):
    name: str
    parent_id: int | None = None
    icon: str = ""
    color: str = ""


class AssetResponse(BaseModel):
    id: int
    family_id: int | None
    category_id: int
    holder_id: int
    name: str
    initial_value: str  # Decimal as string
    current_value: str
    currency: str
    purchase_date: date_type
    status: str
    attributes: dict | None
    notes: str | None


class AssetChangeResponse(BaseModel):
    id: int
    asset_id: int
    change_type: str
    amount: str
    before_value: str
    after_value: str
    profit_loss: str | None
    profit_loss_rate: str | None
    related_asset_id: int | None
    actor_user_id: int | None
    date: date_type
    notes: str | None


class PaginationResponse(BaseModel):
    total: int
    limit: int
    offset: int


class AssetChangesPageResponse(BaseModel):
    changes: list[AssetChangeResponse]
    pagination: PaginationResponse


class ChangeStatisticsResponse(BaseModel):
    total_changes: int
    total_profit: str
    total_loss: str
    net_profit_loss: str
    avg_profit_loss_rate: str
    best_change: AssetChangeResponse | None
    worst_change: AssetChangeResponse | None


class StatisticsResponse(BaseModel):
    total_assets: str
    total_liabilities: str
    net_worth: str
    liquid_assets: str
    fixed_assets: str
    investment_assets: str
    liability_ratio: str
    base_currency: str


class DistributionItemResponse(BaseModel):
    category_id: int
    category_name: str
    amount: str
    percentage: str
    color: str


class CategoryResponse(BaseModel):
    id: int
    name: str
    parent_id: int | None
    icon: str
    color: str
    is_builtin: bool
    sort_order: int
    children: list["CategoryResponse"] = []


# === Helper functions ===

def _str_or_none(value) -> str | None:
    return str(value) if value is not None else None


def _asset_response(asset: Asset) -> AssetResponse:
    return AssetResponse(
        id=asset.id,
        family_id=asset.family_id,
        category_id=asset.category_id,
        holder_id=asset.holder_id,
        name=asset.name,
        initial_value=str(asset.initial_value),
        current_value=str(asset.current_value),
        currency=asset.currency,
        purchase_date=asset.purchase_date,
        status=asset.status,
        attributes=asset.attributes,
        notes=asset.notes,
    )


def _change_response(change: AssetChange | None) -> AssetChangeResponse | None:
    if change is None:
        return None
    return AssetChangeResponse(
        id=change.id,
        asset_id=change.asset_id,
        change_type=change.change_type,
        amount=str(change.amount),
        before_value=str(change.before_value),
        after_value=str(change.after_value),
        profit_loss=_str_or_none(change.profit_loss),
        profit_loss_rate=_str_or_none(change.profit_loss_rate),
        related_asset_id=change.related_asset_id,
        actor_user_id=change.actor_user_id,
        date=change.date,
        notes=change.notes,
    )


# === Family-level endpoints ===

@router.get("", response_model=list[AssetResponse])
def list_assets(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    status: str | None = None,
    category_id: int | None = None,
    holder_id: int | None = None,
):
    assets = ListAssetsService(db).execute(
        identity.family_id, identity.user_id,
        status=status, category_id=category_id, holder_id=holder_id,
    )
    return [_asset_response(a) for a in assets]


@router.post("", response_model=AssetResponse, status_code=201)
def create_asset(req: CreateAssetRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    asset = CreateAssetUseCase(db).execute(
        family_id=identity.family_id,
        user_id=identity.user_id,
        name=req.name,
        category_id=req.category_id,
        initial_value=req.initial_value,
        current_value=req.current_value,
        currency=req.currency,
        purchase_date=req.purchase_date,
        holder_id=req.holder_id,
        status=req.status,
        attributes=req.attributes,
        notes=req.notes,
    )
    return _asset_response(asset)


@router.get("/statistics", response_model=StatisticsResponse)
def get_statistics(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    stats = AssetStatisticsService(db).get_statistics(identity.family_id, identity.user_id)
    return {k: (v if k == "base_currency" else str(v)) for k, v in stats.items()}


@router.get("/distribution", response_model=list[DistributionItemResponse])
def get_distribution(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    items = AssetStatisticsService(db).get_distribution(identity.family_id, identity.user_id)
    return [
        {**item, "amount": str(item["amount"]), "percentage": str(item["percentage"])}
        for item in items
    ]


@router.get("/categories", response_model=list[CategoryResponse])
def list_categories(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return ListAssetCategoriesService(db).execute(identity.family_id, identity.user_id)


@router.post("/categories", status_code=201)
def create_category(req: CreateCategoryRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    category_id = CreateAssetCategoryUseCase(db).execute(
        identity.family_id, identity.user_id, req.name,
        parent_id=req.parent_id, icon=req.icon, color=req.color,
    )
    return {"id": category_id}


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    DeleteAssetCategoryUseCase(db).execute(category_id, identity.user_id)


# === Asset endpoints ===

@router.get("/{asset_id}", response_model=AssetResponse)
def get_asset(asset_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return _asset_response(GetAssetService(db).execute(asset_id, identity.user_id))


@router.patch("/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: int,
    req: UpdateAssetRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Edit an asset; a new current_value is recorded as a valuation adjustment"""
    asset = UpdateAssetUseCase(db).execute(asset_id, identity.user_id, **req.model_dump(exclude_unset=True))
    return _asset_response(asset)


@router.delete("/{asset_id}", status_code=204)
def delete_asset(asset_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    DeleteAssetUseCase(db).execute(asset_id, identity.user_id)


@router.get("/{asset_id}/changes", response_model=AssetChangesPageResponse)
def list_asset_changes(
    asset_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    change_type: list[str] | None = Query(None),
):
    """Ledger page; repeat ?change_type= to keep only those types"""
    page = ListAssetChangesService(db).execute(
        asset_id, identity.user_id, limit=limit, offset=offset, change_types=change_type
    )
    return {
        "changes": [_change_response(c) for c in page["changes"]],
        "pagination": page["pagination"],
    }


@router.get("/{asset_id}/changes/statistics", response_model=ChangeStatisticsResponse)
def get_change_statistics(asset_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    stats = AssetChangeStatisticsService(db).execute(asset_id, identity.user_id)
    return ChangeStatisticsResponse(
        total_changes=stats["total_changes"],
        total_profit=str(stats["total_profit"]),
        total_loss=str(stats["total_loss"]),
        net_profit_loss=str(stats["net_profit_loss"]),
        avg_profit_loss_rate=str(stats["avg_profit_loss_rate"]),
        best_change=_change_response(stats["best_change"]),
        worst_change=_change_response(stats["worst_change"]),
    )


@router.post("/{asset_id}/buy", response_model=AssetChangeResponse, status_code=201)
def record_buy(asset_id: int, req: AmountRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    change = RecordAssetChangeUseCase(db).record_buy(
        asset_id, identity.user_id, req.amount, change_date=req.date, notes=req.notes
    )
    return _change_response(change)


@router.post("/{asset_id}/sell", response_model=AssetChangeResponse, status_code=201)
def record_sell(asset_id: int, req: AmountRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    change = RecordAssetChangeUseCase(db).record_sell(
        asset_id, identity.user_id, req.amount, change_date=req.date, notes=req.notes
    )
    return _change_response(change)


@router.post("/{asset_id}/transfer-in", response_model=AssetChangeResponse, status_code=201)
def record_transfer_in(asset_id: int, req: TransferRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    change = RecordAssetChangeUseCase(db).record_transfer_in(
        asset_id, identity.user_id, req.amount,
        related_asset_id=req.related_asset_id, change_date=req.date, notes=req.notes,
    )
    return _change_response(change)


@router.post("/{asset_id}/transfer-out", response_model=AssetChangeResponse, status_code=201)
def record_transfer_out(asset_id: int, req: TransferRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    change = RecordAssetChangeUseCase(db).record_transfer_out(
        asset_id, identity.user_id, req.amount,
        related_asset_id=req.related_asset_id, change_date=req.date, notes=req.notes,
    )
    return _change_response(change)


@router.post("/{asset_id}/depreciation", response_model=AssetChangeResponse, status_code=201)
def record_depreciation(asset_id: int, req: AmountRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    change = RecordAssetChangeUseCase(db).record_depreciation(
        asset_id, identity.user_id, req.amount, change_date=req.date, notes=req.notes
    )
    return _change_response(change)


@router.post("/{asset_id}/value-change", response_model=AssetChangeResponse, status_code=201)
def record_value_change(asset_id: int, req: ValueChangeRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    change = RecordAssetChangeUseCase(db).record_value_change(
        asset_id, identity.user_id, req.new_value, change_date=req.date, notes=req.notes
    )
    return _change_response(change)


@router.post("/{asset_id}/dispose", response_model=AssetChangeResponse, status_code=201)
def record_dispose(asset_id: int, req: DisposeRequest, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    change = RecordAssetChangeUseCase(db).record_dispose(
        asset_id, identity.user_id, req.dispose_value, change_date=req.date, notes=req.notes
    )
    return _change_response(change)
