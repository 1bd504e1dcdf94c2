"""
Asset use cases - assets and their valuation ledger

A ledger mutation is one unit: the new current_value and the AssetChange row
are staged in the same session and committed once. If anything fails before
the commit both are rolled back, so a balance never moves without its audit
row (or the other way round).
"""
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from family_ledger.application.access import FamilyAccessGuard, FamilyAccess
from family_ledger.domain.asset_change import (
    AssetValidationError,
    ChangeValues,
    compute_change,
    CHANGE_TYPE_BUY,
    CHANGE_TYPE_SELL,
    CHANGE_TYPE_TRANSFER_IN,
    CHANGE_TYPE_TRANSFER_OUT,
    CHANGE_TYPE_VALUATION_ADJUST,
    CHANGE_TYPE_DEPRECIATION,
    CHANGE_TYPE_DISPOSE,
    CHANGE_TYPES,
    ASSET_STATUS_ACTIVE,
    ASSET_STATUS_PENDING,
    ASSET_STATUS_DISPOSED,
)
from family_ledger.domain.errors import NotFoundError
from family_ledger.infrastructure.db.models import Asset, AssetCategory, AssetChange, FamilyMember
from family_ledger.infrastructure.ledger.repository import AssetChangeRepository
from family_ledger.utils.money import quantize_money, is_supported_currency

logger = logging.getLogger(__name__)

# Fields UpdateAssetUseCase writes as-is (current_value and status are handled separately)
_PLAIN_FIELDS = ("name", "notes", "attributes", "purchase_date")


def _load_asset(db: Session, asset_id: int, for_update: bool = False) -> Asset:
    query = db.query(Asset).filter(Asset.id == asset_id)
    if for_update:
        query = query.with_for_update()
    asset = query.first()
    if not asset:
        raise NotFoundError(f"Asset #{asset_id} not found")
    return asset


def _validate_category(db: Session, family_id: int, category_id: int) -> AssetCategory:
    category = db.query(AssetCategory).filter(
        AssetCategory.id == category_id,
        AssetCategory.family_id == family_id
    ).first()
    if not category:
        raise NotFoundError(f"Asset category #{category_id} not found in this family")
    return category


def _validate_holder(db: Session, family_id: int, holder_id: int) -> None:
    is_member = db.query(FamilyMember.id).filter(
        FamilyMember.family_id == family_id,
        FamilyMember.user_id == holder_id
    ).first()
    if not is_member:
        raise AssetValidationError(f"Holder #{holder_id} is not a member of this family")


def _ensure_not_disposed(asset: Asset) -> None:
    if asset.status == ASSET_STATUS_DISPOSED:
        raise AssetValidationError(f"Asset #{asset.id} is disposed and can no longer change value")


class CreateAssetUseCase:
    """
    Use case: add an asset to a family

    current_value defaults to initial_value. When both are given and differ,
    a valuation_adjust row bridges them so the ledger always explains the
    current value.
    """

    def __init__(self, db: Session):
        self.db = db
        self.change_repo = AssetChangeRepository(db)

    def execute(
        self,
        family_id: int,
        user_id: int,
        name: str,
        category_id: int,
        initial_value,
        currency: str = "CNY",
        purchase_date: date | None = None,
        holder_id: int | None = None,
        current_value=None,
        status: str = ASSET_STATUS_ACTIVE,
        attributes: dict | None = None,
        notes: str | None = None,
    ) -> Asset:
        """
        Args:
            family_id: owning family
            user_id: caller (needs edit capability)
            name: display name
            category_id: category inside the same family
            initial_value: value at acquisition, >= 0
            currency: code from the static rate table
            purchase_date: default today
            holder_id: attributed member (default: caller)
            current_value: optional, defaults to initial_value
            status: active or pending
            attributes / notes: free-form

        Returns:
            The committed Asset
        """
        FamilyAccessGuard(self.db).load(user_id, family_id).require_edit()

        name = (name or "").strip()
        if not name:
            raise AssetValidationError("Asset name cannot be empty")

        if not is_supported_currency(currency):
            raise AssetValidationError(f"Unsupported currency: {currency}")

        if status not in (ASSET_STATUS_ACTIVE, ASSET_STATUS_PENDING):
            raise AssetValidationError("New assets must be active or pending")

        initial = quantize_money(initial_value)
        if initial < 0:
            raise AssetValidationError("Initial value cannot be negative")

        _validate_category(self.db, family_id, category_id)

        holder_id = holder_id or user_id
        _validate_holder(self.db, family_id, holder_id)

        asset = Asset(
            family_id=family_id,
            category_id=category_id,
            holder_id=holder_id,
            name=name,
            initial_value=initial,
            current_value=initial,
            currency=currency,
            purchase_date=purchase_date or date.today(),
            status=status,
            attributes=attributes,
            notes=notes,
        )

        try:
            self.db.add(asset)
            self.db.flush()

            if current_value is not None:
                values = compute_change(CHANGE_TYPE_VALUATION_ADJUST, initial, new_value=current_value)
                if values.after_value != initial:
                    asset.current_value = values.after_value
                    self.change_repo.append_change(
                        asset.id,
                        values,
                        notes="Opening valuation",
                        actor_user_id=user_id,
                    )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Asset %d created in family %d", asset.id, family_id)
        return asset


class ListAssetsService:
    """Service: assets of a family with optional filters"""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        family_id: int,
        user_id: int,
        status: str | None = None,
        category_id: int | None = None,
        holder_id: int | None = None,
    ) -> list[Asset]:
        FamilyAccessGuard(self.db).load(user_id, family_id)

        query = self.db.query(Asset).filter(Asset.family_id == family_id)

        if status:
            query = query.filter(Asset.status == status)
        if category_id is not None:
            query = query.filter(Asset.category_id == category_id)
        if holder_id is not None:
            query = query.filter(Asset.holder_id == holder_id)

        return query.order_by(Asset.created_at.asc(), Asset.id.asc()).all()


class GetAssetService:
    """Service: one asset, visible to any member of its family"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, asset_id: int, user_id: int) -> Asset:
        asset = _load_asset(self.db, asset_id)
        FamilyAccessGuard(self.db).load(user_id, asset.family_id)
        return asset


class UpdateAssetUseCase:
    """
    Use case: edit an asset

    A changed current_value is recorded as valuation_adjust in the same
    commit. Disposal is not an edit: status can move between active and
    pending only.
    """

    def __init__(self, db: Session):
        self.db = db
        self.change_repo = AssetChangeRepository(db)

    def execute(self, asset_id: int, user_id: int, **changes) -> Asset:
        asset = _load_asset(self.db, asset_id, for_update=True)
        FamilyAccessGuard(self.db).load(user_id, asset.family_id).require_edit()

        unknown = set(changes) - set(_PLAIN_FIELDS) - {"category_id", "holder_id", "status", "current_value"}
        if unknown:
            raise AssetValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        try:
            if "name" in changes:
                name = (changes["name"] or "").strip()
                if not name:
                    raise AssetValidationError("Asset name cannot be empty")
                changes["name"] = name

            if "purchase_date" in changes and changes["purchase_date"] is None:
                raise AssetValidationError("Purchase date cannot be empty")

            for field in _PLAIN_FIELDS:
                if field in changes:
                    setattr(asset, field, changes[field])

            if changes.get("category_id") is not None:
                _validate_category(self.db, asset.family_id, changes["category_id"])
                asset.category_id = changes["category_id"]

            if changes.get("holder_id") is not None:
                _validate_holder(self.db, asset.family_id, changes["holder_id"])
                asset.holder_id = changes["holder_id"]

            if changes.get("status") is not None and changes["status"] != asset.status:
                _ensure_not_disposed(asset)
                if changes["status"] not in (ASSET_STATUS_ACTIVE, ASSET_STATUS_PENDING):
                    raise AssetValidationError("Use dispose to retire an asset")
                asset.status = changes["status"]

            if changes.get("current_value") is not None:
                new_value = quantize_money(changes["current_value"])
                if new_value != quantize_money(asset.current_value):
                    _ensure_not_disposed(asset)
                    values = compute_change(
                        CHANGE_TYPE_VALUATION_ADJUST, asset.current_value, new_value=new_value
                    )
                    asset.current_value = values.after_value
                    self.change_repo.append_change(asset.id, values, actor_user_id=user_id)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return asset


class DeleteAssetUseCase:
    """Use case: delete an asset together with its ledger"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, asset_id: int, user_id: int) -> None:
        asset = _load_asset(self.db, asset_id)
        FamilyAccessGuard(self.db).load(user_id, asset.family_id).require_edit()

        try:
            self.db.query(AssetChange).filter(
                AssetChange.asset_id == asset_id
            ).delete(synchronize_session=False)
            self.db.delete(asset)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Asset %d deleted by user %d", asset_id, user_id)


class ListAssetChangesService:
    """Service: ledger of one asset, newest first, paginated"""

    def __init__(self, db: Session):
        self.db = db
        self.change_repo = AssetChangeRepository(db)

    def execute(
        self,
        asset_id: int,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        change_types: list[str] | None = None,
    ) -> dict:
        asset = _load_asset(self.db, asset_id)
        FamilyAccessGuard(self.db).load(user_id, asset.family_id)

        unknown = set(change_types or ()) - set(CHANGE_TYPES)
        if unknown:
            raise AssetValidationError(
                f"Unknown change type(s): {', '.join(sorted(unknown))}. Use one of {', '.join(CHANGE_TYPES)}"
            )

        limit = max(1, min(limit, 200))
        offset = max(0, offset)

        return {
            "changes": self.change_repo.list_changes(
                asset_id, limit=limit, offset=offset, change_types=change_types
            ),
            "pagination": {
                "total": self.change_repo.count_changes(asset_id, change_types),
                "limit": limit,
                "offset": offset,
            },
        }


class RecordAssetChangeUseCase:
    """
    Use case: record a value-changing event on an asset

    One method per change type; all of them go through _apply(), which
    locks the asset row, derives the ledger entry, writes both and commits.
    """

    def __init__(self, db: Session):
        self.db = db
        self.change_repo = AssetChangeRepository(db)

    def record_buy(self, asset_id: int, user_id: int, amount, change_date: date | None = None,
                   notes: str | None = None) -> AssetChange:
        return self._apply(asset_id, user_id, CHANGE_TYPE_BUY, amount=amount,
                           change_date=change_date, notes=notes)

    def record_sell(self, asset_id: int, user_id: int, amount, change_date: date | None = None,
                    notes: str | None = None) -> AssetChange:
        return self._apply(asset_id, user_id, CHANGE_TYPE_SELL, amount=amount,
                           change_date=change_date, notes=notes)

    def record_transfer_in(self, asset_id: int, user_id: int, amount, related_asset_id: int | None = None,
                           change_date: date | None = None, notes: str | None = None) -> AssetChange:
        return self._apply(asset_id, user_id, CHANGE_TYPE_TRANSFER_IN, amount=amount,
                           related_asset_id=related_asset_id, change_date=change_date, notes=notes)

    def record_transfer_out(self, asset_id: int, user_id: int, amount, related_asset_id: int | None = None,
                            change_date: date | None = None, notes: str | None = None) -> AssetChange:
        return self._apply(asset_id, user_id, CHANGE_TYPE_TRANSFER_OUT, amount=amount,
                           related_asset_id=related_asset_id, change_date=change_date, notes=notes)

    def record_depreciation(self, asset_id: int, user_id: int, amount, change_date: date | None = None,
                            notes: str | None = None) -> AssetChange:
        return self._apply(asset_id, user_id, CHANGE_TYPE_DEPRECIATION, amount=amount,
                           change_date=change_date, notes=notes)

    def record_value_change(self, asset_id: int, user_id: int, new_value, change_date: date | None = None,
                            notes: str | None = None) -> AssetChange:
        return self._apply(asset_id, user_id, CHANGE_TYPE_VALUATION_ADJUST, new_value=new_value,
                           change_date=change_date, notes=notes)

    def record_dispose(self, asset_id: int, user_id: int, dispose_value, change_date: date | None = None,
                       notes: str | None = None) -> AssetChange:
        return self._apply(asset_id, user_id, CHANGE_TYPE_DISPOSE, new_value=dispose_value,
                           change_date=change_date, notes=notes or "Asset disposed")

    def _apply(
        self,
        asset_id: int,
        user_id: int,
        change_type: str,
        amount=None,
        new_value=None,
        related_asset_id: int | None = None,
        change_date: date | None = None,
        notes: str | None = None,
    ) -> AssetChange:
        asset = _load_asset(self.db, asset_id, for_update=True)
        access: FamilyAccess = FamilyAccessGuard(self.db).load(user_id, asset.family_id)
        access.require_edit()
        _ensure_not_disposed(asset)

        # Validation happens before anything is staged
        values: ChangeValues = compute_change(
            change_type, asset.current_value, amount=amount, new_value=new_value
        )

        try:
            asset.current_value = values.after_value
            if values.new_status:
                asset.status = values.new_status
            change = self.change_repo.append_change(
                asset.id,
                values,
                change_date=change_date,
                notes=notes,
                related_asset_id=related_asset_id,
                actor_user_id=user_id,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Asset %d %s: %s -> %s",
            asset_id, change_type, values.before_value, values.after_value
        )
        return change


class AssetChangeStatisticsService:
    """Service: profit/loss summary over one asset's ledger"""

    def __init__(self, db: Session):
        self.db = db
        self.change_repo = AssetChangeRepository(db)

    def execute(self, asset_id: int, user_id: int) -> dict:
        asset = _load_asset(self.db, asset_id)
        FamilyAccessGuard(self.db).load(user_id, asset.family_id)

        changes = self.change_repo.list_in_insertion_order(asset_id)

        total_profit = Decimal("0")
        total_loss = Decimal("0")
        for change in changes:
            if change.profit_loss is None:
                continue
            if change.profit_loss > 0:
                total_profit += change.profit_loss
            else:
                total_loss += abs(change.profit_loss)

        rated = [c for c in changes if c.profit_loss_rate is not None]
        avg_rate = (
            (sum((c.profit_loss_rate for c in rated), Decimal("0")) / len(rated)).quantize(Decimal("0.01"))
            if rated else Decimal("0.00")
        )

        with_pl = sorted(
            (c for c in changes if c.profit_loss is not None),
            key=lambda c: c.profit_loss,
            reverse=True,
        )

        return {
            "total_changes": len(changes),
            "total_profit": quantize_money(total_profit),
            "total_loss": quantize_money(total_loss),
            "net_profit_loss": quantize_money(total_profit - total_loss),
            "avg_profit_loss_rate": avg_rate,
            "best_change": with_pl[0] if with_pl else None,
            "worst_change": with_pl[-1] if with_pl else None,
        }
