"""
Statistics: read-side aggregation over a family's assets and transactions.

All amounts are converted into the base currency (Settings.BASE_CURRENCY)
before they are summed.
"""
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.orm import Session

from family_ledger.application.access import FamilyAccessGuard
from family_ledger.config import get_settings
from family_ledger.domain.asset_change import ASSET_STATUS_ACTIVE
from family_ledger.domain.category import (
    bucket_for_top_level,
    BUCKET_FIXED,
    BUCKET_LIQUID,
    BUCKET_INVESTMENT,
    BUCKET_LIABILITY,
    CATEGORY_TYPE_INCOME,
    CATEGORY_TYPE_EXPENSE,
)
from family_ledger.infrastructure.db.models import Asset, AssetCategory, Transaction, TransactionCategory
from family_ledger.utils.money import quantize_money, to_base

_ZERO = Decimal("0")
_PERCENT = Decimal("0.01")


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return Decimal("0.00")
    return (part / whole * 100).quantize(_PERCENT)


class AssetStatisticsService:
    """
    Net worth and distribution of a family's active assets.

    An asset lands in a bucket when its category is a child of one of the
    four known top-level categories. Anything else still counts towards
    total_assets (it is not a liability) but not towards any bucket.
    """

    def __init__(self, db: Session):
        self.db = db

    def _load(self, family_id: int) -> tuple[list[Asset], dict[int, AssetCategory]]:
        assets = self.db.query(Asset).filter(
            Asset.family_id == family_id,
            Asset.status == ASSET_STATUS_ACTIVE
        ).all()
        categories = self.db.query(AssetCategory).filter(
            AssetCategory.family_id == family_id
        ).all()
        return assets, {c.id: c for c in categories}

    @staticmethod
    def _top_level_of(category_id: int, categories: dict[int, AssetCategory]) -> AssetCategory | None:
        """Parent of the asset's category (one level up), None if the category is top-level or unknown"""
        category = categories.get(category_id)
        if category is None or category.parent_id is None:
            return None
        return categories.get(category.parent_id)

    def get_statistics(self, family_id: int, user_id: int) -> Dict[str, Any]:
        FamilyAccessGuard(self.db).load(user_id, family_id)
        base_currency = get_settings().BASE_CURRENCY

        assets, categories = self._load(family_id)

        buckets = {
            BUCKET_FIXED: _ZERO,
            BUCKET_LIQUID: _ZERO,
            BUCKET_INVESTMENT: _ZERO,
            BUCKET_LIABILITY: _ZERO,
        }
        total_assets = _ZERO

        for asset in assets:
            value = to_base(asset.current_value, asset.currency, base_currency)
            parent = self._top_level_of(asset.category_id, categories)
            bucket = bucket_for_top_level(parent.name) if parent else None

            if bucket is not None:
                buckets[bucket] += value
            if bucket != BUCKET_LIABILITY:
                total_assets += value

        total_liabilities = buckets[BUCKET_LIABILITY]

        return {
            "total_assets": quantize_money(total_assets),
            "total_liabilities": quantize_money(total_liabilities),
            "net_worth": quantize_money(total_assets - total_liabilities),
            "liquid_assets": quantize_money(buckets[BUCKET_LIQUID]),
            "fixed_assets": quantize_money(buckets[BUCKET_FIXED]),
            "investment_assets": quantize_money(buckets[BUCKET_INVESTMENT]),
            "liability_ratio": _percent(total_liabilities, total_assets),
            "base_currency": base_currency,
        }

    def get_distribution(self, family_id: int, user_id: int) -> List[Dict[str, Any]]:
        """
        Share of each top-level category in total_assets + total_liabilities.

        Top-level categories with nothing in them are left out.
        """
        stats = self.get_statistics(family_id, user_id)
        base_currency = stats["base_currency"]
        whole = stats["total_assets"] + stats["total_liabilities"]

        assets, categories = self._load(family_id)

        amounts: dict[int, Decimal] = defaultdict(lambda: _ZERO)
        for asset in assets:
            parent = self._top_level_of(asset.category_id, categories)
            if parent is not None:
                amounts[parent.id] += to_base(asset.current_value, asset.currency, base_currency)

        top_level = sorted(
            (c for c in categories.values() if c.parent_id is None),
            key=lambda c: (c.sort_order, c.id)
        )

        result = []
        for category in top_level:
            amount = quantize_money(amounts.get(category.id, _ZERO))
            if amount == 0:
                continue
            result.append({
                "category_id": category.id,
                "category_name": category.name,
                "amount": amount,
                "percentage": _percent(amount, whole),
                "color": category.color,
            })
        return result


class TransactionStatisticsService:
    """Income/expense totals of a family with per-category and per-month breakdowns."""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        family_id: int,
        user_id: int,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> Dict[str, Any]:
        FamilyAccessGuard(self.db).load(user_id, family_id)
        base_currency = get_settings().BASE_CURRENCY

        query = self.db.query(Transaction).filter(Transaction.family_id == family_id)
        if date_from:
            query = query.filter(Transaction.date >= date_from)
        if date_to:
            query = query.filter(Transaction.date <= date_to)
        transactions = query.all()

        category_names = {
            c.id: c.name
            for c in self.db.query(TransactionCategory).filter(
                TransactionCategory.family_id == family_id
            ).all()
        }

        total_income = _ZERO
        total_expense = _ZERO
        income_count = 0
        expense_count = 0
        by_category = {
            CATEGORY_TYPE_INCOME: defaultdict(lambda: _ZERO),
            CATEGORY_TYPE_EXPENSE: defaultdict(lambda: _ZERO),
        }
        by_month: dict[str, dict[str, Decimal]] = defaultdict(
            lambda: {"income": _ZERO, "expense": _ZERO}
        )

        for tx in transactions:
            # Transfers move money between holdings, they are neither income nor expense
            if tx.transaction_type not in (CATEGORY_TYPE_INCOME, CATEGORY_TYPE_EXPENSE):
                continue

            amount = to_base(tx.amount, tx.currency, base_currency)
            month = tx.date.strftime("%Y-%m")

            if tx.transaction_type == CATEGORY_TYPE_INCOME:
                total_income += amount
                income_count += 1
            else:
                total_expense += amount
                expense_count += 1

            by_category[tx.transaction_type][tx.category_id] += amount
            by_month[month][tx.transaction_type] += amount

        def _category_rows(kind: str, total: Decimal) -> List[Dict[str, Any]]:
            rows = [
                {
                    "category_id": category_id,
                    "category_name": category_names.get(category_id, "Uncategorized"),
                    "amount": quantize_money(amount),
                    "percentage": _percent(amount, total),
                }
                for category_id, amount in by_category[kind].items()
            ]
            rows.sort(key=lambda r: r["amount"], reverse=True)
            return rows

        monthly = [
            {
                "month": month,
                "income": quantize_money(values["income"]),
                "expense": quantize_money(values["expense"]),
                "net": quantize_money(values["income"] - values["expense"]),
            }
            for month, values in sorted(by_month.items(), reverse=True)
        ]

        return {
            "total_income": quantize_money(total_income),
            "total_expense": quantize_money(total_expense),
            "net_income": quantize_money(total_income - total_expense),
            "income_count": income_count,
            "expense_count": expense_count,
            "transaction_count": len(transactions),
            "income_by_category": _category_rows(CATEGORY_TYPE_INCOME, total_income),
            "expense_by_category": _category_rows(CATEGORY_TYPE_EXPENSE, total_expense),
            "monthly": monthly,
            "base_currency": base_currency,
        }
