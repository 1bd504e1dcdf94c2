"""
Asset change repository - the append-only valuation ledger

Rows are only ever inserted. The repository has no update or delete path;
they disappear only when their asset (or family) is deleted.
"""
from datetime import date
from typing import Optional, List
from sqlalchemy.orm import Session

from family_ledger.domain.asset_change import ChangeValues
from family_ledger.infrastructure.db.models import AssetChange


class AssetChangeRepository:
    """
    Repository for asset_changes
    """

    def __init__(self, db: Session):
        self.db = db

    def append_change(
        self,
        asset_id: int,
        values: ChangeValues,
        change_date: Optional[date] = None,
        notes: Optional[str] = None,
        related_asset_id: Optional[int] = None,
        actor_user_id: Optional[int] = None,
    ) -> AssetChange:
        """
        Stage a ledger row (flush, no commit)

        Args:
            asset_id: asset the change belongs to
            values: derived fields from compute_change()
            change_date: business date of the event (default: today)
            notes: free text
            related_asset_id: counterpart of a transfer, if any
            actor_user_id: who recorded it

        Returns:
            The flushed AssetChange (id assigned)

        Example:
            >>> repo = AssetChangeRepository(db)
            >>> change = repo.append_change(
            ...     asset_id=1,
            ...     values=compute_change("buy", Decimal("100"), amount=Decimal("20")),
            ... )
        """
        change = AssetChange(
            asset_id=asset_id,
            change_type=values.change_type,
            amount=values.amount,
            before_value=values.before_value,
            after_value=values.after_value,
            profit_loss=values.profit_loss,
            profit_loss_rate=values.profit_loss_rate,
            related_asset_id=related_asset_id,
            actor_user_id=actor_user_id,
            date=change_date or date.today(),
            notes=notes,
        )

        self.db.add(change)
        self.db.flush()  # id without commit

        return change

    def list_changes(
        self,
        asset_id: int,
        limit: int = 50,
        offset: int = 0,
        change_types: Optional[List[str]] = None,
    ) -> List[AssetChange]:
        """
        Changes of one asset, newest first (by business date, then insertion)
        """
        query = self.db.query(AssetChange).filter(AssetChange.asset_id == asset_id)

        if change_types:
            query = query.filter(AssetChange.change_type.in_(change_types))

        query = query.order_by(
            AssetChange.date.desc(),
            AssetChange.id.desc()
        ).offset(offset).limit(limit)

        return query.all()

    def list_in_insertion_order(self, asset_id: int) -> List[AssetChange]:
        """All changes of one asset in the order they were recorded"""
        return (
            self.db.query(AssetChange)
            .filter(AssetChange.asset_id == asset_id)
            .order_by(AssetChange.id.asc())
            .all()
        )

    def count_changes(self, asset_id: int, change_types: Optional[List[str]] = None) -> int:
        query = self.db.query(AssetChange).filter(AssetChange.asset_id == asset_id)

        if change_types:
            query = query.filter(AssetChange.change_type.in_(change_types))

        return query.count()
