"""
SQLAlchemy ORM models

Cross-entity references are plain integer id columns resolved through
queries; there are no ORM relationships between families, members and users.
"""
from decimal import Decimal
from datetime import date as date_type
from sqlalchemy import String, DateTime, Integer, Text, TIMESTAMP, Date, func, Boolean, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from family_ledger.infrastructure.db.session import Base


class User(Base):
    """
    User account.

    current_family_id is the user's stored default family. Requests carry the
    active family in the signed session, this column only seeds it on login.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False, server_default="")

    current_family_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


# ============================================================================
# Families and membership
# ============================================================================


class Family(Base):
    """
    Tenancy boundary: every asset, transaction and category belongs to one family
    """
    __tablename__ = "families"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int] = mapped_column(Integer, nullable=False)
    invite_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class FamilyMember(Base):
    """
    Membership (family, user, role). The unique constraint doubles as the
    race detector for concurrent joins.
    """
    __tablename__ = "family_members"

    id: Mapped[int] = mapped_column(primary_key=True)
    family_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="member")  # owner/admin/member/viewer
    invited_by: Mapped[int | None] = mapped_column(Integer, nullable=True)

    joined_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint('family_id', 'user_id', name='uq_family_member'),
    )


# ============================================================================
# Assets
# ============================================================================


class AssetCategory(Base):
    """
    Two-level asset category tree (top-level parent_id is NULL)
    """
    __tablename__ = "asset_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    family_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    parent_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, server_default="")
    color: Mapped[str] = mapped_column(String(16), nullable=False, server_default="")
    is_builtin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class Asset(Base):
    """
    Valued holding or liability.

    family_id is NULL only for legacy rows created before family scoping;
    holder_id is attribution, not access control.
    """
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True)
    family_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    category_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    holder_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    initial_value: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    current_value: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="CNY")
    purchase_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="active")  # active/disposed/pending

    attributes: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class AssetChange(Base):
    """
    Append-only ledger entry for one value-affecting event on an asset.

    Rows are written only by the ledger use cases, together with the asset's
    new current_value, and are never updated afterwards.
    """
    __tablename__ = "asset_changes"

    id: Mapped[int] = mapped_column(primary_key=True)
    asset_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    change_type: Mapped[str] = mapped_column(String(32), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    before_value: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    after_value: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    profit_loss: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=2), nullable=True)
    profit_loss_rate: Mapped[Decimal | None] = mapped_column(Numeric(precision=10, scale=2), nullable=True)

    related_asset_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actor_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index('ix_asset_changes_asset_date', 'asset_id', 'date'),
    )


# ============================================================================
# Transactions
# ============================================================================


class TransactionCategory(Base):
    """Income / expense category, scoped to a family"""
    __tablename__ = "transaction_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    family_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category_type: Mapped[str] = mapped_column(String(16), nullable=False)  # income/expense
    parent_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, server_default="")
    color: Mapped[str] = mapped_column(String(16), nullable=False, server_default="")
    is_builtin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class Transaction(Base):
    """
    Income / expense / transfer record.

    family_id is NULL only for legacy rows; member_id is the user who owns
    the record and drives orphan migration.
    """
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    family_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    member_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    transaction_type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)  # income/expense/transfer
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="CNY")
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    related_asset_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
