import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class IdGeneratorMixin:
    """Mixin providing a class method to generate unique IDs for database entities."""

    @classmethod
    def generate_id(cls) -> str:
        return str(uuid.uuid4())


class SoftDeleteMixin:
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Identity and access
# ---------------------------------------------------------------------------


class Tenant(IdGeneratorMixin, Base):
    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class User(IdGeneratorMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    api_keys: Mapped[List["APIKey"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


class APIKey(IdGeneratorMixin, Base):
    __tablename__ = "api_keys"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    key_hash: Mapped[str] = mapped_column(String, unique=True, index=True)
    name: Mapped[str] = mapped_column(String)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id", ondelete="CASCADE"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped["User"] = relationship(back_populates="api_keys")


class Account(IdGeneratorMixin, SoftDeleteMixin, Base):
    """A warehouse client (the party whose goods are stored)."""

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class AccountMembership(IdGeneratorMixin, Base):
    __tablename__ = "account_memberships"
    __table_args__ = (UniqueConstraint("user_id", "account_id", name="uq_membership_user_account"),)

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(
        String(20), default="client_user"
    )  # client_admin | client_user


class SubAccount(IdGeneratorMixin, SoftDeleteMixin, Base):
    """Sidemark / job grouping items within an account."""

    __tablename__ = "sub_accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


class Item(IdGeneratorMixin, SoftDeleteMixin, Base):
    __tablename__ = "items"
    __table_args__ = (
        Index("ix_items_scope_code", "tenant_id", "account_id", "item_code"),
        Index("ix_items_scope_status", "tenant_id", "account_id", "status"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    sub_account_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("sub_accounts.id", ondelete="SET NULL"), nullable=True
    )
    item_code: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(
        String(30), default="active", nullable=False
    )  # active | allocated | released | pending_disposal | disposed
    location_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    sub_account: Mapped[Optional["SubAccount"]] = relationship(foreign_keys=[sub_account_id])


class Shipment(IdGeneratorMixin, SoftDeleteMixin, Base):
    __tablename__ = "shipments"
    __table_args__ = (
        UniqueConstraint("tenant_id", "account_id", "shipment_number", name="uq_shipments_number"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sub_account_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    shipment_number: Mapped[str] = mapped_column(String(50), nullable=False)
    shipment_type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # inbound | will_call | outbound
    status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False
    )  # pending | scheduled | in_progress | completed | cancelled
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    released_to: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    items: Mapped[List["ShipmentItem"]] = relationship(
        back_populates="shipment", cascade="all, delete-orphan"
    )


class ShipmentItem(IdGeneratorMixin, Base):
    __tablename__ = "shipment_items"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    shipment_id: Mapped[str] = mapped_column(
        String, ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[str] = mapped_column(
        String, ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default="pending")

    shipment: Mapped["Shipment"] = relationship(back_populates="items")


class RepairQuote(IdGeneratorMixin, SoftDeleteMixin, Base):
    __tablename__ = "repair_quotes"
    __table_args__ = (
        UniqueConstraint("tenant_id", "account_id", "quote_number", name="uq_repair_quotes_number"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quote_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default="requested", nullable=False
    )  # requested | quoted | approved | declined
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class RepairQuoteItem(IdGeneratorMixin, Base):
    __tablename__ = "repair_quote_items"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    repair_quote_id: Mapped[str] = mapped_column(
        String, ForeignKey("repair_quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[str] = mapped_column(
        String, ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )


class DisposalRequest(IdGeneratorMixin, SoftDeleteMixin, Base):
    __tablename__ = "disposal_requests"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "account_id", "request_number", name="uq_disposal_requests_number"
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    request_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default="pending_approval", nullable=False
    )  # pending_approval | approved | done
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class DisposalRequestItem(IdGeneratorMixin, Base):
    __tablename__ = "disposal_request_items"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    disposal_request_id: Mapped[str] = mapped_column(
        String, ForeignKey("disposal_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[str] = mapped_column(
        String, ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True
    )


class DocumentSequence(Base):
    """
    Last document number issued per (tenant, account, prefix).

    Bumped with UPDATE ... RETURNING inside the submit transaction, so
    concurrent submits for one account queue on the row lock.
    """

    __tablename__ = "document_sequences"

    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), primary_key=True
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    prefix: Mapped[str] = mapped_column(String(10), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ---------------------------------------------------------------------------
# Assistant state
# ---------------------------------------------------------------------------


class AssistantSessionRecord(IdGeneratorMixin, Base):
    """
    Cross-turn assistant state, one live row per (tenant, account, user).

    ``version`` is bumped on every update and checked in the WHERE clause,
    so a write based on a stale read affects no rows.
    """

    __tablename__ = "assistant_sessions"
    __table_args__ = (
        Index("ix_assistant_sessions_scope", "tenant_id", "account_id", "user_id", "expires_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    sub_account_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    pending_disambiguation: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    pending_draft: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    last_route: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    last_selected_items: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class AssistantDraftRecord(IdGeneratorMixin, Base):
    __tablename__ = "assistant_drafts"
    __table_args__ = (Index("ix_assistant_drafts_scope", "tenant_id", "account_id", "status"),)

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    sub_account_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    kind: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # will_call | repair_quote | reallocation | disposal
    status: Mapped[str] = mapped_column(
        String(20), default="draft", nullable=False
    )  # draft | confirmed | cancelled
    created_by: Mapped[str] = mapped_column(String, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    result: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
