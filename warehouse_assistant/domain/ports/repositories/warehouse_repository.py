"""
WarehouseRepository port.

Read access to items, sub-accounts and shipments, plus the business
mutations confirmed drafts perform. Every method takes the request scope and
filters by its tenant and account, and by the soft-delete flag.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional

from warehouse_assistant.domain.model.assistant import Scope
from warehouse_assistant.domain.model.warehouse import (
    ItemCommitments,
    ItemRecord,
    ShipmentRecord,
    SubAccountRecord,
)


class WarehouseRepositoryPort(ABC):
    @abstractmethod
    async def search_items(
        self,
        scope: Scope,
        code_fragment: Optional[str] = None,
        terms: Optional[list[str]] = None,
        status: Optional[str] = None,
        sub_account_id: Optional[str] = None,
        preferred_codes: Optional[list[str]] = None,
        limit: int = 50,
    ) -> list[ItemRecord]:
        """
        Prefilter candidate items by code fragment or by text terms.

        Items whose code is in ``preferred_codes`` (compared upper-cased) sort
        ahead of the rest, so the limit never cuts off an exact match.
        """

    @abstractmethod
    async def get_items(self, scope: Scope, item_ids: list[str]) -> list[ItemRecord]:
        """Get items by id. Ids outside the scope are silently absent."""

    @abstractmethod
    async def search_sub_accounts(
        self,
        scope: Scope,
        code_fragment: Optional[str] = None,
        terms: Optional[list[str]] = None,
        preferred_codes: Optional[list[str]] = None,
        limit: int = 50,
    ) -> list[SubAccountRecord]:
        """Prefilter candidate sub-accounts, preferred codes first."""

    @abstractmethod
    async def get_sub_account(self, scope: Scope, sub_account_id: str) -> SubAccountRecord | None:
        """Get one live sub-account of the scope's account."""

    @abstractmethod
    async def search_shipments(
        self,
        scope: Scope,
        query: Optional[str] = None,
        shipment_type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
    ) -> list[ShipmentRecord]:
        """List shipments, newest first."""

    @abstractmethod
    async def get_item_commitments(
        self, scope: Scope, item_ids: list[str]
    ) -> dict[str, ItemCommitments]:
        """Open will-calls, repair quotes and disposal requests per item."""

    @abstractmethod
    async def create_will_call(
        self,
        scope: Scope,
        item_ids: list[str],
        pickup_date: Optional[date],
        released_to: Optional[str],
        notes: Optional[str],
    ) -> dict[str, Any]:
        """Insert a will-call shipment with one line per item and allocate the items."""

    @abstractmethod
    async def create_repair_quote(
        self, scope: Scope, item_ids: list[str], notes: str
    ) -> dict[str, Any]:
        """Insert a repair quote request covering the items."""

    @abstractmethod
    async def reallocate_items(
        self, scope: Scope, item_ids: list[str], to_sub_account_id: str
    ) -> dict[str, Any]:
        """Move the items to another sub-account of the same account."""

    @abstractmethod
    async def create_disposal_request(
        self, scope: Scope, item_ids: list[str], reason: str
    ) -> dict[str, Any]:
        """Insert a disposal request and mark the items pending disposal."""
