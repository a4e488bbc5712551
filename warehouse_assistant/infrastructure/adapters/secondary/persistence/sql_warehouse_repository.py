"""
SQLAlchemy implementation of WarehouseRepositoryPort.

Every query is restricted to the scope's tenant and account and to rows
that are not soft-deleted.
"""

import logging
from datetime import date, timezone
from typing import Any, Optional

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.orm import aliased

from warehouse_assistant.domain.exceptions import StateError
from warehouse_assistant.domain.model.assistant import Scope
from warehouse_assistant.domain.model.warehouse import (
    ItemCommitments,
    ItemRecord,
    ItemStatus,
    ShipmentRecord,
    ShipmentType,
    SubAccountRecord,
)
from warehouse_assistant.domain.ports.repositories import WarehouseRepositoryPort
from warehouse_assistant.infrastructure.adapters.secondary.common.base_repository import (
    BaseRepository,
    handle_db_errors,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.models import (
    DisposalRequest,
    DisposalRequestItem,
    DocumentSequence,
    Item,
    RepairQuote,
    RepairQuoteItem,
    Shipment,
    ShipmentItem,
    SubAccount,
)

logger = logging.getLogger(__name__)

OPEN_SHIPMENT_STATUSES = ("pending", "scheduled", "in_progress")
OPEN_REPAIR_QUOTE_STATUSES = ("requested", "quoted")
OPEN_DISPOSAL_STATUSES = ("pending_approval", "approved")


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _preferred_first(column: Any, preferred_codes: Optional[list[str]], *then: Any) -> list[Any]:
    order = list(then)
    if preferred_codes:
        codes = [code.upper() for code in preferred_codes]
        order.insert(0, case((func.upper(column).in_(codes), 0), else_=1))
    return order


class SqlWarehouseRepository(BaseRepository, WarehouseRepositoryPort):
    _entity_name = "Item"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _item_query(self, scope: Scope, operation: str):
        sub_account = aliased(SubAccount)
        query = (
            select(Item, sub_account.name)
            .outerjoin(sub_account, sub_account.id == Item.sub_account_id)
            .execution_options(populate_existing=True)
        )
        return self.scoped(query, Item, scope, operation), sub_account

    @handle_db_errors("Item")
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
        query, sub_account = self._item_query(scope, "search_items")
        if code_fragment:
            query = query.where(Item.item_code.ilike(_like(code_fragment), escape="\\"))
        for term in terms or []:
            pattern = _like(term)
            query = query.where(
                or_(
                    Item.item_code.ilike(pattern, escape="\\"),
                    Item.description.ilike(pattern, escape="\\"),
                    sub_account.name.ilike(pattern, escape="\\"),
                    sub_account.code.ilike(pattern, escape="\\"),
                )
            )
        if status:
            query = query.where(Item.status == status)
        if sub_account_id:
            query = query.where(Item.sub_account_id == sub_account_id)

        result = await self._session.execute(
            query.order_by(*_preferred_first(Item.item_code, preferred_codes, Item.item_code))
            .limit(limit)
        )
        return [self._item_to_domain(item, name) for item, name in result.all()]

    @handle_db_errors("Item")
    async def get_items(self, scope: Scope, item_ids: list[str]) -> list[ItemRecord]:
        if not item_ids:
            return []
        query, _ = self._item_query(scope, "get_items")
        result = await self._session.execute(query.where(Item.id.in_(item_ids)))
        return [self._item_to_domain(item, name) for item, name in result.all()]

    @handle_db_errors("SubAccount")
    async def search_sub_accounts(
        self,
        scope: Scope,
        code_fragment: Optional[str] = None,
        terms: Optional[list[str]] = None,
        preferred_codes: Optional[list[str]] = None,
        limit: int = 50,
    ) -> list[SubAccountRecord]:
        query = self.scoped(select(SubAccount), SubAccount, scope, "search_sub_accounts")
        if code_fragment:
            query = query.where(SubAccount.code.ilike(_like(code_fragment), escape="\\"))
        for term in terms or []:
            pattern = _like(term)
            query = query.where(
                or_(
                    SubAccount.code.ilike(pattern, escape="\\"),
                    SubAccount.name.ilike(pattern, escape="\\"),
                )
            )
        result = await self._session.execute(
            query.order_by(*_preferred_first(SubAccount.code, preferred_codes, SubAccount.name))
            .limit(limit)
        )
        return [self._sub_account_to_domain(row) for row in result.scalars().all()]

    @handle_db_errors("SubAccount")
    async def get_sub_account(self, scope: Scope, sub_account_id: str) -> SubAccountRecord | None:
        query = self.scoped(select(SubAccount), SubAccount, scope, "get_sub_account")
        result = await self._session.execute(query.where(SubAccount.id == sub_account_id))
        row = result.scalar_one_or_none()
        return self._sub_account_to_domain(row) if row else None

    @handle_db_errors("Shipment")
    async def search_shipments(
        self,
        scope: Scope,
        query: Optional[str] = None,
        shipment_type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
    ) -> list[ShipmentRecord]:
        item_count = (
            select(func.count(ShipmentItem.id))
            .where(ShipmentItem.shipment_id == Shipment.id)
            .correlate(Shipment)
            .scalar_subquery()
        )
        stmt = self.scoped(
            select(Shipment, item_count.label("item_count")), Shipment, scope, "search_shipments"
        )
        if scope.sub_account_id:
            stmt = stmt.where(Shipment.sub_account_id == scope.sub_account_id)
        if query:
            pattern = _like(query.strip())
            stmt = stmt.where(
                or_(
                    Shipment.shipment_number.ilike(pattern, escape="\\"),
                    Shipment.released_to.ilike(pattern, escape="\\"),
                    Shipment.notes.ilike(pattern, escape="\\"),
                )
            )
        if shipment_type:
            stmt = stmt.where(Shipment.shipment_type == shipment_type)
        if status:
            stmt = stmt.where(Shipment.status == status)

        result = await self._session.execute(
            stmt.order_by(Shipment.created_at.desc()).limit(limit)
        )
        return [
            ShipmentRecord(
                id=shipment.id,
                shipment_number=shipment.shipment_number,
                shipment_type=ShipmentType(shipment.shipment_type),
                status=shipment.status,
                item_count=count or 0,
                scheduled_date=shipment.scheduled_date,
                received_at=shipment.received_at,
                released_to=shipment.released_to,
            )
            for shipment, count in result.all()
        ]

    @handle_db_errors("Item")
    async def get_item_commitments(
        self, scope: Scope, item_ids: list[str]
    ) -> dict[str, ItemCommitments]:
        if not item_ids:
            return {}
        will_calls: dict[str, str] = {}
        repairs: dict[str, str] = {}
        disposals: dict[str, str] = {}

        rows = await self._session.execute(
            self.scoped(
                select(ShipmentItem.item_id, Shipment.shipment_number).join(
                    Shipment, Shipment.id == ShipmentItem.shipment_id
                ),
                Shipment,
                scope,
                "item_commitments",
            ).where(
                ShipmentItem.item_id.in_(item_ids),
                Shipment.shipment_type == ShipmentType.WILL_CALL.value,
                Shipment.status.in_(OPEN_SHIPMENT_STATUSES),
            )
        )
        will_calls.update({item_id: number for item_id, number in rows.all()})

        rows = await self._session.execute(
            self.scoped(
                select(RepairQuoteItem.item_id, RepairQuote.quote_number).join(
                    RepairQuote, RepairQuote.id == RepairQuoteItem.repair_quote_id
                ),
                RepairQuote,
                scope,
                "item_commitments",
            ).where(
                RepairQuoteItem.item_id.in_(item_ids),
                RepairQuote.status.in_(OPEN_REPAIR_QUOTE_STATUSES),
            )
        )
        repairs.update({item_id: number for item_id, number in rows.all()})

        rows = await self._session.execute(
            self.scoped(
                select(DisposalRequestItem.item_id, DisposalRequest.request_number).join(
                    DisposalRequest, DisposalRequest.id == DisposalRequestItem.disposal_request_id
                ),
                DisposalRequest,
                scope,
                "item_commitments",
            ).where(
                DisposalRequestItem.item_id.in_(item_ids),
                DisposalRequest.status.in_(OPEN_DISPOSAL_STATUSES),
            )
        )
        disposals.update({item_id: number for item_id, number in rows.all()})

        return {
            item_id: ItemCommitments(
                open_will_call=will_calls.get(item_id),
                open_repair_quote=repairs.get(item_id),
                open_disposal=disposals.get(item_id),
            )
            for item_id in item_ids
        }

    # ------------------------------------------------------------------
    # Mutations (called inside the submit transaction)
    # ------------------------------------------------------------------

    @handle_db_errors("Shipment")
    async def create_will_call(
        self,
        scope: Scope,
        item_ids: list[str],
        pickup_date: Optional[date],
        released_to: Optional[str],
        notes: Optional[str],
    ) -> dict[str, Any]:
        shipment = Shipment(
            id=Shipment.generate_id(),
            tenant_id=scope.tenant_id,
            account_id=scope.account_id,
            sub_account_id=scope.sub_account_id,
            shipment_number=await self._next_number(
                "WC",
                scope,
                self._issued(
                    Shipment, scope, Shipment.shipment_type == ShipmentType.WILL_CALL.value
                ),
            ),
            shipment_type=ShipmentType.WILL_CALL.value,
            status="scheduled" if pickup_date else "pending",
            scheduled_date=pickup_date,
            released_to=released_to,
            notes=notes,
            created_by=scope.user_id,
        )
        self._session.add(shipment)
        await self._session.flush()
        self._session.add_all(
            ShipmentItem(id=ShipmentItem.generate_id(), shipment_id=shipment.id, item_id=item_id)
            for item_id in item_ids
        )
        await self._set_item_status(scope, item_ids, ItemStatus.ALLOCATED)
        await self._session.flush()
        logger.info("Created will call %s with %d item(s)", shipment.shipment_number, len(item_ids))
        return {
            "shipment_id": shipment.id,
            "shipment_number": shipment.shipment_number,
            "item_count": len(item_ids),
        }

    @handle_db_errors("RepairQuote")
    async def create_repair_quote(
        self, scope: Scope, item_ids: list[str], notes: str
    ) -> dict[str, Any]:
        quote = RepairQuote(
            id=RepairQuote.generate_id(),
            tenant_id=scope.tenant_id,
            account_id=scope.account_id,
            quote_number=await self._next_number("RPQ", scope, self._issued(RepairQuote, scope)),
            status="requested",
            notes=notes,
            created_by=scope.user_id,
        )
        self._session.add(quote)
        await self._session.flush()
        self._session.add_all(
            RepairQuoteItem(
                id=RepairQuoteItem.generate_id(), repair_quote_id=quote.id, item_id=item_id
            )
            for item_id in item_ids
        )
        await self._session.flush()
        return {
            "repair_quote_id": quote.id,
            "quote_number": quote.quote_number,
            "item_count": len(item_ids),
        }

    @handle_db_errors("Item")
    async def reallocate_items(
        self, scope: Scope, item_ids: list[str], to_sub_account_id: str
    ) -> dict[str, Any]:
        scope.require("reallocate_items")
        result = await self._session.execute(
            update(Item)
            .where(
                Item.id.in_(item_ids),
                Item.tenant_id == scope.tenant_id,
                Item.account_id == scope.account_id,
                Item.deleted_at.is_(None),
                Item.status == ItemStatus.ACTIVE.value,
            )
            .values(sub_account_id=to_sub_account_id)
            .execution_options(synchronize_session=False)
        )
        self._require_all_updated(result.rowcount, item_ids)
        return {"to_sub_account_id": to_sub_account_id, "item_count": len(item_ids)}

    @handle_db_errors("DisposalRequest")
    async def create_disposal_request(
        self, scope: Scope, item_ids: list[str], reason: str
    ) -> dict[str, Any]:
        request = DisposalRequest(
            id=DisposalRequest.generate_id(),
            tenant_id=scope.tenant_id,
            account_id=scope.account_id,
            request_number=await self._next_number(
                "DSP", scope, self._issued(DisposalRequest, scope)
            ),
            status="pending_approval",
            reason=reason,
            created_by=scope.user_id,
        )
        self._session.add(request)
        await self._session.flush()
        self._session.add_all(
            DisposalRequestItem(
                id=DisposalRequestItem.generate_id(),
                disposal_request_id=request.id,
                item_id=item_id,
            )
            for item_id in item_ids
        )
        await self._set_item_status(scope, item_ids, ItemStatus.PENDING_DISPOSAL)
        await self._session.flush()
        return {
            "disposal_request_id": request.id,
            "request_number": request.request_number,
            "item_count": len(item_ids),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _set_item_status(self, scope: Scope, item_ids: list[str], status: ItemStatus) -> None:
        scope.require("set_item_status")
        result = await self._session.execute(
            update(Item)
            .where(
                Item.id.in_(item_ids),
                Item.tenant_id == scope.tenant_id,
                Item.account_id == scope.account_id,
                Item.deleted_at.is_(None),
                Item.status == ItemStatus.ACTIVE.value,
            )
            .values(status=status.value)
            .execution_options(synchronize_session=False)
        )
        self._require_all_updated(result.rowcount, item_ids)

    @staticmethod
    def _require_all_updated(rowcount: int, item_ids: list[str]) -> None:
        # Rolled back by the caller's transaction when another request got there first.
        if rowcount != len(set(item_ids)):
            raise StateError(
                "Some items changed while the request was being confirmed; please try again",
                details={"expected": len(set(item_ids)), "updated": rowcount},
            )

    async def _next_number(self, prefix: str, scope: Scope, issued: Any) -> str:
        """
        Allocate the next document number for the scope's account.

        ``issued`` counts the account's existing documents of this kind and
        seeds the counter the first time the prefix is used.
        """
        scope.require("next_number")
        result = await self._session.execute(
            update(DocumentSequence)
            .where(
                DocumentSequence.tenant_id == scope.tenant_id,
                DocumentSequence.account_id == scope.account_id,
                DocumentSequence.prefix == prefix,
            )
            .values(last_value=DocumentSequence.last_value + 1)
            .returning(DocumentSequence.last_value)
            .execution_options(synchronize_session=False)
        )
        value = result.scalar_one_or_none()
        if value is None:
            value = (await self._session.execute(issued)).scalar_one() + 1
            self._session.add(
                DocumentSequence(
                    tenant_id=scope.tenant_id,
                    account_id=scope.account_id,
                    prefix=prefix,
                    last_value=value,
                )
            )
            await self._session.flush()
        return f"{prefix}-{value:05d}"

    @staticmethod
    def _issued(model: Any, scope: Scope, *criteria: Any) -> Any:
        return select(func.count(model.id)).where(
            model.tenant_id == scope.tenant_id, model.account_id == scope.account_id, *criteria
        )

    @staticmethod
    def _item_to_domain(item: Item, sub_account_name: Optional[str]) -> ItemRecord:
        received_at = item.received_at
        if received_at is not None and received_at.tzinfo is None:
            received_at = received_at.replace(tzinfo=timezone.utc)
        return ItemRecord(
            id=item.id,
            tenant_id=item.tenant_id,
            account_id=item.account_id,
            item_code=item.item_code,
            description=item.description or "",
            status=ItemStatus(item.status),
            sub_account_id=item.sub_account_id,
            sub_account_name=sub_account_name,
            location_code=item.location_code,
            received_at=received_at,
        )

    @staticmethod
    def _sub_account_to_domain(row: SubAccount) -> SubAccountRecord:
        return SubAccountRecord(
            id=row.id,
            tenant_id=row.tenant_id,
            account_id=row.account_id,
            code=row.code,
            name=row.name,
        )
