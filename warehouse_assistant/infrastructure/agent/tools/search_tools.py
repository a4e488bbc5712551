"""Read-only lookup tools: items, sub-accounts, item status and shipments."""

import logging

from warehouse_assistant.domain.exceptions import NotFoundError
from warehouse_assistant.domain.model.assistant import CandidateKind
from warehouse_assistant.domain.model.warehouse import ItemCommitments
from warehouse_assistant.infrastructure.agent.tools.context import ToolContext
from warehouse_assistant.infrastructure.agent.tools.define import tool_define
from warehouse_assistant.infrastructure.agent.tools.params import (
    GetItemStatusParams,
    SearchItemsParams,
    SearchShipmentsParams,
    SearchSubAccountsParams,
)
from warehouse_assistant.infrastructure.agent.tools.result import ToolResult

logger = logging.getLogger(__name__)


@tool_define(
    name="tool_search_items",
    description=(
        "Find the customer's stored items by item number (full or partial, e.g. 12345 or "
        "ITM-12345) or by description words (e.g. 'jones sofa'). When several items match, "
        "the result is a numbered list the user must choose from."
    ),
    params_model=SearchItemsParams,
    entity_fields={"sub_account_id": CandidateKind.SUBACCOUNTS},
    permission="read",
)
async def search_items(
    ctx: ToolContext,
    query: str,
    status: str | None = None,
    sub_account_id: str | None = None,
) -> ToolResult:
    result = await ctx.resolver.resolve(
        query, CandidateKind.ITEMS, ctx.scope, status=status, sub_account_id=sub_account_id
    )
    if result.is_empty:
        raise NotFoundError("item", query)
    if result.is_unique:
        return ToolResult.ok(
            match_type=result.tier.value if result.tier else None,
            item=result.matches[0].to_dict(),
        )

    patch = ctx.disambiguation.begin(
        CandidateKind.ITEMS, result.matches, query, action="tool_search_items"
    )
    return ToolResult.selection(patch, query)


@tool_define(
    name="tool_search_subaccounts",
    description="Find sub-accounts (the customer's internal divisions) by code, number or name.",
    params_model=SearchSubAccountsParams,
    permission="read",
)
async def search_subaccounts(ctx: ToolContext, query: str) -> ToolResult:
    result = await ctx.resolver.resolve(query, CandidateKind.SUBACCOUNTS, ctx.scope)
    if result.is_empty:
        raise NotFoundError("sub-account", query)
    if result.is_unique:
        return ToolResult.ok(sub_account=result.matches[0].to_dict())

    patch = ctx.disambiguation.begin(
        CandidateKind.SUBACCOUNTS, result.matches, query, action="tool_search_subaccounts"
    )
    return ToolResult.selection(patch, query)


@tool_define(
    name="tool_get_item_status",
    description=(
        "Get the current status of one item: whether it has been received and when, its "
        "location, and any pickup, repair quote or disposal already open for it."
    ),
    params_model=GetItemStatusParams,
    entity_fields={"item_id": CandidateKind.ITEMS},
    permission="read",
)
async def get_item_status(ctx: ToolContext, item_id: str) -> ToolResult:
    items = await ctx.warehouse.get_items(ctx.scope, [item_id])
    if not items:
        raise NotFoundError("item", item_id)
    item = items[0]
    commitments = (await ctx.warehouse.get_item_commitments(ctx.scope, [item.id])).get(
        item.id, ItemCommitments()
    )
    return ToolResult.ok(
        item=item.to_dict(),
        received=item.received_at is not None,
        open_will_call=commitments.open_will_call,
        open_repair_quote=commitments.open_repair_quote,
        open_disposal=commitments.open_disposal,
    )


@tool_define(
    name="tool_search_shipments",
    description=(
        "List the customer's shipments (inbound deliveries, will call pickups, outbound), "
        "newest first. Optionally filter by shipment number, type or status."
    ),
    params_model=SearchShipmentsParams,
    permission="read",
)
async def search_shipments(
    ctx: ToolContext,
    query: str | None = None,
    shipment_type: str | None = None,
    status: str | None = None,
) -> ToolResult:
    shipments = await ctx.warehouse.search_shipments(
        ctx.scope, query=query, shipment_type=shipment_type, status=status
    )
    logger.debug("Shipment search returned %d row(s)", len(shipments))
    return ToolResult.ok(count=len(shipments), shipments=[s.to_dict() for s in shipments])
