"""
Draft tools.

Nothing here changes warehouse data until ``tool_submit_draft`` runs. Every
``tool_create_*_draft`` only records a proposal and returns its summary; the
model must show the summary and get an explicit yes before submitting.
"""

from typing import Any, Optional

from warehouse_assistant.domain.exceptions import ConfirmationRequiredError, StateError
from warehouse_assistant.domain.model.assistant import CandidateKind, DraftKind
from warehouse_assistant.infrastructure.agent.tools.context import ToolContext
from warehouse_assistant.infrastructure.agent.tools.define import tool_define
from warehouse_assistant.infrastructure.agent.tools.params import (
    CreateDisposalDraftParams,
    CreateReallocationDraftParams,
    CreateRepairQuoteDraftParams,
    CreateWillCallDraftParams,
    DraftReferenceParams,
)
from warehouse_assistant.infrastructure.agent.tools.result import ToolResult

_ITEMS = {"item_ids": CandidateKind.ITEMS}

_CONFIRM_PROMPT = (
    "Nothing has been changed yet. Show the user this summary and ask them to confirm "
    "before calling tool_submit_draft."
)


async def _propose(
    ctx: ToolContext, kind: DraftKind, item_ids: list[str], **parameters: Any
) -> ToolResult:
    draft, patch = await ctx.drafts.create_draft(kind, ctx.scope, item_ids, parameters)
    return ToolResult.ok(
        session_patch=patch,
        draft_id=draft.id,
        type=draft.kind.value,
        status=draft.status.value,
        summary=draft.summary,
        requires_confirmation=True,
        message=_CONFIRM_PROMPT,
    )


def _target_draft(ctx: ToolContext, draft_id: Optional[str]) -> str:
    if draft_id:
        return draft_id
    if ctx.session.pending_draft is None:
        raise StateError("There is no draft awaiting confirmation")
    return ctx.session.pending_draft.draft_id


@tool_define(
    name="tool_create_will_call_draft",
    description="Prepare a will call (customer pickup) for items. Requires confirmation.",
    params_model=CreateWillCallDraftParams,
    entity_fields=_ITEMS,
    permission="draft",
)
async def create_will_call_draft(
    ctx: ToolContext,
    item_ids: list[str],
    pickup_date: str | None = None,
    released_to: str | None = None,
    notes: str | None = None,
) -> ToolResult:
    return await _propose(
        ctx,
        DraftKind.WILL_CALL,
        item_ids,
        pickup_date=pickup_date,
        released_to=released_to,
        notes=notes,
    )


@tool_define(
    name="tool_create_repair_quote_draft",
    description="Prepare a repair quote request for damaged items. Requires confirmation.",
    params_model=CreateRepairQuoteDraftParams,
    entity_fields=_ITEMS,
    permission="draft",
)
async def create_repair_quote_draft(
    ctx: ToolContext, item_ids: list[str], notes: str
) -> ToolResult:
    return await _propose(ctx, DraftKind.REPAIR_QUOTE, item_ids, notes=notes)


@tool_define(
    name="tool_create_reallocation_draft",
    description="Prepare moving items to another sub-account. Requires confirmation.",
    params_model=CreateReallocationDraftParams,
    entity_fields={**_ITEMS, "to_sub_account_id": CandidateKind.SUBACCOUNTS},
    permission="draft",
)
async def create_reallocation_draft(
    ctx: ToolContext, item_ids: list[str], to_sub_account_id: str
) -> ToolResult:
    return await _propose(
        ctx, DraftKind.REALLOCATION, item_ids, to_sub_account_id=to_sub_account_id
    )


@tool_define(
    name="tool_create_disposal_draft",
    description="Prepare a disposal request for items. Requires confirmation.",
    params_model=CreateDisposalDraftParams,
    entity_fields=_ITEMS,
    permission="draft",
)
async def create_disposal_draft(ctx: ToolContext, item_ids: list[str], reason: str) -> ToolResult:
    return await _propose(ctx, DraftKind.DISPOSAL, item_ids, reason=reason)


@tool_define(
    name="tool_submit_draft",
    description=(
        "Carry out a draft the user has explicitly confirmed. Never call this without a "
        "clear yes from the user in their latest message."
    ),
    params_model=DraftReferenceParams,
    permission="mutate",
)
async def submit_draft(ctx: ToolContext, draft_id: str | None = None) -> ToolResult:
    target = _target_draft(ctx, draft_id)
    if target in ctx.turn_draft_ids:
        raise ConfirmationRequiredError(target)
    result, patch = await ctx.drafts.submit_draft(target, ctx.scope, ctx.session.pending_draft)
    return ToolResult.ok(session_patch=patch, confirmed=True, **result)


@tool_define(
    name="tool_cancel_draft",
    description="Discard a draft the user declined.",
    params_model=DraftReferenceParams,
    permission="state",
)
async def cancel_draft(ctx: ToolContext, draft_id: str | None = None) -> ToolResult:
    target = _target_draft(ctx, draft_id)
    patch = await ctx.drafts.cancel_draft(target, ctx.scope, ctx.session.pending_draft)
    return ToolResult.ok(session_patch=patch, cancelled=True, draft_id=target)

