"""Resolution of the user's choice from a presented list."""

from warehouse_assistant.infrastructure.agent.tools.context import ToolContext
from warehouse_assistant.infrastructure.agent.tools.define import tool_define
from warehouse_assistant.infrastructure.agent.tools.params import ResolveDisambiguationParams
from warehouse_assistant.infrastructure.agent.tools.result import ToolResult


@tool_define(
    name="tool_resolve_disambiguation",
    description=(
        "Call this when the user answers a numbered list you showed them (e.g. '2', "
        "'1 and 3', 'all of them'). Returns the ids of the chosen records; use those ids "
        "in the next tool call."
    ),
    params_model=ResolveDisambiguationParams,
    permission="state",
)
async def resolve_disambiguation(
    ctx: ToolContext,
    selections: list[int] | None = None,
    select_all: bool = False,
) -> ToolResult:
    pending = ctx.session.pending_disambiguation
    selected_ids, patch = ctx.disambiguation.resolve(pending, selections, select_all)
    labels = {c.id: c.label for c in pending.candidates}
    return ToolResult.ok(
        session_patch=patch,
        resolved=True,
        type=pending.kind.value,
        selected_ids=selected_ids,
        selected_count=len(selected_ids),
        selected=[labels[i] for i in selected_ids],
        original_query=pending.original_query,
        continue_with=pending.action,
    )
