"""Unit tests for ToolDispatcher and the tool registry."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from pydantic import Field

from warehouse_assistant.application.services import DisambiguationManager
from warehouse_assistant.domain.exceptions import (
    AmbiguousReferenceError,
    NotFoundError,
    PersistenceError,
    ScopeViolationError,
)
from warehouse_assistant.domain.model.assistant import AssistantSession, CandidateKind, Scope
from warehouse_assistant.domain.ports.services import RequestedToolCall
from warehouse_assistant.infrastructure.agent.tools import (
    ToolDispatcher,
    ToolInfo,
    ToolResult,
    get_registered_tools,
    tool_info_to_openai_format,
)
from warehouse_assistant.infrastructure.agent.tools.define import ToolParams

SCOPE = Scope(tenant_id="t-1", account_id="a-1", user_id="u-1")

EXPECTED_TOOLS = {
    "tool_search_items",
    "tool_search_subaccounts",
    "tool_get_item_status",
    "tool_search_shipments",
    "tool_resolve_disambiguation",
    "tool_create_will_call_draft",
    "tool_create_repair_quote_draft",
    "tool_create_reallocation_draft",
    "tool_create_disposal_draft",
    "tool_submit_draft",
    "tool_cancel_draft",
}


class ItemParams(ToolParams):
    item_ids: list[str] = Field(min_length=1)
    note: str | None = None


def _call(name: str, arguments: dict) -> RequestedToolCall:
    return RequestedToolCall(id="call_1", name=name, arguments=arguments)


def _session() -> AssistantSession:
    return AssistantSession.start(SCOPE, timedelta(minutes=30), datetime.now(timezone.utc))


def _tool(execute, name="tool_echo") -> ToolInfo:
    return ToolInfo(
        name=name,
        description="Echo resolved item ids",
        params_model=ItemParams,
        execute=execute,
        entity_fields={"item_ids": CandidateKind.ITEMS},
    )


async def _echo(ctx, item_ids, note=None):
    return ToolResult.ok(item_ids=item_ids, note=note, call_id=ctx.call_id)


@pytest.fixture
def resolver():
    mock = Mock()
    mock.resolve_many = AsyncMock(
        side_effect=lambda values, kind, scope: [SimpleNamespace(id=f"id-{v}") for v in values]
    )
    mock.resolve_one = AsyncMock()
    return mock


def _dispatcher(resolver, *tools: ToolInfo) -> ToolDispatcher:
    return ToolDispatcher(
        tools={t.name: t for t in tools},
        resolver=resolver,
        disambiguation=DisambiguationManager(),
        drafts=Mock(),
        warehouse=Mock(),
    )


@pytest.mark.unit
class TestRegistry:
    def test_all_tools_are_registered(self):
        assert EXPECTED_TOOLS <= set(get_registered_tools())

    def test_openai_schema_has_no_titles(self):
        schema = tool_info_to_openai_format(get_registered_tools()["tool_create_will_call_draft"])
        parameters = schema["function"]["parameters"]
        assert schema["type"] == "function"
        assert "title" not in parameters
        assert parameters["required"] == ["item_ids"]
        assert "title" not in parameters["properties"]["item_ids"]

    def test_submit_is_the_only_mutating_tool(self):
        mutating = [n for n, t in get_registered_tools().items() if t.permission == "mutate"]
        assert mutating == ["tool_submit_draft"]


@pytest.mark.unit
class TestDispatch:
    async def test_resolves_entities_before_running(self, resolver):
        dispatcher = _dispatcher(resolver, _tool(_echo))

        result = await dispatcher.dispatch(
            _call("tool_echo", {"item_ids": ["12345", "20001"], "note": "  fragile  "}),
            SCOPE,
            _session(),
        )

        assert result.output == {
            "ok": True,
            "item_ids": ["id-12345", "id-20001"],
            "note": "fragile",
            "call_id": "call_1",
        }
        assert result.title == "tool_echo"
        resolver.resolve_many.assert_awaited_once_with(
            ["12345", "20001"], CandidateKind.ITEMS, SCOPE
        )

    async def test_unknown_tool(self, resolver):
        result = await _dispatcher(resolver, _tool(_echo)).dispatch(
            _call("tool_delete_everything", {}), SCOPE, _session()
        )
        assert result.is_error
        assert result.output["error"]["code"] == "validation_error"
        assert result.output["error"]["details"] == {"available_tools": ["tool_echo"]}

    async def test_invalid_arguments(self, resolver):
        result = await _dispatcher(resolver, _tool(_echo)).dispatch(
            _call("tool_echo", {"item_ids": []}), SCOPE, _session()
        )
        assert result.is_error
        assert result.output["error"]["code"] == "validation_error"
        assert "item_ids" in result.output["error"]["message"]
        resolver.resolve_many.assert_not_called()

    async def test_unparseable_arguments(self, resolver):
        result = await _dispatcher(resolver, _tool(_echo)).dispatch(
            _call("tool_echo", {"_error": "truncated", "_raw": '{"item_ids": ["1'}),
            SCOPE,
            _session(),
        )
        assert result.output["error"]["code"] == "validation_error"
        assert "truncated" in result.output["error"]["message"]

    async def test_ambiguous_reference_hands_off_to_user(self, resolver):
        candidates = [
            SimpleNamespace(id="sofa-1", label="ITM-20001 - Jones sofa"),
            SimpleNamespace(id="sofa-2", label="ITM-20002 - Jones sofa"),
        ]
        resolver.resolve_many.side_effect = AmbiguousReferenceError(
            "items", "jones sofa", candidates
        )

        result = await _dispatcher(resolver, _tool(_echo)).dispatch(
            _call("tool_echo", {"item_ids": ["jones sofa"]}), SCOPE, _session()
        )

        assert result.output["multiple_matches"] is True
        assert result.output["items"] == [
            {"index": 1, "label": "ITM-20001 - Jones sofa"},
            {"index": 2, "label": "ITM-20002 - Jones sofa"},
        ]
        pending = result.session_patch.pending_disambiguation
        assert pending.ids == ["sofa-1", "sofa-2"]
        assert pending.action == "tool_echo"

    async def test_assistant_error_becomes_structured_failure(self, resolver):
        resolver.resolve_many.side_effect = NotFoundError("item", "999")

        result = await _dispatcher(resolver, _tool(_echo)).dispatch(
            _call("tool_echo", {"item_ids": ["999"]}), SCOPE, _session()
        )

        assert result.output == {
            "ok": False,
            "error": {
                "code": "not_found",
                "message": "No item matching '999' was found",
                "details": {"entity_type": "item", "reference": "999"},
            },
        }

    async def test_unexpected_error_is_reported_generically(self, resolver):
        async def broken(ctx, item_ids, note=None):
            raise KeyError("boom")

        result = await _dispatcher(resolver, _tool(broken)).dispatch(
            _call("tool_echo", {"item_ids": ["1"]}), SCOPE, _session()
        )

        assert result.is_error
        assert result.output["error"]["code"] == "internal_error"
        assert "boom" not in result.to_message_content()

    @pytest.mark.parametrize(
        "error", [PersistenceError("db down"), ScopeViolationError("search_items")]
    )
    async def test_fatal_errors_propagate(self, resolver, error):
        async def failing(ctx, item_ids, note=None):
            raise error

        with pytest.raises(type(error)):
            await _dispatcher(resolver, _tool(failing)).dispatch(
                _call("tool_echo", {"item_ids": ["1"]}), SCOPE, _session()
            )

    async def test_drafts_are_recorded_for_the_rest_of_the_turn(self, resolver):
        async def propose(ctx, item_ids, note=None):
            return ToolResult.ok(draft_id="draft-1")

        async def inspect(ctx, item_ids, note=None):
            return ToolResult.ok(seen=sorted(ctx.turn_draft_ids))

        proposing = _tool(propose, name="tool_propose")
        proposing.permission = "draft"
        dispatcher = _dispatcher(resolver, proposing, _tool(inspect, name="tool_inspect"))
        session = _session()
        turn_draft_ids: set[str] = set()

        await dispatcher.dispatch(
            _call("tool_propose", {"item_ids": ["1"]}), SCOPE, session, 0, turn_draft_ids
        )
        result = await dispatcher.dispatch(
            _call("tool_inspect", {"item_ids": ["1"]}), SCOPE, session, 1, turn_draft_ids
        )

        assert turn_draft_ids == {"draft-1"}
        assert result.output["seen"] == ["draft-1"]

    async def test_read_tools_do_not_record_drafts(self, resolver):
        async def lookup(ctx, item_ids, note=None):
            return ToolResult.ok(draft_id="draft-1")

        turn_draft_ids: set[str] = set()
        await _dispatcher(resolver, _tool(lookup)).dispatch(
            _call("tool_echo", {"item_ids": ["1"]}), SCOPE, _session(), 0, turn_draft_ids
        )

        assert turn_draft_ids == set()

    async def test_submit_refuses_a_draft_from_the_same_turn(self, resolver):
        drafts = Mock()
        drafts.submit_draft = AsyncMock()
        dispatcher = ToolDispatcher(
            tools=get_registered_tools(),
            resolver=resolver,
            disambiguation=DisambiguationManager(),
            drafts=drafts,
            warehouse=Mock(),
        )

        result = await dispatcher.dispatch(
            _call("tool_submit_draft", {"draft_id": "draft-1"}),
            SCOPE,
            _session(),
            1,
            {"draft-1"},
        )

        assert result.output["error"]["code"] == "confirmation_required"
        drafts.submit_draft.assert_not_called()
