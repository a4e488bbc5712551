"""Unit tests for LLMStream chunk assembly."""

from types import SimpleNamespace

import pytest

from warehouse_assistant.domain.ports.services import CompletionEventType
from warehouse_assistant.infrastructure.agent.core import LLMStream


def _chunk(content=None, tool_calls=None, finish_reason=None, usage=None):
    choices = []
    if content is not None or tool_calls is not None or finish_reason is not None:
        choices = [
            SimpleNamespace(
                delta=SimpleNamespace(content=content, tool_calls=tool_calls),
                finish_reason=finish_reason,
            )
        ]
    return SimpleNamespace(choices=choices, usage=usage)


def _tool_delta(index, arguments=None, name=None, call_id=None):
    return SimpleNamespace(
        index=index,
        id=call_id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


async def _collect(chunks):
    async def source():
        for chunk in chunks:
            yield chunk

    return [event async for event in LLMStream().events(source())]


@pytest.mark.unit
class TestLLMStream:
    async def test_text_deltas_stream_in_order(self):
        events = await _collect([_chunk("Hel"), _chunk("lo"), _chunk(finish_reason="stop")])

        deltas = [e.data["delta"] for e in events if e.type == CompletionEventType.TEXT_DELTA]
        assert deltas == ["Hel", "lo"]
        assert events[-1].type == CompletionEventType.FINISH
        assert events[-1].data == {"reason": "stop"}

    async def test_fragmented_tool_call_is_assembled(self):
        events = await _collect(
            [
                _chunk(tool_calls=[_tool_delta(0, '{"que', "tool_search_items", "call_1")]),
                _chunk(tool_calls=[_tool_delta(0, 'ry": "jones ')]),
                _chunk(tool_calls=[_tool_delta(0, 'sofa"}')]),
                _chunk(finish_reason="tool_calls"),
            ]
        )

        calls = [e.tool_call for e in events if e.type == CompletionEventType.TOOL_CALL]
        assert len(calls) == 1
        assert calls[0].id == "call_1"
        assert calls[0].name == "tool_search_items"
        assert calls[0].arguments == {"query": "jones sofa"}
        assert calls[0].raw_arguments == '{"query": "jones sofa"}'

    async def test_parallel_tool_calls_keep_index_order(self):
        events = await _collect(
            [
                _chunk(tool_calls=[_tool_delta(1, "{}", "tool_search_shipments", "call_b")]),
                _chunk(
                    tool_calls=[_tool_delta(0, '{"query": "1"}', "tool_search_items", "call_a")]
                ),
            ]
        )

        calls = [e.tool_call for e in events if e.type == CompletionEventType.TOOL_CALL]
        assert [c.id for c in calls] == ["call_a", "call_b"]

    async def test_nameless_tool_call_is_dropped(self):
        events = await _collect([_chunk(tool_calls=[_tool_delta(0, "{}", None, "call_x")])])
        assert not [e for e in events if e.type == CompletionEventType.TOOL_CALL]

    async def test_usage_precedes_finish(self):
        usage = SimpleNamespace(prompt_tokens=120, completion_tokens=8)
        events = await _collect([_chunk("ok"), _chunk(usage=usage)])

        assert [e.type for e in events] == [
            CompletionEventType.TEXT_DELTA,
            CompletionEventType.USAGE,
            CompletionEventType.FINISH,
        ]
        assert events[1].data == {"input_tokens": 120, "output_tokens": 8}

    async def test_raw_newlines_in_arguments_are_repaired(self):
        events = await _collect(
            [_chunk(tool_calls=[_tool_delta(0, '{"notes": "torn\nleg"}', "tool_x", "c")])]
        )
        assert events[0].tool_call.arguments == {"notes": "torn\nleg"}

    async def test_double_encoded_arguments_are_repaired(self):
        raw = '"{\\"query\\": \\"12345\\"}"'
        events = await _collect([_chunk(tool_calls=[_tool_delta(0, raw, "tool_x", "c")])])
        assert events[0].tool_call.arguments == {"query": "12345"}

    async def test_truncated_arguments_are_flagged(self):
        events = await _collect(
            [
                _chunk(tool_calls=[_tool_delta(0, '{"query": "123', "tool_x", "c")]),
                _chunk(finish_reason="length"),
            ]
        )
        assert events[0].tool_call.arguments == {"_error": "truncated", "_raw": '{"query": "123'}

    async def test_empty_arguments_parse_to_empty_dict(self):
        events = await _collect([_chunk(tool_calls=[_tool_delta(0, None, "tool_x", "c")])])
        assert events[0].tool_call.arguments == {}
