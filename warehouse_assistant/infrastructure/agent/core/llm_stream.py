"""
LLM Stream - assembles LiteLLM streaming chunks into completion events.

Handles:
- Text generation (streaming deltas)
- Tool calls arriving in fragments (id and name first, then argument deltas)
- Token usage from the final chunk
- Malformed tool arguments, with the usual repair attempts

The stream object holds per-request state; create one per completion call.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass
from typing import Any, cast

from warehouse_assistant.domain.ports.services import CompletionEvent, RequestedToolCall

logger = logging.getLogger(__name__)


@dataclass
class ToolCallChunk:
    """
    Partial tool call being accumulated from stream.

    Tool calls may arrive in multiple chunks:
    - First chunk: id, name (possibly partial)
    - Subsequent chunks: argument deltas
    """

    id: str
    index: int
    name: str = ""
    arguments: str = ""


class LLMStream:
    """
    Converts raw LiteLLM chunks into :class:`CompletionEvent` objects.

    Usage:
        stream = LLMStream()
        async for event in stream.events(response):
            ...
    """

    def __init__(self) -> None:
        self._text_buffer: str = ""
        self._tool_calls: dict[int, ToolCallChunk] = {}
        self._usage: dict[str, int] | None = None
        self._finish_reason: str | None = None

    @property
    def text(self) -> str:
        return self._text_buffer

    async def events(self, chunks: AsyncIterator[Any]) -> AsyncIterator[CompletionEvent]:
        async for chunk in chunks:
            for event in self.process_chunk(chunk):
                yield event
        for event in self.finalize():
            yield event

    def process_chunk(self, chunk: Any) -> Iterator[CompletionEvent]:
        """
        Process a single streaming chunk.

        Text deltas are yielded immediately; tool calls are only accumulated
        and come out of :meth:`finalize` once their arguments are complete.
        """
        usage = getattr(chunk, "usage", None)
        if usage:
            self._usage = self._extract_usage(usage)

        choices = getattr(chunk, "choices", None) or []
        if not choices:
            return
        choice = choices[0]

        finish_reason = getattr(choice, "finish_reason", None)
        if finish_reason:
            self._finish_reason = finish_reason

        delta = getattr(choice, "delta", None)
        if delta is None:
            return

        content = getattr(delta, "content", None)
        if content:
            self._text_buffer += content
            yield CompletionEvent.text_delta(content)

        tool_calls = getattr(delta, "tool_calls", None)
        if tool_calls:
            self._accumulate_tool_calls(tool_calls)

    def finalize(self) -> Iterator[CompletionEvent]:
        for index in sorted(self._tool_calls):
            tracker = self._tool_calls[index]
            if not tracker.name:
                logger.warning("[LLMStream] Dropping tool call %s with no name", tracker.id)
                continue
            yield CompletionEvent.requested(
                RequestedToolCall(
                    id=tracker.id,
                    name=tracker.name,
                    arguments=self._parse_tool_arguments(tracker),
                    raw_arguments=tracker.arguments,
                )
            )
        if self._usage:
            yield CompletionEvent.usage(**self._usage)
        yield CompletionEvent.finish(self._finish_reason or "stop")

    def _accumulate_tool_calls(self, tool_calls: list[Any]) -> None:
        for tc in tool_calls:
            index = getattr(tc, "index", None) or 0
            if index not in self._tool_calls:
                call_id = getattr(tc, "id", None) or f"call_{uuid.uuid4().hex[:8]}"
                self._tool_calls[index] = ToolCallChunk(id=call_id, index=index)
            tracker = self._tool_calls[index]

            function = getattr(tc, "function", None)
            if function is None:
                continue
            name = getattr(function, "name", None)
            if name:
                tracker.name = name
            args_delta = getattr(function, "arguments", None)
            if args_delta:
                tracker.arguments += args_delta

    @staticmethod
    def _extract_usage(usage: Any) -> dict[str, int]:
        return {
            "input_tokens": int(getattr(usage, "prompt_tokens", 0) or 0),
            "output_tokens": int(getattr(usage, "completion_tokens", 0) or 0),
        }

    @staticmethod
    def _escape_control_chars(s: str) -> str:
        """Escape control characters in a JSON string."""
        return s.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")

    def _try_fix_control_chars(self, raw_args: str, tool_name: str) -> dict[str, Any] | None:
        try:
            result = json.loads(self._escape_control_chars(raw_args))
        except json.JSONDecodeError:
            return None
        logger.info("[LLMStream] Parsed arguments for %s after escaping control chars", tool_name)
        return cast(dict[str, Any], result) if isinstance(result, dict) else None

    @staticmethod
    def _try_fix_double_encoded(raw_args: str, tool_name: str) -> dict[str, Any] | None:
        if not (raw_args.startswith('"') and raw_args.endswith('"')):
            return None
        inner = raw_args[1:-1].replace('\\"', '"').replace("\\\\", "\\")
        try:
            result = json.loads(inner)
        except json.JSONDecodeError:
            return None
        logger.info("[LLMStream] Parsed double-encoded arguments for %s", tool_name)
        return cast(dict[str, Any], result) if isinstance(result, dict) else None

    def _build_truncation_fallback(
        self, raw_args: str, error_str: str, tool_name: str
    ) -> dict[str, Any]:
        is_truncated = self._finish_reason == "length" or (
            ("Unterminated string" in error_str or "Expecting" in error_str)
            and not raw_args.rstrip().endswith("}")
        )
        if is_truncated:
            logger.error(
                "[LLMStream] Tool arguments truncated for %s (finish_reason=%s)",
                tool_name,
                self._finish_reason,
            )
            return {"_error": "truncated", "_raw": raw_args}
        logger.warning("[LLMStream] Could not parse tool arguments for %s", tool_name)
        return {"_raw": raw_args}

    def _parse_tool_arguments(self, tracker: ToolCallChunk) -> dict[str, Any]:
        """Parse tool call arguments with error recovery."""
        if not tracker.arguments.strip():
            return {}
        raw_args = tracker.arguments
        try:
            parsed = json.loads(raw_args)
            if isinstance(parsed, dict):
                return cast(dict[str, Any], parsed)
            error_str = f"expected an object, got {type(parsed).__name__}"
        except json.JSONDecodeError as e:
            error_str = str(e)
            logger.warning("Failed to parse tool arguments for %s: %s", tracker.name, e)

        fixed = self._try_fix_control_chars(raw_args, tracker.name)
        if fixed is not None:
            return fixed
        fixed = self._try_fix_double_encoded(raw_args, tracker.name)
        if fixed is not None:
            return fixed
        return self._build_truncation_fallback(raw_args, error_str, tracker.name)
