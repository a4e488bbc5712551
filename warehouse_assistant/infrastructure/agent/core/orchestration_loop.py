"""
Orchestration Loop - bounded tool-calling state machine for one turn.

States::

    REQUESTING --(no tool calls)--> DONE
    REQUESTING --(tool calls)--> EXECUTING --> REQUESTING ...
    EXECUTING --(round cap reached)--> DRAINING --> DONE

Each REQUESTING round sends the whole conversation plus the tool schemas with
``tool_choice="auto"``. Tool calls of a round run one after another, never
concurrently: a later call may depend on session state an earlier call just
changed. After ``max_rounds`` tool rounds a single DRAINING request is made
with ``tool_choice="none"``; whatever it returns is the answer, and any tool
call it still requests is ignored. The loop therefore always terminates after
at most ``max_rounds + 1`` completion requests.

Completion-service and persistence errors are not caught here; they end the
turn and are mapped by the web layer.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from warehouse_assistant.domain.ports.services import (
    CompletionEventType,
    CompletionServicePort,
    RequestedToolCall,
)
from warehouse_assistant.infrastructure.agent.tools.result import ToolResult

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = "I'm not sure how to help with that."


# ============================================================================
# Protocol Definitions
# ============================================================================


class ToolExecutorProtocol(Protocol):
    """Runs one tool call against the live session and applies its patch."""

    async def execute(self, call: RequestedToolCall, round_index: int) -> ToolResult: ...


# ============================================================================
# Data Classes
# ============================================================================


class LoopState(str, Enum):
    REQUESTING = "requesting"
    EXECUTING = "executing"
    DRAINING = "draining"
    DONE = "done"


class OrchestrationEventType(str, Enum):
    STATE = "state"
    TEXT_DELTA = "text_delta"
    TOOL_STARTED = "tool_started"
    TOOL_FINISHED = "tool_finished"
    USAGE = "usage"
    DONE = "done"


@dataclass
class OrchestrationEvent:
    type: OrchestrationEventType
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def state(cls, state: LoopState, round_index: int) -> "OrchestrationEvent":
        return cls(OrchestrationEventType.STATE, {"state": state.value, "round": round_index})

    @classmethod
    def text(cls, delta: str) -> "OrchestrationEvent":
        return cls(OrchestrationEventType.TEXT_DELTA, {"delta": delta})


@dataclass
class LoopConfig:
    """Configuration for the orchestration loop."""

    max_rounds: int = 6
    max_calls_per_round: int = 8
    fallback_answer: str = FALLBACK_ANSWER

    def __post_init__(self) -> None:
        if self.max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        if self.max_calls_per_round < 1:
            raise ValueError("max_calls_per_round must be at least 1")


@dataclass
class _RoundResponse:
    text: str = ""
    tool_calls: list[RequestedToolCall] = field(default_factory=list)


# ============================================================================
# Loop
# ============================================================================


class OrchestrationLoop:
    """
    Drives the completion service and the tool executor for one turn.

    Usage:
        loop = OrchestrationLoop(completion, executor, tool_schemas, LoopConfig())
        async for event in loop.run(messages):
            if event.type == OrchestrationEventType.TEXT_DELTA:
                ...

    ``messages`` is extended in place with the assistant tool-call messages
    and the tool results of every executed round.
    """

    def __init__(
        self,
        completion: CompletionServicePort,
        executor: ToolExecutorProtocol,
        tools: list[dict[str, Any]],
        config: LoopConfig | None = None,
    ) -> None:
        self._completion = completion
        self._executor = executor
        self._tools = tools
        self._config = config or LoopConfig()
        self.state = LoopState.REQUESTING

    async def run(self, messages: list[dict[str, Any]]) -> AsyncIterator[OrchestrationEvent]:
        transcript: list[str] = []
        tool_calls_executed = 0
        rounds = 0
        final_text = ""
        drained = False

        while True:
            if rounds >= self._config.max_rounds:
                self.state = LoopState.DRAINING
                drained = True
                yield OrchestrationEvent.state(self.state, rounds + 1)
                logger.info("Round cap of %d reached; draining", self._config.max_rounds)
            else:
                self.state = LoopState.REQUESTING
                rounds += 1
                yield OrchestrationEvent.state(self.state, rounds)

            response = _RoundResponse()
            tool_choice = "none" if drained else "auto"
            async for event in self._completion.stream(messages, self._tools, tool_choice):
                if event.type == CompletionEventType.TEXT_DELTA:
                    delta = event.data.get("delta", "")
                    response.text += delta
                    transcript.append(delta)
                    yield OrchestrationEvent.text(delta)
                elif event.type == CompletionEventType.TOOL_CALL and event.tool_call:
                    response.tool_calls.append(event.tool_call)
                elif event.type == CompletionEventType.USAGE:
                    yield OrchestrationEvent(OrchestrationEventType.USAGE, dict(event.data))

            if drained or not response.tool_calls:
                if drained and response.tool_calls:
                    logger.warning(
                        "Ignoring %d tool call(s) requested while draining",
                        len(response.tool_calls),
                    )
                final_text = response.text
                break

            self.state = LoopState.EXECUTING
            yield OrchestrationEvent.state(self.state, rounds)
            messages.append(
                {
                    "role": "assistant",
                    "content": response.text or None,
                    "tool_calls": [call.to_message_format() for call in response.tool_calls],
                }
            )
            async for event in self._execute_round(messages, response.tool_calls, rounds):
                yield event
            tool_calls_executed += min(len(response.tool_calls), self._config.max_calls_per_round)

        if not final_text.strip():
            final_text = self._config.fallback_answer
            transcript.append(final_text)
            yield OrchestrationEvent.text(final_text)

        self.state = LoopState.DONE
        logger.info(
            "Turn finished after %d tool round(s), %d tool call(s), drained=%s",
            rounds,
            tool_calls_executed,
            drained,
        )
        yield OrchestrationEvent(
            OrchestrationEventType.DONE,
            {
                "content": "".join(transcript),
                "rounds": rounds,
                "tool_calls": tool_calls_executed,
                "drained": drained,
            },
        )

    async def _execute_round(
        self,
        messages: list[dict[str, Any]],
        calls: list[RequestedToolCall],
        round_index: int,
    ) -> AsyncIterator[OrchestrationEvent]:
        limit = self._config.max_calls_per_round
        for position, call in enumerate(calls):
            if position >= limit:
                result = ToolResult(
                    output={
                        "ok": False,
                        "skipped": True,
                        "error": {
                            "code": "too_many_tool_calls",
                            "message": f"Only {limit} tool calls run per round; call it again",
                        },
                    },
                    is_error=True,
                )
            else:
                yield OrchestrationEvent(
                    OrchestrationEventType.TOOL_STARTED,
                    {"name": call.name, "call_id": call.id, "round": round_index},
                )
                result = await self._executor.execute(call, round_index)

            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": call.id,
                    "name": call.name,
                    "content": result.to_message_content(),
                }
            )
            yield OrchestrationEvent(
                OrchestrationEventType.TOOL_FINISHED,
                {
                    "name": call.name,
                    "call_id": call.id,
                    "round": round_index,
                    "is_error": result.is_error,
                    "skipped": position >= limit,
                },
            )
