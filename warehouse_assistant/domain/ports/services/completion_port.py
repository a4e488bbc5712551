"""
Completion service port.

The LLM is an opaque tool-calling oracle: it receives the conversation and
tool schemas and streams back text and/or tool call requests.
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class CompletionEventType(str, Enum):
    TEXT_DELTA = "text_delta"
    TOOL_CALL = "tool_call"
    USAGE = "usage"
    FINISH = "finish"


@dataclass
class RequestedToolCall:
    """A fully assembled tool call requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any]
    raw_arguments: str = ""

    def to_message_format(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.raw_arguments or "{}"},
        }


@dataclass
class CompletionEvent:
    type: CompletionEventType
    data: dict[str, Any] = field(default_factory=dict)
    tool_call: RequestedToolCall | None = None

    @classmethod
    def text_delta(cls, delta: str) -> "CompletionEvent":
        return cls(CompletionEventType.TEXT_DELTA, {"delta": delta})

    @classmethod
    def requested(cls, call: RequestedToolCall) -> "CompletionEvent":
        return cls(CompletionEventType.TOOL_CALL, tool_call=call)

    @classmethod
    def usage(cls, input_tokens: int, output_tokens: int) -> "CompletionEvent":
        return cls(
            CompletionEventType.USAGE,
            {"input_tokens": input_tokens, "output_tokens": output_tokens},
        )

    @classmethod
    def finish(cls, reason: str) -> "CompletionEvent":
        return cls(CompletionEventType.FINISH, {"reason": reason})


class CompletionServicePort(Protocol):
    """Streams one round of a chat completion.

    Raises:
        RateLimitedError: Provider throttled the request
        PaymentRequiredError: Provider account is out of credit
        UpstreamError: Any other provider failure
    """

    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str = "auto",
    ) -> AsyncIterator[CompletionEvent]: ...
