"""
LiteLLM completion client.

Implements CompletionServicePort on top of ``litellm.acompletion`` with
streaming. Provider failures are mapped to the assistant's upstream error
family so the web layer can answer with the right status code.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any, Optional

import litellm

from warehouse_assistant.configuration.config import Settings
from warehouse_assistant.domain.exceptions import (
    AssistantError,
    PaymentRequiredError,
    RateLimitedError,
    UpstreamError,
)
from warehouse_assistant.domain.ports.services import CompletionEvent, CompletionServicePort
from warehouse_assistant.infrastructure.agent.core.llm_stream import LLMStream

logger = logging.getLogger(__name__)

_RATE_LIMIT_MARKERS = ("rate limit", "ratelimit", "quota", "throttl", "429", "too many requests")
_PAYMENT_MARKERS = ("402", "payment", "insufficient credit", "insufficient_quota", "billing")

_BUSY = "The assistant is busy right now. Please try again shortly."
_UNPAID = "The assistant is unavailable until the AI provider account is topped up."


def map_provider_error(error: Exception) -> AssistantError:
    """Classify a provider exception as rate limited, payment required or upstream."""
    status = getattr(error, "status_code", None)
    message = str(error).lower()
    if isinstance(error, litellm.exceptions.RateLimitError) or status == 429:
        return RateLimitedError(_BUSY)
    if status == 402 or any(marker in message for marker in _PAYMENT_MARKERS):
        return PaymentRequiredError(_UNPAID)
    if any(marker in message for marker in _RATE_LIMIT_MARKERS):
        return RateLimitedError(_BUSY)
    return UpstreamError(
        "The assistant could not reach the AI provider.",
        details={"provider_error": type(error).__name__},
    )


class LiteLLMCompletionClient(CompletionServicePort):
    """
    Streams chat completions through LiteLLM.

    Usage:
        client = LiteLLMCompletionClient.from_settings(get_settings())
        async for event in client.stream(messages, tools):
            ...
    """

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 2048,
        timeout: int = 60,
        max_retries: int = 1,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries

    @classmethod
    def from_settings(cls, settings: Settings) -> "LiteLLMCompletionClient":
        return cls(
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            api_base=settings.llm_api_base,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.llm_timeout,
            max_retries=settings.llm_max_retries,
        )

    def _build_completion_kwargs(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
            "num_retries": self.max_retries,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = tool_choice
        return kwargs

    async def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str = "auto",
    ) -> AsyncIterator[CompletionEvent]:
        kwargs = self._build_completion_kwargs(messages, tools, tool_choice)
        logger.debug(
            "Requesting completion: model=%s, messages=%d, tool_choice=%s",
            self.model,
            len(messages),
            tool_choice,
        )
        try:
            response = await litellm.acompletion(**kwargs)
            async for event in LLMStream().events(response):
                yield event
        except AssistantError:
            raise
        except Exception as e:
            mapped = map_provider_error(e)
            logger.error("LiteLLM streaming error (%s): %s", mapped.code, e)
            raise mapped from e
