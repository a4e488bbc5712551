"""Unit tests for the LiteLLM completion client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from warehouse_assistant.configuration.config import Settings
from warehouse_assistant.domain.exceptions import (
    PaymentRequiredError,
    RateLimitedError,
    UpstreamError,
)
from warehouse_assistant.domain.ports.services import CompletionEventType
from warehouse_assistant.infrastructure.llm import (
    LiteLLMCompletionClient,
    litellm_client,
    map_provider_error,
)


class ProviderFailure(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _response(*chunks):
    async def source():
        for chunk in chunks:
            yield chunk

    return source()


def _text_chunk(content):
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                delta=SimpleNamespace(content=content, tool_calls=None), finish_reason=None
            )
        ],
        usage=None,
    )


@pytest.mark.unit
class TestMapProviderError:
    def test_status_429_is_rate_limited(self):
        assert isinstance(map_provider_error(ProviderFailure("slow down", 429)), RateLimitedError)

    def test_status_402_is_payment_required(self):
        assert isinstance(map_provider_error(ProviderFailure("nope", 402)), PaymentRequiredError)

    def test_insufficient_quota_is_payment_required(self):
        error = map_provider_error(ProviderFailure("Error: insufficient_quota for this key"))
        assert isinstance(error, PaymentRequiredError)
        assert error.status_code == 402

    def test_rate_limit_message_without_status(self):
        assert isinstance(
            map_provider_error(ProviderFailure("Rate limit reached for requests")), RateLimitedError
        )

    def test_anything_else_is_upstream(self):
        error = map_provider_error(ProviderFailure("connection reset", 500))
        assert type(error) is UpstreamError
        assert error.status_code == 502
        assert error.details == {"provider_error": "ProviderFailure"}


@pytest.mark.unit
class TestLiteLLMCompletionClient:
    def test_from_settings(self):
        settings = Settings(LLM_MODEL="openai/gpt-4o-mini", LLM_TEMPERATURE=0.0, LLM_MAX_RETRIES=3)
        client = LiteLLMCompletionClient.from_settings(settings)
        assert client.model == "openai/gpt-4o-mini"
        assert client.temperature == 0.0
        assert client.max_retries == 3

    async def test_stream_requests_streaming_with_tools(self, monkeypatch):
        acompletion = AsyncMock(return_value=_response(_text_chunk("Hi")))
        monkeypatch.setattr(litellm_client.litellm, "acompletion", acompletion)
        client = LiteLLMCompletionClient(model="openai/gpt-4o-mini", api_key="sk-test")
        tools = [{"type": "function", "function": {"name": "tool_x", "parameters": {}}}]

        messages = [{"role": "user", "content": "hi"}]

        events = [e async for e in client.stream(messages, tools, "none")]

        kwargs = acompletion.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["stream_options"] == {"include_usage": True}
        assert kwargs["tools"] == tools
        assert kwargs["tool_choice"] == "none"
        assert kwargs["api_key"] == "sk-test"
        assert [e.type for e in events] == [
            CompletionEventType.TEXT_DELTA,
            CompletionEventType.FINISH,
        ]

    async def test_no_tools_means_no_tool_choice(self, monkeypatch):
        acompletion = AsyncMock(return_value=_response())
        monkeypatch.setattr(litellm_client.litellm, "acompletion", acompletion)

        _ = [e async for e in LiteLLMCompletionClient(model="m").stream([], [])]

        assert "tools" not in acompletion.call_args.kwargs
        assert "tool_choice" not in acompletion.call_args.kwargs

    async def test_provider_errors_are_mapped(self, monkeypatch):
        acompletion = AsyncMock(side_effect=ProviderFailure("Too Many Requests", 429))
        monkeypatch.setattr(litellm_client.litellm, "acompletion", acompletion)

        with pytest.raises(RateLimitedError):
            _ = [e async for e in LiteLLMCompletionClient(model="m").stream([], [])]
