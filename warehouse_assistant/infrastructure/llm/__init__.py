from warehouse_assistant.infrastructure.llm.litellm_client import (
    LiteLLMCompletionClient,
    map_provider_error,
)

__all__ = ["LiteLLMCompletionClient", "map_provider_error"]
