from warehouse_assistant.infrastructure.agent.prompts.system_prompt import (
    BASE_SYSTEM_PROMPT,
    PromptContext,
    build_system_prompt,
)

__all__ = ["BASE_SYSTEM_PROMPT", "PromptContext", "build_system_prompt"]
