from warehouse_assistant.infrastructure.agent.core.llm_stream import LLMStream, ToolCallChunk
from warehouse_assistant.infrastructure.agent.core.orchestration_loop import (
    FALLBACK_ANSWER,
    LoopConfig,
    LoopState,
    OrchestrationEvent,
    OrchestrationEventType,
    OrchestrationLoop,
    ToolExecutorProtocol,
)
from warehouse_assistant.infrastructure.agent.core.turn_runner import (
    AssistantTurnRunner,
    SessionBoundExecutor,
    TurnRequest,
)

__all__ = [
    "FALLBACK_ANSWER",
    "AssistantTurnRunner",
    "LLMStream",
    "LoopConfig",
    "LoopState",
    "OrchestrationEvent",
    "OrchestrationEventType",
    "OrchestrationLoop",
    "SessionBoundExecutor",
    "ToolCallChunk",
    "ToolExecutorProtocol",
    "TurnRequest",
]
