from warehouse_assistant.domain.ports.services.completion_port import (
    CompletionEvent,
    CompletionEventType,
    CompletionServicePort,
    RequestedToolCall,
)

__all__ = [
    "CompletionEvent",
    "CompletionEventType",
    "CompletionServicePort",
    "RequestedToolCall",
]
