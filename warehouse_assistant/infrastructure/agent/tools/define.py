"""Declarative tool definition via the @tool_define decorator.

Each tool declares a pydantic parameter model. The model's JSON schema is
what the completion service sees, and the same model validates the raw
arguments before the handler runs. Fields that name an entity are listed in
``entity_fields`` so the dispatcher can resolve them to canonical ids first.

Usage::

    class GetItemStatusParams(ToolParams):
        item_id: str = Field(description="Item code, number or id")

    @tool_define(
        name="tool_get_item_status",
        description="Get the current status of one item.",
        params_model=GetItemStatusParams,
        entity_fields={"item_id": CandidateKind.ITEMS},
        permission="read",
    )
    async def get_item_status(ctx: ToolContext, item_id: str) -> ToolResult:
        ...

After decoration, ``get_item_status`` is a :class:`ToolInfo` instance (not
the original function); the coroutine is kept in ``ToolInfo.execute``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict

from warehouse_assistant.domain.model.assistant import CandidateKind


class ToolParams(BaseModel):
    """Base for per-tool parameter models."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


@dataclass
class ToolInfo:
    """Metadata container for a tool definition.

    Attributes:
        name: Unique tool name (used in LLM tool calls).
        description: Human-readable description for the LLM.
        params_model: Pydantic model validating the arguments.
        execute: The actual async callable.
        entity_fields: Argument names that reference entities, by kind.
        permission: "read", "state", "draft" or "mutate". The dispatcher
            records the drafts made by "draft" tools so a "mutate" tool can
            refuse to confirm them in the same turn.
    """

    name: str
    description: str
    params_model: type[ToolParams]
    execute: Callable[..., Awaitable[Any]]
    entity_fields: dict[str, CandidateKind] = field(default_factory=dict)
    permission: str = "read"

    @property
    def parameters(self) -> dict[str, Any]:
        return _clean_schema(self.params_model.model_json_schema())


_TOOL_REGISTRY: dict[str, ToolInfo] = {}


def get_registered_tools() -> dict[str, ToolInfo]:
    """Return all tools registered via ``@tool_define``."""
    return dict(_TOOL_REGISTRY)


def tool_define(
    name: str,
    description: str,
    params_model: type[ToolParams],
    *,
    entity_fields: dict[str, CandidateKind] | None = None,
    permission: str = "read",
) -> Callable[[Callable[..., Awaitable[Any]]], ToolInfo]:
    """Decorator factory that converts an async function into a :class:`ToolInfo`.

    The tool is also registered in the module-level registry.
    """

    def decorator(fn: Callable[..., Awaitable[Any]]) -> ToolInfo:
        info = ToolInfo(
            name=name,
            description=description,
            params_model=params_model,
            execute=fn,
            entity_fields=dict(entity_fields or {}),
            permission=permission,
        )
        _TOOL_REGISTRY[name] = info
        return info

    return decorator


def tool_info_to_openai_format(info: ToolInfo) -> dict[str, Any]:
    """Convert a :class:`ToolInfo` to the OpenAI function-calling schema."""
    return {
        "type": "function",
        "function": {
            "name": info.name,
            "description": info.description,
            "parameters": info.parameters,
        },
    }


def _clean_schema(schema: Any) -> Any:
    # Providers reject or ignore pydantic's "title" keys; drop them recursively.
    if isinstance(schema, dict):
        return {k: _clean_schema(v) for k, v in schema.items() if k != "title"}
    if isinstance(schema, list):
        return [_clean_schema(v) for v in schema]
    return schema
