"""Structured result type for tool execution."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from warehouse_assistant.domain.exceptions import AssistantError
from warehouse_assistant.domain.model.assistant import SessionPatch


@dataclass
class ToolResult:
    """Result of one tool call.

    Attributes:
        output: JSON-serializable payload fed back to the model.
        session_patch: Session changes to apply before the next call.
        is_error: Whether this result represents a failure.
        title: Short title for logs.
    """

    output: dict[str, Any]
    session_patch: SessionPatch = field(default_factory=SessionPatch)
    is_error: bool = False
    title: str | None = None

    @classmethod
    def ok(cls, session_patch: SessionPatch | None = None, **output: Any) -> ToolResult:
        return cls(output={"ok": True, **output}, session_patch=session_patch or SessionPatch())

    @classmethod
    def failure(cls, error: AssistantError, **extra: Any) -> ToolResult:
        return cls(output={"ok": False, "error": error.to_dict(), **extra}, is_error=True)

    @classmethod
    def selection(cls, patch: SessionPatch, query: str) -> ToolResult:
        """Hand the choice between several matches back to the user."""
        pending = patch.pending_disambiguation
        return cls(
            output={
                "ok": False,
                "multiple_matches": True,
                "count": len(pending.candidates),
                "items": [{"index": c.index, "label": c.label} for c in pending.candidates],
                "message": (
                    f"Several records match '{query}'. Show this numbered list to the user "
                    "and ask which one they mean. Do not pick one yourself."
                ),
            },
            session_patch=patch,
        )

    @classmethod
    def internal_error(cls) -> ToolResult:
        return cls(
            output={
                "ok": False,
                "error": {
                    "code": "internal_error",
                    "message": "Something went wrong while looking that up. Please try again.",
                },
            },
            is_error=True,
        )

    def to_message_content(self) -> str:
        return json.dumps(self.output, default=str)
