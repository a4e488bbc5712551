"""
Assistant Turn Runner.

Handles one inbound chat message end to end:

1. Load or start the scope's session (the UI context is recorded on it)
2. Build the conversation: system prompt with session annotations, the
   trailing window of history, and the new user message
3. Run the orchestration loop with an executor bound to the live session,
   so each tool's patch is persisted before the next tool runs
4. Persist the session (slides the expiry) before reporting completion
"""

import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from warehouse_assistant.application.services import SessionStore
from warehouse_assistant.domain.model.assistant import AssistantSession, Scope, UIContext
from warehouse_assistant.domain.ports.services import CompletionServicePort, RequestedToolCall
from warehouse_assistant.infrastructure.agent.core.orchestration_loop import (
    LoopConfig,
    OrchestrationEvent,
    OrchestrationEventType,
    OrchestrationLoop,
)
from warehouse_assistant.infrastructure.agent.prompts import PromptContext, build_system_prompt
from warehouse_assistant.infrastructure.agent.tools.dispatcher import ToolDispatcher
from warehouse_assistant.infrastructure.agent.tools.result import ToolResult

logger = logging.getLogger(__name__)

_HISTORY_ROLES = {"user", "assistant"}


@dataclass
class TurnRequest:
    message: str
    history: list[dict[str, Any]] = field(default_factory=list)
    ui_context: UIContext = field(default_factory=UIContext)


class SessionBoundExecutor:
    """Dispatches tool calls against the current session and persists their patches."""

    def __init__(
        self,
        dispatcher: ToolDispatcher,
        store: SessionStore,
        scope: Scope,
        session: AssistantSession,
    ) -> None:
        self._dispatcher = dispatcher
        self._store = store
        self._scope = scope
        self.session = session
        self.turn_draft_ids: set[str] = set()

    async def execute(self, call: RequestedToolCall, round_index: int) -> ToolResult:
        result = await self._dispatcher.dispatch(
            call, self._scope, self.session, round_index, self.turn_draft_ids
        )
        if not result.session_patch.is_empty:
            self.session = await self._store.patch(self.session, result.session_patch)
            logger.debug(
                "Session %s patched by %s (%s)",
                self.session.id,
                call.name,
                ", ".join(sorted(result.session_patch.changes())),
            )
        return result


class AssistantTurnRunner:
    def __init__(
        self,
        session_store: SessionStore,
        dispatcher: ToolDispatcher,
        completion: CompletionServicePort,
        loop_config: LoopConfig | None = None,
        history_window: int = 10,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = session_store
        self._dispatcher = dispatcher
        self._completion = completion
        self._loop_config = loop_config or LoopConfig()
        self._history_window = history_window
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def build_messages(
        self, session: AssistantSession, request: TurnRequest, now: datetime
    ) -> list[dict[str, Any]]:
        # A request without UI context falls back to what the session last saw.
        ui_context = request.ui_context
        prompt = build_system_prompt(
            PromptContext(
                today=now.date(),
                pending_disambiguation=session.pending_disambiguation,
                pending_draft=session.pending_draft,
                selected_item_ids=list(ui_context.selected_item_ids)
                or list(session.last_selected_items),
                route=ui_context.route or session.last_route,
            )
        )
        history = [
            {"role": m["role"], "content": str(m.get("content") or "")}
            for m in request.history
            if isinstance(m, dict) and m.get("role") in _HISTORY_ROLES
        ]
        if self._history_window > 0:
            history = history[-self._history_window :]
        else:
            history = []
        return [
            {"role": "system", "content": prompt},
            *history,
            {"role": "user", "content": request.message},
        ]

    async def run(self, scope: Scope, request: TurnRequest) -> AsyncIterator[OrchestrationEvent]:
        now = self._clock()
        session = await self._store.get_or_create(scope, request.ui_context, now)
        logger.info("Turn started for session %s (user %s)", session.id, scope.user_id)

        executor = SessionBoundExecutor(self._dispatcher, self._store, scope, session)
        loop = OrchestrationLoop(
            self._completion, executor, self._dispatcher.schemas(), self._loop_config
        )

        async for event in loop.run(self.build_messages(session, request, now)):
            if event.type == OrchestrationEventType.DONE:
                await self._store.save(executor.session)
                event.data["session_id"] = executor.session.id
            yield event
