"""
Client assistant chat endpoint.

``POST /api/v1/assistant/chat`` runs one turn and streams the answer as
OpenAI-style server-sent events::

    data: {"choices": [{"delta": {"content": "..."}}]}

    data: [DONE]

The turn is started before the response is returned, and held until the
first completion request has answered, so a rate limit, exhausted credit or
provider outage becomes a proper JSON error (429 / 402 / 502) rather than a
broken stream. Failures after streaming began are sent as one error frame
followed by ``[DONE]``.

With ``"stream": false`` the endpoint returns
``{"content": ..., "session_id": ..., "rounds": n}`` instead.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from warehouse_assistant.configuration.config import Settings
from warehouse_assistant.domain.model.assistant import UIContext
from warehouse_assistant.domain.ports.services import CompletionServicePort
from warehouse_assistant.infrastructure.adapters.primary.web.dependencies import (
    build_scope_resolver,
    build_turn_runner,
    get_api_key_from_header,
    get_app_settings,
    get_completion_client,
    get_session_factory,
)
from warehouse_assistant.infrastructure.adapters.primary.web.middleware import error_for
from warehouse_assistant.infrastructure.agent.core import (
    OrchestrationEvent,
    OrchestrationEventType,
    TurnRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/assistant", tags=["assistant"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Events that only exist once the first completion request has answered.
_ANSWERED = {
    OrchestrationEventType.TEXT_DELTA,
    OrchestrationEventType.TOOL_STARTED,
    OrchestrationEventType.TOOL_FINISHED,
    OrchestrationEventType.DONE,
}


class HistoryMessage(BaseModel):
    role: str
    content: str = ""


class UIContextPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    route: Optional[str] = None
    selected_item_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selected_item_ids", "selectedItemIds"),
    )


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    tenant_id: str = Field(alias="tenantId", min_length=1)
    account_id: str = Field(alias="accountId", min_length=1)
    sub_account_id: Optional[str] = Field(default=None, alias="subaccountId")
    ui_context: UIContextPayload = Field(default_factory=UIContextPayload, alias="uiContext")
    conversation_history: list[HistoryMessage] = Field(
        default_factory=list, alias="conversationHistory"
    )
    stream: bool = True

    def to_turn_request(self) -> TurnRequest:
        return TurnRequest(
            message=self.message,
            history=[m.model_dump() for m in self.conversation_history],
            ui_context=UIContext(
                route=self.ui_context.route,
                selected_item_ids=tuple(self.ui_context.selected_item_ids),
            ),
        )


def sse_frame(payload: Any) -> str:
    if isinstance(payload, str):
        return f"data: {payload}\n\n"
    return f"data: {json.dumps(payload)}\n\n"


def _content_frame(event: OrchestrationEvent) -> Optional[str]:
    if event.type != OrchestrationEventType.TEXT_DELTA:
        return None
    return sse_frame({"choices": [{"delta": {"content": event.data["delta"]}}]})


async def _stream_frames(
    buffered: list[OrchestrationEvent],
    events: AsyncIterator[OrchestrationEvent],
    db: AsyncSession,
) -> AsyncIterator[str]:
    try:
        for event in buffered:
            frame = _content_frame(event)
            if frame:
                yield frame
        async for event in events:
            frame = _content_frame(event)
            if frame:
                yield frame
    except Exception as e:
        error = error_for(e)
        if error.status_code >= 500:
            logger.exception("Turn failed mid-stream - error_id=%s", error.error_id)
        else:
            logger.warning("Turn failed mid-stream: %s - error_id=%s", e, error.error_id)
        yield sse_frame(error.to_dict())
    finally:
        await events.aclose()
        await db.close()
    yield sse_frame("[DONE]")


@router.post("/chat")
async def chat(
    body: ChatRequest,
    api_key: Optional[str] = Depends(get_api_key_from_header),
    settings: Settings = Depends(get_app_settings),
    completion: CompletionServicePort = Depends(get_completion_client),
    session_factory: Any = Depends(get_session_factory),
):
    """Run one assistant turn for the caller's tenant and account."""
    db: AsyncSession = session_factory()
    try:
        scope = await build_scope_resolver(db, settings).resolve(
            api_key, body.tenant_id, body.account_id, body.sub_account_id
        )
        events = build_turn_runner(db, settings, completion).run(scope, body.to_turn_request())

        if not body.stream:
            done: dict[str, Any] = {}
            try:
                async for event in events:
                    if event.type == OrchestrationEventType.DONE:
                        done = event.data
            finally:
                await events.aclose()
            await db.close()
            return JSONResponse(
                {
                    "content": done.get("content", ""),
                    "session_id": done.get("session_id"),
                    "rounds": done.get("rounds", 0),
                }
            )

        buffered: list[OrchestrationEvent] = []
        async for event in events:
            buffered.append(event)
            if event.type in _ANSWERED:
                break
    except Exception:
        await db.close()
        raise

    return StreamingResponse(
        _stream_frames(buffered, events, db),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
