"""
FastAPI dependencies and per-request wiring.

Every repository serving one request shares the request's AsyncSession, and
so its unit of work.
"""

from datetime import timedelta
from typing import Any

from fastapi import Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from warehouse_assistant.application.services import (
    DisambiguationManager,
    DraftWorkflowManager,
    EntityReferenceResolver,
    ScopeResolver,
    SessionStore,
)
from warehouse_assistant.configuration.config import Settings
from warehouse_assistant.domain.ports.services import CompletionServicePort
from warehouse_assistant.infrastructure.adapters.secondary.persistence.sql_assistant_session_repository import (
    SqlAssistantSessionRepository,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.sql_draft_repository import (
    SqlDraftRepository,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.sql_membership_repository import (
    SqlMembershipRepository,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.sql_warehouse_repository import (
    SqlWarehouseRepository,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.unit_of_work import (
    SqlUnitOfWork,
)
from warehouse_assistant.infrastructure.agent.core import AssistantTurnRunner, LoopConfig
from warehouse_assistant.infrastructure.agent.tools import ToolDispatcher, get_registered_tools


async def get_api_key_from_header(authorization: str | None = Header(None)) -> str | None:
    """Extract the API key from the Authorization header.

    Validation happens in ScopeResolver so that every credential failure has
    the same error shape.
    """
    if not authorization:
        return None
    if authorization.startswith("Bearer "):
        return authorization[7:].strip()
    if authorization.startswith("Token "):
        return authorization[6:].strip()
    return authorization.strip()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_completion_client(request: Request) -> CompletionServicePort:
    return request.app.state.completion_client


def get_session_factory(request: Request) -> Any:
    return request.app.state.session_factory


def build_scope_resolver(db: AsyncSession, settings: Settings) -> ScopeResolver:
    return ScopeResolver(SqlMembershipRepository(db), api_key_prefix=settings.api_key_prefix)


def build_turn_runner(
    db: AsyncSession,
    settings: Settings,
    completion: CompletionServicePort,
) -> AssistantTurnRunner:
    uow = SqlUnitOfWork(db)
    warehouse = SqlWarehouseRepository(db)
    dispatcher = ToolDispatcher(
        tools=get_registered_tools(),
        resolver=EntityReferenceResolver(warehouse, search_limit=settings.assistant_search_limit),
        disambiguation=DisambiguationManager(
            max_candidates=settings.assistant_disambiguation_max_candidates
        ),
        drafts=DraftWorkflowManager(warehouse, SqlDraftRepository(db), uow),
        warehouse=warehouse,
    )
    store = SessionStore(
        SqlAssistantSessionRepository(db),
        uow,
        ttl=timedelta(seconds=settings.assistant_session_ttl_seconds),
    )
    return AssistantTurnRunner(
        session_store=store,
        dispatcher=dispatcher,
        completion=completion,
        loop_config=LoopConfig(
            max_rounds=settings.assistant_max_tool_rounds,
            max_calls_per_round=settings.assistant_max_tool_calls_per_round,
        ),
        history_window=settings.assistant_history_window,
    )
