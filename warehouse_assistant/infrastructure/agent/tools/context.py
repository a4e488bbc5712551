"""Context passed to every tool execution."""

from __future__ import annotations

from dataclasses import dataclass, field

from warehouse_assistant.application.services import (
    DisambiguationManager,
    DraftWorkflowManager,
    EntityReferenceResolver,
)
from warehouse_assistant.domain.model.assistant import AssistantSession, Scope
from warehouse_assistant.domain.ports.repositories import WarehouseRepositoryPort


@dataclass
class ToolContext:
    """Identity, live session state and collaborators for one tool call.

    ``session`` is the same object the turn keeps patching, so a tool always
    sees the changes made by earlier calls in the same round.

    Attributes:
        scope: Authorization scope of the request.
        session: Current assistant session.
        resolver: Entity reference resolver.
        disambiguation: Disambiguation manager.
        drafts: Draft/confirm workflow manager.
        warehouse: Scoped warehouse reads.
        call_id: Identifier of this tool invocation.
        round_index: Orchestration round the call belongs to.
        turn_draft_ids: Drafts proposed earlier in this turn. They cannot be
            submitted until the user has answered.
    """

    scope: Scope
    session: AssistantSession
    resolver: EntityReferenceResolver
    disambiguation: DisambiguationManager
    drafts: DraftWorkflowManager
    warehouse: WarehouseRepositoryPort
    call_id: str = ""
    round_index: int = 0
    turn_draft_ids: frozenset[str] = field(default_factory=frozenset)
