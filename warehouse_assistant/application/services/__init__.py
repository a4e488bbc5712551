from warehouse_assistant.application.services.disambiguation_manager import DisambiguationManager
from warehouse_assistant.application.services.draft_workflow import DraftWorkflowManager
from warehouse_assistant.application.services.entity_resolver import (
    EntityReferenceResolver,
    MatchTier,
    ResolutionResult,
    exact_code_forms,
    extract_numeric_portion,
    is_identifier_query,
    prioritize_matches,
)
from warehouse_assistant.application.services.scope_resolver import ScopeResolver
from warehouse_assistant.application.services.session_store import SessionStore

__all__ = [
    "DisambiguationManager",
    "DraftWorkflowManager",
    "EntityReferenceResolver",
    "MatchTier",
    "ResolutionResult",
    "ScopeResolver",
    "SessionStore",
    "exact_code_forms",
    "extract_numeric_portion",
    "is_identifier_query",
    "prioritize_matches",
]
