from warehouse_assistant.domain.model.assistant.disambiguation import (
    Candidate,
    CandidateKind,
    CandidateSet,
)
from warehouse_assistant.domain.model.assistant.draft import (
    Draft,
    DraftKind,
    DraftStatus,
    PendingDraft,
)
from warehouse_assistant.domain.model.assistant.scope import Scope
from warehouse_assistant.domain.model.assistant.session import (
    AssistantSession,
    SessionPatch,
    UIContext,
)

__all__ = [
    "AssistantSession",
    "Candidate",
    "CandidateKind",
    "CandidateSet",
    "Draft",
    "DraftKind",
    "DraftStatus",
    "PendingDraft",
    "Scope",
    "SessionPatch",
    "UIContext",
]
