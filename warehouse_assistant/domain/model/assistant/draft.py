"""Draft entity for the two-phase create/confirm protocol.

A draft is a persisted, unconfirmed proposal for a mutating action. Nothing
happens to business data until a separate submit call confirms it; a draft
left alone when its session expires is simply abandoned.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from warehouse_assistant.domain.exceptions import AlreadyConfirmedError, DraftCancelledError
from warehouse_assistant.domain.model.assistant.scope import Scope
from warehouse_assistant.domain.shared_kernel import Entity, ValueObject


class DraftKind(str, Enum):
    WILL_CALL = "will_call"
    REPAIR_QUOTE = "repair_quote"
    REALLOCATION = "reallocation"
    DISPOSAL = "disposal"


class DraftStatus(str, Enum):
    """Status of a draft.

    State transitions:
    - DRAFT -> CONFIRMED: submit succeeded and the mutation was applied
    - DRAFT -> CANCELLED: the user declined
    """

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(kw_only=True)
class Draft(Entity):
    """
    Proposed mutating action awaiting confirmation.

    Attributes:
        kind: Action family
        tenant_id: Tenant that owns the draft
        account_id: Account that owns the draft
        sub_account_id: Sub-account the request was scoped to, if any
        created_by: User who asked for the action
        payload: Validated parameters, always including ``item_ids``
        summary: Human-readable description shown before confirmation
        status: Current status
        result: Identifiers produced by the mutation once confirmed
    """

    kind: DraftKind
    tenant_id: str
    account_id: str
    created_by: str
    payload: dict[str, Any]
    summary: str
    sub_account_id: Optional[str] = None
    status: DraftStatus = DraftStatus.DRAFT
    result: Optional[dict[str, Any]] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    confirmed_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.tenant_id or not self.account_id:
            raise ValueError("tenant_id and account_id are required")
        if not self.payload.get("item_ids"):
            raise ValueError("a draft must reference at least one item")

    @classmethod
    def propose(
        cls, kind: DraftKind, scope: Scope, payload: dict[str, Any], summary: str
    ) -> "Draft":
        return cls(
            kind=kind,
            tenant_id=scope.tenant_id,
            account_id=scope.account_id,
            sub_account_id=scope.sub_account_id,
            created_by=scope.user_id,
            payload=payload,
            summary=summary,
        )

    @property
    def item_ids(self) -> list[str]:
        return list(self.payload["item_ids"])

    @property
    def is_open(self) -> bool:
        return self.status == DraftStatus.DRAFT

    def visible_to(self, scope: Scope) -> bool:
        return scope.owns(self.tenant_id, self.account_id)

    def ensure_submittable(self) -> None:
        if self.status == DraftStatus.CONFIRMED:
            raise AlreadyConfirmedError(self.id)
        if self.status == DraftStatus.CANCELLED:
            raise DraftCancelledError(self.id)

    def confirm(self, result: dict[str, Any]) -> None:
        self.ensure_submittable()
        self.status = DraftStatus.CONFIRMED
        self.result = result
        self.confirmed_at = datetime.now(timezone.utc)

    def cancel(self) -> None:
        self.ensure_submittable()
        self.status = DraftStatus.CANCELLED


@dataclass(frozen=True)
class PendingDraft(ValueObject):
    """Pointer to the draft a session is waiting to have confirmed."""

    draft_id: str
    kind: DraftKind
    summary: str

    def to_dict(self) -> dict[str, Any]:
        return {"draft_id": self.draft_id, "type": self.kind.value, "summary": self.summary}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingDraft":
        return cls(
            draft_id=data["draft_id"], kind=DraftKind(data["type"]), summary=data.get("summary", "")
        )

    @classmethod
    def of(cls, draft: Draft) -> "PendingDraft":
        return cls(draft_id=draft.id, kind=draft.kind, summary=draft.summary)
