"""Assistant session aggregate.

One session row per (tenant, account, user) scope carries the cross-turn
state of the conversation: the candidate set the user is choosing from and
the draft awaiting confirmation. Expiry is checked on every read; an expired
session is never reused.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from warehouse_assistant.domain.model.assistant.disambiguation import CandidateSet
from warehouse_assistant.domain.model.assistant.draft import PendingDraft
from warehouse_assistant.domain.model.assistant.scope import Scope
from warehouse_assistant.domain.shared_kernel import Entity

_UNSET: Any = object()


@dataclass(frozen=True)
class UIContext:
    """What the user was looking at when they sent the message."""

    route: Optional[str] = None
    selected_item_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class SessionPatch:
    """
    Partial update to session state returned by a tool.

    Fields left unset are untouched; a field set to ``None`` is cleared.
    """

    pending_disambiguation: Optional[CandidateSet] = _UNSET
    pending_draft: Optional[PendingDraft] = _UNSET

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not _UNSET
        }

    @property
    def is_empty(self) -> bool:
        return not self.changes()

    def merge(self, other: "SessionPatch") -> "SessionPatch":
        return SessionPatch(**{**self.changes(), **other.changes()})


@dataclass(kw_only=True)
class AssistantSession(Entity):
    """
    Cross-turn conversation state for one scope.

    Attributes:
        tenant_id: Owning tenant
        account_id: Owning account
        user_id: User the conversation belongs to
        sub_account_id: Sub-account the session was opened under, if any
        pending_disambiguation: Candidate set awaiting a user choice
        pending_draft: Draft awaiting confirmation
        last_route: UI route the user was on for the latest turn
        last_selected_items: Item ids selected in the UI for the latest turn
        expires_at: Inactivity deadline
        version: Optimistic lock counter, bumped on every write
    """

    tenant_id: str
    account_id: str
    user_id: str
    expires_at: datetime
    sub_account_id: Optional[str] = None
    pending_disambiguation: Optional[CandidateSet] = None
    pending_draft: Optional[PendingDraft] = None
    last_route: Optional[str] = None
    last_selected_items: list[str] = field(default_factory=list)
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
    _dirty: set[str] = field(default_factory=set, repr=False, compare=False)

    @classmethod
    def start(
        cls, scope: Scope, ttl: timedelta, now: Optional[datetime] = None
    ) -> "AssistantSession":
        now = now or datetime.now(timezone.utc)
        return cls(
            tenant_id=scope.tenant_id,
            account_id=scope.account_id,
            user_id=scope.user_id,
            sub_account_id=scope.sub_account_id,
            expires_at=now + ttl,
            created_at=now,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at

    def belongs_to(self, scope: Scope) -> bool:
        return scope.owns(self.tenant_id, self.account_id) and self.user_id == scope.user_id

    def apply(self, patch: SessionPatch) -> None:
        for name, value in patch.changes().items():
            setattr(self, name, value)
            self._dirty.add(name)

    def record_ui_context(self, ui_context: UIContext) -> None:
        if ui_context.route is not None and ui_context.route != self.last_route:
            self.last_route = ui_context.route
            self._dirty.add("last_route")
        selected = list(ui_context.selected_item_ids)
        if selected and selected != self.last_selected_items:
            self.last_selected_items = selected
            self._dirty.add("last_selected_items")

    def touch(self, ttl: timedelta, now: Optional[datetime] = None) -> None:
        """Push the inactivity deadline forward."""
        now = now or datetime.now(timezone.utc)
        self.expires_at = now + ttl
        self._dirty.add("expires_at")

    @property
    def dirty_fields(self) -> frozenset[str]:
        return frozenset(self._dirty)

    def mark_clean(self) -> None:
        self._dirty.clear()
