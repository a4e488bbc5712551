"""Unit tests for the assistant domain model."""

from datetime import datetime, timedelta, timezone

import pytest

from warehouse_assistant.domain.exceptions import (
    AlreadyConfirmedError,
    DraftCancelledError,
    ScopeViolationError,
)
from warehouse_assistant.domain.model.assistant import (
    AssistantSession,
    Candidate,
    CandidateKind,
    CandidateSet,
    Draft,
    DraftKind,
    DraftStatus,
    PendingDraft,
    Scope,
    SessionPatch,
    UIContext,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _scope(**overrides) -> Scope:
    values = {"tenant_id": "t-1", "account_id": "a-1", "user_id": "u-1"}
    values.update(overrides)
    return Scope(**values)


def _candidates(count: int = 2) -> CandidateSet:
    return CandidateSet(
        kind=CandidateKind.ITEMS,
        candidates=tuple(
            Candidate(id=f"item-{i}", label=f"ITM-{i:05d} - Sofa", index=i)
            for i in range(1, count + 1)
        ),
        original_query="sofa",
        action="tool_search_items",
    )


@pytest.mark.unit
class TestScope:
    def test_require_returns_complete_scope(self):
        scope = _scope()
        assert scope.require("search") is scope

    @pytest.mark.parametrize("field", ["tenant_id", "account_id"])
    def test_require_rejects_incomplete_scope(self, field):
        with pytest.raises(ScopeViolationError) as exc_info:
            _scope(**{field: ""}).require("search_items")
        assert exc_info.value.operation == "search_items"

    def test_owns(self):
        scope = _scope()
        assert scope.owns("t-1", "a-1")
        assert not scope.owns("t-1", "a-2")
        assert not scope.owns("t-2", "a-1")


@pytest.mark.unit
class TestSessionPatch:
    def test_default_patch_is_empty(self):
        assert SessionPatch().is_empty
        assert SessionPatch().changes() == {}

    def test_none_clears_a_field(self):
        patch = SessionPatch(pending_disambiguation=None)
        assert not patch.is_empty
        assert patch.changes() == {"pending_disambiguation": None}

    def test_merge_later_patch_wins(self):
        first = SessionPatch(pending_disambiguation=_candidates())
        second = SessionPatch(pending_disambiguation=None, pending_draft=None)
        merged = first.merge(second)
        assert merged.changes() == {"pending_disambiguation": None, "pending_draft": None}


@pytest.mark.unit
class TestAssistantSession:
    def test_start_sets_scope_and_expiry(self):
        session = AssistantSession.start(_scope(sub_account_id="s-1"), timedelta(minutes=30), NOW)
        assert session.tenant_id == "t-1"
        assert session.sub_account_id == "s-1"
        assert session.expires_at == NOW + timedelta(minutes=30)
        assert session.version == 0
        assert session.dirty_fields == frozenset()

    def test_is_expired_at_deadline(self):
        session = AssistantSession.start(_scope(), timedelta(minutes=30), NOW)
        assert not session.is_expired(NOW + timedelta(minutes=29))
        assert session.is_expired(NOW + timedelta(minutes=30))

    def test_is_expired_treats_naive_expiry_as_utc(self):
        session = AssistantSession.start(_scope(), timedelta(minutes=5), NOW)
        session.expires_at = session.expires_at.replace(tzinfo=None)
        assert session.is_expired(NOW + timedelta(minutes=6))

    def test_apply_sets_only_patched_fields(self):
        session = AssistantSession.start(_scope(), timedelta(minutes=30), NOW)
        pending = PendingDraft(draft_id="d-1", kind=DraftKind.WILL_CALL, summary="Pickup")
        session.pending_draft = pending

        session.apply(SessionPatch(pending_disambiguation=_candidates()))

        assert session.pending_disambiguation is not None
        assert session.pending_draft == pending
        assert session.dirty_fields == frozenset({"pending_disambiguation"})

    def test_record_ui_context_marks_changes_only(self):
        session = AssistantSession.start(_scope(), timedelta(minutes=30), NOW)
        session.record_ui_context(UIContext(route="/items", selected_item_ids=("i-1",)))
        assert session.dirty_fields == frozenset({"last_route", "last_selected_items"})

        session.mark_clean()
        session.record_ui_context(UIContext(route="/items", selected_item_ids=("i-1",)))
        assert session.dirty_fields == frozenset()

    def test_belongs_to_requires_same_user(self):
        session = AssistantSession.start(_scope(), timedelta(minutes=30), NOW)
        assert session.belongs_to(_scope())
        assert not session.belongs_to(_scope(user_id="u-2"))
        assert not session.belongs_to(_scope(account_id="a-2"))


@pytest.mark.unit
class TestCandidateSet:
    def test_requires_candidates(self):
        with pytest.raises(ValueError):
            CandidateSet(kind=CandidateKind.ITEMS, candidates=(), original_query="x")

    def test_find_and_range(self):
        candidates = _candidates(3)
        assert candidates.valid_range == (1, 3)
        assert candidates.find(2).id == "item-2"
        assert candidates.find(4) is None
        assert candidates.ids == ["item-1", "item-2", "item-3"]

    def test_from_dict_restores_order_and_action(self):
        restored = CandidateSet.from_dict(_candidates(3).to_dict())
        assert restored == _candidates(3)


@pytest.mark.unit
class TestDraft:
    def _draft(self) -> Draft:
        return Draft.propose(DraftKind.DISPOSAL, _scope(), {"item_ids": ["i-1"]}, "Dispose")

    def test_propose_copies_scope(self):
        draft = self._draft()
        assert draft.status == DraftStatus.DRAFT
        assert draft.created_by == "u-1"
        assert draft.visible_to(_scope())
        assert not draft.visible_to(_scope(account_id="a-2"))

    def test_requires_items(self):
        with pytest.raises(ValueError):
            Draft.propose(DraftKind.DISPOSAL, _scope(), {"item_ids": []}, "Dispose")

    def test_confirm_twice_fails(self):
        draft = self._draft()
        draft.confirm({"request_number": "DSP-00001"})
        assert draft.status == DraftStatus.CONFIRMED
        with pytest.raises(AlreadyConfirmedError):
            draft.confirm({})

    def test_cancelled_draft_cannot_be_confirmed(self):
        draft = self._draft()
        draft.cancel()
        with pytest.raises(DraftCancelledError):
            draft.ensure_submittable()

    def test_pending_draft_points_at_draft(self):
        draft = self._draft()
        pending = PendingDraft.of(draft)
        assert pending.draft_id == draft.id
        assert PendingDraft.from_dict(pending.to_dict()) == pending
