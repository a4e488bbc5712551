"""Unit tests for EntityReferenceResolver."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from warehouse_assistant.application.services import (
    EntityReferenceResolver,
    MatchTier,
    exact_code_forms,
    extract_numeric_portion,
    is_identifier_query,
    prioritize_matches,
)
from warehouse_assistant.domain.exceptions import (
    AmbiguousReferenceError,
    NotFoundError,
    ScopeViolationError,
)
from warehouse_assistant.domain.model.assistant import CandidateKind, Scope

SCOPE = Scope(tenant_id="t-1", account_id="a-1", user_id="u-1")
CANONICAL_ID = "7c2e1d2f-0000-4000-8000-000000012345"


def _candidate(code: str, description: str = "", candidate_id: str | None = None):
    return SimpleNamespace(
        id=candidate_id or code.lower(),
        code=code,
        label=f"{code} - {description}",
        search_text=f"{code} {description}",
        sub_account_id=None,
    )


@pytest.fixture
def warehouse():
    repo = AsyncMock()
    repo.search_items = AsyncMock(return_value=[])
    repo.search_sub_accounts = AsyncMock(return_value=[])
    repo.get_items = AsyncMock(return_value=[])
    repo.get_sub_account = AsyncMock(return_value=None)
    return repo


@pytest.mark.unit
class TestQueryClassification:
    @pytest.mark.parametrize(
        "query", ["12345", "ITM-12345", "itm12345", " SHP-00042 ", "wc-7", "DSP-1"]
    )
    def test_identifier_queries(self, query):
        assert is_identifier_query(query)

    @pytest.mark.parametrize("query", ["jones sofa", "ITM-", "ABC-123", "12a45", ""])
    def test_text_queries(self, query):
        assert not is_identifier_query(query)

    @pytest.mark.parametrize(
        "value,expected",
        [("ITM-0012345", "0012345"), ("itm12345", "12345"), ("12345", "12345"), ("SUB-A1", "1")],
    )
    def test_extract_numeric_portion(self, value, expected):
        assert extract_numeric_portion(value) == expected

    def test_exact_code_forms(self):
        forms = exact_code_forms("12345")
        assert {"12345", "ITM-12345", "ITM12345", "WC-12345"} <= set(forms)
        assert exact_code_forms("jones sofa") == ["JONES SOFA"]


@pytest.mark.unit
class TestPrioritizeMatches:
    def test_exact_numeric_match_beats_suffix(self):
        exact = _candidate("ITM-12345")
        suffix = _candidate("ITM-112345")
        tier, matches = prioritize_matches("12345", [suffix, exact])
        assert tier == MatchTier.EXACT
        assert matches == [exact]

    def test_suffix_beats_substring(self):
        suffix = _candidate("ITM-12345")
        substring = _candidate("ITM-23450")
        tier, matches = prioritize_matches("2345", [substring, suffix])
        assert tier == MatchTier.SUFFIX
        assert matches == [suffix]

    def test_substring_tier(self):
        candidate = _candidate("ITM-923456")
        tier, matches = prioritize_matches("2345", [candidate])
        assert tier == MatchTier.SUBSTRING
        assert matches == [candidate]

    def test_exact_code_is_case_insensitive(self):
        candidate = _candidate("ITM-12345")
        tier, _ = prioritize_matches("itm-12345", [candidate])
        assert tier == MatchTier.EXACT

    def test_several_exact_matches_are_kept_in_order(self):
        first = _candidate("ITM-12345", candidate_id="a")
        second = _candidate("SHP-12345", candidate_id="b")
        tier, matches = prioritize_matches("12345", [first, second])
        assert tier == MatchTier.EXACT
        assert [m.id for m in matches] == ["a", "b"]

    def test_no_match(self):
        assert prioritize_matches("999", [_candidate("ITM-12345")]) == (None, [])


@pytest.mark.unit
class TestEntityReferenceResolver:
    async def test_identifier_query_prefilters_by_digits(self, warehouse):
        warehouse.search_items.return_value = [_candidate("ITM-112345"), _candidate("ITM-12345")]
        resolver = EntityReferenceResolver(warehouse, search_limit=25)

        result = await resolver.resolve("ITM-12345", CandidateKind.ITEMS, SCOPE)

        assert result.tier == MatchTier.EXACT
        assert [m.code for m in result.matches] == ["ITM-12345"]
        kwargs = warehouse.search_items.call_args.kwargs
        assert kwargs["code_fragment"] == "12345"
        assert kwargs["limit"] == 25

    async def test_text_query_requires_every_term(self, warehouse):
        warehouse.search_items.return_value = [
            _candidate("ITM-20001", "Jones sofa"),
            _candidate("ITM-20002", "Jones armchair"),
        ]
        resolver = EntityReferenceResolver(warehouse)

        result = await resolver.resolve("jones sofa", CandidateKind.ITEMS, SCOPE)

        assert result.tier == MatchTier.TEXT
        assert [m.code for m in result.matches] == ["ITM-20001"]
        assert warehouse.search_items.call_args.kwargs["terms"] == ["jones", "sofa"]

    async def test_text_query_matching_a_code_exactly(self, warehouse):
        warehouse.search_sub_accounts.return_value = [
            _candidate("SUB-A", "Annex"),
            _candidate("SUB-AB", "Annex B"),
        ]
        resolver = EntityReferenceResolver(warehouse)

        result = await resolver.resolve("sub-a", CandidateKind.SUBACCOUNTS, SCOPE)

        assert result.tier == MatchTier.EXACT
        assert [m.code for m in result.matches] == ["SUB-A"]

    async def test_canonical_id_is_fetched_directly(self, warehouse):
        item = _candidate("ITM-12345", candidate_id=CANONICAL_ID)
        warehouse.get_items.return_value = [item]
        resolver = EntityReferenceResolver(warehouse)

        result = await resolver.resolve(CANONICAL_ID, CandidateKind.ITEMS, SCOPE)

        assert result.tier == MatchTier.CANONICAL
        assert result.matches == [item]
        warehouse.search_items.assert_not_called()

    async def test_canonical_id_outside_sub_account_is_not_found(self, warehouse):
        item = _candidate("ITM-12345", candidate_id=CANONICAL_ID)
        item.sub_account_id = "s-2"
        warehouse.get_items.return_value = [item]
        resolver = EntityReferenceResolver(warehouse)
        scope = Scope(tenant_id="t-1", account_id="a-1", user_id="u-1", sub_account_id="s-1")

        result = await resolver.resolve(CANONICAL_ID, CandidateKind.ITEMS, scope)

        assert result.is_empty

    async def test_blank_query_matches_nothing(self, warehouse):
        result = await EntityReferenceResolver(warehouse).resolve("  ", CandidateKind.ITEMS, SCOPE)
        assert result.is_empty
        warehouse.search_items.assert_not_called()

    async def test_resolve_one_not_found(self, warehouse):
        with pytest.raises(NotFoundError) as exc_info:
            await EntityReferenceResolver(warehouse).resolve_one("777", CandidateKind.ITEMS, SCOPE)
        assert exc_info.value.entity_type == "item"

    async def test_resolve_one_ambiguous(self, warehouse):
        warehouse.search_items.return_value = [
            _candidate("ITM-20001", "Jones sofa"),
            _candidate("ITM-20002", "Jones sofa"),
        ]
        with pytest.raises(AmbiguousReferenceError) as exc_info:
            await EntityReferenceResolver(warehouse).resolve_one(
                "jones sofa", CandidateKind.ITEMS, SCOPE
            )
        assert exc_info.value.entity_kind == "items"
        assert len(exc_info.value.candidates) == 2

    async def test_resolve_many_drops_repeats(self, warehouse):
        item = _candidate("ITM-12345", candidate_id=CANONICAL_ID)
        warehouse.get_items.return_value = [item]
        warehouse.search_items.return_value = [item]

        resolved = await EntityReferenceResolver(warehouse).resolve_many(
            [CANONICAL_ID, "12345"], CandidateKind.ITEMS, SCOPE
        )

        assert resolved == [item]

    async def test_unscoped_resolution_is_refused(self, warehouse):
        with pytest.raises(ScopeViolationError):
            await EntityReferenceResolver(warehouse).resolve(
                "12345", CandidateKind.ITEMS, Scope(tenant_id="t-1", account_id="", user_id="u")
            )

    async def test_identifier_query_prefers_exact_codes(self, warehouse):
        await EntityReferenceResolver(warehouse).resolve("itm-12345", CandidateKind.ITEMS, SCOPE)
        assert "ITM-12345" in warehouse.search_items.call_args.kwargs["preferred_codes"]

    async def test_sub_account_narrows_candidates_before_tiering(self, warehouse):
        warehouse.search_items.return_value = [_candidate("ITM-112345")]
        resolver = EntityReferenceResolver(warehouse)

        result = await resolver.resolve("12345", CandidateKind.ITEMS, SCOPE, sub_account_id="s-2")

        assert result.tier == MatchTier.SUFFIX
        assert [m.code for m in result.matches] == ["ITM-112345"]
        assert warehouse.search_items.call_args.kwargs["sub_account_id"] == "s-2"

    async def test_sub_account_outside_scope_matches_nothing(self, warehouse):
        scope = Scope(tenant_id="t-1", account_id="a-1", user_id="u-1", sub_account_id="s-1")

        result = await EntityReferenceResolver(warehouse).resolve(
            "12345", CandidateKind.ITEMS, scope, sub_account_id="s-2"
        )

        assert result.is_empty
        warehouse.search_items.assert_not_called()
