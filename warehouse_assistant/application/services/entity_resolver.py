"""
Entity Reference Resolver.

Turns what the user typed ("12345", "itm-12345", "jones sofa") into canonical
ids, restricted to the request scope.

Identifier-like queries are matched against each candidate's code in three
tiers, evaluated in order and never merged:

1. exact: case-insensitive equality, or equal numeric portions
2. suffix: the candidate's numeric or upper-cased code ends with the query
3. substring: the candidate's code contains the query

Only the highest non-empty tier is returned. Free-text queries require every
term to appear in the candidate's searchable text.
"""

import logging
import re
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from warehouse_assistant.domain.exceptions import AmbiguousReferenceError, NotFoundError
from warehouse_assistant.domain.model.assistant import CandidateKind, Scope
from warehouse_assistant.domain.ports.repositories import WarehouseRepositoryPort

logger = logging.getLogger(__name__)

IDENTIFIER_PREFIXES = ("ITM", "SHP", "TSK", "RPQ", "EST", "STK", "SUB", "WC", "DSP")

_PREFIX_PATTERN = "|".join(IDENTIFIER_PREFIXES)
_IDENTIFIER_RE = re.compile(rf"^(?:[0-9]+|(?:{_PREFIX_PATTERN})-?[0-9]+)$", re.IGNORECASE)
_LEADING_PREFIX_RE = re.compile(rf"^(?:{_PREFIX_PATTERN})-?", re.IGNORECASE)
_NON_DIGIT_RE = re.compile(r"[^0-9]")

_ENTITY_NAMES = {CandidateKind.ITEMS: "item", CandidateKind.SUBACCOUNTS: "sub-account"}


def is_identifier_query(query: str) -> bool:
    """True for all-digit strings and for ``<PREFIX>-?<digits>`` codes."""
    return bool(_IDENTIFIER_RE.match(query.strip()))


def extract_numeric_portion(value: str) -> str:
    """Strip a known type prefix, then drop every non-digit."""
    return _NON_DIGIT_RE.sub("", _LEADING_PREFIX_RE.sub("", value.strip()))


def exact_code_forms(query: str) -> list[str]:
    """Codes that would fall in the exact tier for ``query``, upper-cased."""
    forms = {query.strip().upper()}
    digits = extract_numeric_portion(query)
    if is_identifier_query(query) and digits:
        for prefix in IDENTIFIER_PREFIXES:
            forms.update((f"{prefix}-{digits}", f"{prefix}{digits}"))
    return sorted(forms)


def is_canonical_id(value: str) -> bool:
    try:
        uuid.UUID(value.strip())
    except (ValueError, AttributeError):
        return False
    return True


class MatchTier(str, Enum):
    EXACT = "exact"
    SUFFIX = "suffix"
    SUBSTRING = "substring"
    TEXT = "text"
    CANONICAL = "canonical"


@dataclass
class ResolutionResult:
    query: str
    matches: list[Any] = field(default_factory=list)
    tier: Optional[MatchTier] = None

    @property
    def is_empty(self) -> bool:
        return not self.matches

    @property
    def is_unique(self) -> bool:
        return len(self.matches) == 1

    @property
    def is_ambiguous(self) -> bool:
        return len(self.matches) > 1


def prioritize_matches(
    query: str, candidates: Sequence[Any]
) -> tuple[Optional[MatchTier], list[Any]]:
    """
    Bucket candidates by how well their ``code`` matches the query.

    Returns:
        The winning tier and its candidates in input order, or (None, [])
    """
    query_upper = query.strip().upper()
    query_numeric = extract_numeric_portion(query)

    exact: list[Any] = []
    suffix: list[Any] = []
    substring: list[Any] = []
    for candidate in candidates:
        code_upper = candidate.code.upper()
        code_numeric = extract_numeric_portion(candidate.code)

        if code_upper == query_upper or (query_numeric and code_numeric == query_numeric):
            exact.append(candidate)
        elif (query_numeric and code_numeric.endswith(query_numeric)) or code_upper.endswith(
            query_upper
        ):
            suffix.append(candidate)
        elif (query_numeric and query_numeric in code_numeric) or query_upper in code_upper:
            substring.append(candidate)

    for tier, bucket in (
        (MatchTier.EXACT, exact),
        (MatchTier.SUFFIX, suffix),
        (MatchTier.SUBSTRING, substring),
    ):
        if bucket:
            return tier, bucket
    return None, []


def match_all_terms(query: str, candidates: Sequence[Any]) -> list[Any]:
    terms = [t.lower() for t in query.split() if t]
    if not terms:
        return []
    return [c for c in candidates if all(t in c.search_text.lower() for t in terms)]


class EntityReferenceResolver:
    """Resolves items and sub-accounts named in tool arguments."""

    def __init__(self, warehouse: WarehouseRepositoryPort, search_limit: int = 50) -> None:
        self._warehouse = warehouse
        self._search_limit = search_limit

    async def resolve(
        self,
        raw_value: str,
        entity_kind: CandidateKind,
        scope: Scope,
        status: Optional[str] = None,
        sub_account_id: Optional[str] = None,
    ) -> ResolutionResult:
        """
        Resolve one reference.

        ``sub_account_id`` narrows item candidates before tiering, so a better
        match outside that sub-account cannot hide one inside it.
        """
        scope.require("resolve")
        query = (raw_value or "").strip()
        if not query:
            return ResolutionResult(query=query)

        restrict_to = scope.sub_account_id
        if entity_kind == CandidateKind.ITEMS and sub_account_id:
            if restrict_to and restrict_to != sub_account_id:
                return ResolutionResult(query=query)
            restrict_to = sub_account_id

        if is_canonical_id(query):
            found = await self._fetch_by_id(query, entity_kind, scope, restrict_to)
            return ResolutionResult(
                query=query, matches=found, tier=MatchTier.CANONICAL if found else None
            )

        if is_identifier_query(query):
            candidates = await self._prefilter(
                entity_kind,
                scope,
                restrict_to,
                code_fragment=extract_numeric_portion(query),
                preferred_codes=exact_code_forms(query),
                status=status,
            )
            tier, matches = prioritize_matches(query, candidates)
        else:
            candidates = await self._prefilter(
                entity_kind,
                scope,
                restrict_to,
                terms=query.split(),
                preferred_codes=[query],
                status=status,
            )
            # A code typed verbatim still beats a description match.
            exact = [c for c in candidates if c.code.upper() == query.upper()]
            if exact:
                tier, matches = MatchTier.EXACT, exact
            else:
                matches = match_all_terms(query, candidates)
                tier = MatchTier.TEXT if matches else None

        logger.debug(
            "Resolved %s query to %d match(es) in tier %s",
            entity_kind.value,
            len(matches),
            tier.value if tier else None,
        )
        return ResolutionResult(query=query, matches=matches, tier=tier)

    async def resolve_one(
        self,
        raw_value: str,
        entity_kind: CandidateKind,
        scope: Scope,
    ) -> Any:
        """
        Resolve a reference that must name exactly one entity.

        Raises:
            NotFoundError: Nothing in scope matched
            AmbiguousReferenceError: More than one entity matched
        """
        result = await self.resolve(raw_value, entity_kind, scope)
        if result.is_empty:
            raise NotFoundError(_ENTITY_NAMES[entity_kind], raw_value)
        if result.is_ambiguous:
            raise AmbiguousReferenceError(entity_kind.value, raw_value, result.matches)
        return result.matches[0]

    async def resolve_many(
        self,
        raw_values: Sequence[str],
        entity_kind: CandidateKind,
        scope: Scope,
    ) -> list[Any]:
        """Resolve each reference in turn, keeping order and dropping repeats."""
        resolved: list[Any] = []
        seen: set[str] = set()
        for raw_value in raw_values:
            entity = await self.resolve_one(raw_value, entity_kind, scope)
            if entity.id not in seen:
                seen.add(entity.id)
                resolved.append(entity)
        return resolved

    async def _fetch_by_id(
        self,
        entity_id: str,
        entity_kind: CandidateKind,
        scope: Scope,
        sub_account_id: Optional[str],
    ) -> list[Any]:
        if entity_kind == CandidateKind.ITEMS:
            items = await self._warehouse.get_items(scope, [entity_id])
            if sub_account_id:
                items = [i for i in items if i.sub_account_id == sub_account_id]
            return items
        sub_account = await self._warehouse.get_sub_account(scope, entity_id)
        return [sub_account] if sub_account else []

    async def _prefilter(
        self,
        entity_kind: CandidateKind,
        scope: Scope,
        sub_account_id: Optional[str],
        code_fragment: Optional[str] = None,
        terms: Optional[list[str]] = None,
        preferred_codes: Optional[list[str]] = None,
        status: Optional[str] = None,
    ) -> list[Any]:
        if entity_kind == CandidateKind.ITEMS:
            return await self._warehouse.search_items(
                scope,
                code_fragment=code_fragment,
                terms=terms,
                status=status,
                sub_account_id=sub_account_id,
                preferred_codes=preferred_codes,
                limit=self._search_limit,
            )
        return await self._warehouse.search_sub_accounts(
            scope,
            code_fragment=code_fragment,
            terms=terms,
            preferred_codes=preferred_codes,
            limit=self._search_limit,
        )
