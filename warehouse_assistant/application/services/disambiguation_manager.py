"""Disambiguation Manager.

Holds the candidate list while the user chooses between ambiguous matches
and maps their later selection back to canonical ids. It never picks a
candidate on the user's behalf.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any, Optional

from warehouse_assistant.domain.exceptions import NoPendingSelectionError, ValidationError
from warehouse_assistant.domain.model.assistant import (
    Candidate,
    CandidateKind,
    CandidateSet,
    SessionPatch,
)

logger = logging.getLogger(__name__)


class DisambiguationManager:
    def __init__(self, max_candidates: int = 10) -> None:
        self._max_candidates = max_candidates

    def begin(
        self,
        kind: CandidateKind,
        candidates: Sequence[Any],
        original_query: str,
        action: Optional[str] = None,
    ) -> SessionPatch:
        """
        Store the top candidates as the session's pending selection.

        Args:
            kind: Entity kind of the candidates
            candidates: Scoped matches exposing ``id`` and ``label``
            original_query: What the user typed
            action: Tool that hit the ambiguity

        Returns:
            Patch setting ``pending_disambiguation``
        """
        shown = candidates[: self._max_candidates]
        candidate_set = CandidateSet(
            kind=kind,
            candidates=tuple(
                Candidate(id=c.id, label=c.label, index=i) for i, c in enumerate(shown, start=1)
            ),
            original_query=original_query,
            action=action,
        )
        logger.info(
            "Pending selection of %d %s (of %d matches)", len(shown), kind.value, len(candidates)
        )
        return SessionPatch(pending_disambiguation=candidate_set)

    def resolve(
        self,
        pending: Optional[CandidateSet],
        selections: Optional[Iterable[int]] = None,
        select_all: bool = False,
    ) -> tuple[list[str], SessionPatch]:
        """
        Map the user's choice back to candidate ids.

        Selected ids come back in the stored presentation order whatever the
        order the indices were given in.

        Raises:
            NoPendingSelectionError: No candidate set is active
            ValidationError: No choice given, or an index is out of range
        """
        if pending is None:
            raise NoPendingSelectionError()

        if select_all:
            selected_ids = pending.ids
        else:
            chosen = list(selections or [])
            if not chosen:
                raise ValidationError("No selections provided")
            low, high = pending.valid_range
            invalid = [i for i in chosen if pending.find(i) is None]
            if invalid:
                raise ValidationError(
                    f"Selection {', '.join(str(i) for i in invalid)} is not in the list; "
                    f"choose a number from {low} to {high}",
                    details={"invalid": invalid, "valid_range": [low, high]},
                )
            wanted = set(chosen)
            selected_ids = [c.id for c in pending.candidates if c.index in wanted]

        return selected_ids, SessionPatch(pending_disambiguation=None)
