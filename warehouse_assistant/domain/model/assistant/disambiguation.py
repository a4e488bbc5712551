"""Candidate sets held while the user picks between ambiguous matches."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from warehouse_assistant.domain.shared_kernel import ValueObject


class CandidateKind(str, Enum):
    ITEMS = "items"
    SUBACCOUNTS = "subaccounts"


@dataclass(frozen=True)
class Candidate(ValueObject):
    id: str
    label: str
    index: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "index": self.index}


@dataclass(frozen=True)
class CandidateSet(ValueObject):
    """
    Ordered candidates presented to the user, indexed from 1.

    Attributes:
        kind: Entity kind the candidates refer to
        candidates: Candidates in presentation order
        original_query: The reference the user typed
        action: Tool that produced the set, if any
    """

    kind: CandidateKind
    candidates: tuple[Candidate, ...]
    original_query: str
    action: Optional[str] = None

    def __post_init__(self):
        if not self.candidates:
            raise ValueError("a candidate set needs at least one candidate")

    @property
    def ids(self) -> list[str]:
        return [c.id for c in self.candidates]

    @property
    def valid_range(self) -> tuple[int, int]:
        return 1, len(self.candidates)

    def find(self, index: int) -> Candidate | None:
        for candidate in self.candidates:
            if candidate.index == index:
                return candidate
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "candidates": [c.to_dict() for c in self.candidates],
            "original_query": self.original_query,
            "action": self.action,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CandidateSet":
        return cls(
            kind=CandidateKind(data["type"]),
            candidates=tuple(
                Candidate(id=c["id"], label=c["label"], index=int(c["index"]))
                for c in data.get("candidates", [])
            ),
            original_query=data.get("original_query", ""),
            action=data.get("action"),
        )
