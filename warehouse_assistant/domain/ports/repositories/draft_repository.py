"""DraftRepository port for the create/confirm protocol."""

from abc import ABC, abstractmethod
from typing import Any

from warehouse_assistant.domain.model.assistant import Draft, Scope


class DraftRepositoryPort(ABC):
    @abstractmethod
    async def create(self, draft: Draft) -> Draft:
        """Persist a new draft with status ``draft``."""

    @abstractmethod
    async def find(self, draft_id: str, scope: Scope) -> Draft | None:
        """Get a draft by id, only if it belongs to the scope's tenant and account."""

    @abstractmethod
    async def mark_confirmed(self, draft_id: str, scope: Scope, result: dict[str, Any]) -> bool:
        """
        Flip a draft from ``draft`` to ``confirmed``.

        Returns:
            False if no open draft matched, so the caller must not mutate
        """

    @abstractmethod
    async def mark_cancelled(self, draft_id: str, scope: Scope) -> bool:
        """Flip a draft from ``draft`` to ``cancelled``."""
