"""
AssistantSessionRepository port for cross-turn conversation state.

Sessions are keyed by (tenant, account, user). Implementations must filter
by tenant and account on every query and must never return an expired row.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from warehouse_assistant.domain.model.assistant import AssistantSession, Scope


class AssistantSessionRepositoryPort(ABC):
    @abstractmethod
    async def find_active(self, scope: Scope, now: datetime) -> AssistantSession | None:
        """
        Get the newest non-expired session for a scope.

        Args:
            scope: Request scope
            now: Reference time for the expiry check

        Returns:
            The session if one is live, None otherwise
        """

    @abstractmethod
    async def create(self, session: AssistantSession) -> AssistantSession:
        """
        Persist a new session.

        Raises:
            SessionCreationError: If the row could not be written
        """

    @abstractmethod
    async def save(self, session: AssistantSession) -> AssistantSession:
        """
        Write the session's dirty fields, guarded by its version.

        Raises:
            OptimisticLockError: If another request updated the row first
        """
