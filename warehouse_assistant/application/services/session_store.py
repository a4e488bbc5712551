"""Session Store: get-or-create and partial writes of assistant sessions."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from warehouse_assistant.domain.exceptions import PersistenceError, SessionCreationError
from warehouse_assistant.domain.model.assistant import (
    AssistantSession,
    Scope,
    SessionPatch,
    UIContext,
)
from warehouse_assistant.domain.ports.repositories import (
    AssistantSessionRepositoryPort,
    UnitOfWorkPort,
)

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Loads the live session for a scope or starts a new one.

    Creation failures are raised as ``SessionCreationError``; a turn never
    runs against an unpersisted session. Writes are guarded by the session's
    version, so two requests racing on one scope cannot silently overwrite
    each other.
    """

    def __init__(
        self,
        repository: AssistantSessionRepositoryPort,
        unit_of_work: UnitOfWorkPort,
        ttl: timedelta = timedelta(minutes=30),
    ) -> None:
        self._repository = repository
        self._uow = unit_of_work
        self._ttl = ttl

    async def get_or_create(
        self,
        scope: Scope,
        ui_context: Optional[UIContext] = None,
        now: Optional[datetime] = None,
    ) -> AssistantSession:
        scope.require("get_or_create_session")
        now = now or datetime.now(timezone.utc)

        session = await self._repository.find_active(scope, now)
        if session is not None and not session.is_expired(now) and session.belongs_to(scope):
            if ui_context is not None:
                session.record_ui_context(ui_context)
            return session

        session = AssistantSession.start(scope, self._ttl, now)
        if ui_context is not None:
            session.record_ui_context(ui_context)
        session.mark_clean()
        try:
            async with self._uow.atomic():
                session = await self._repository.create(session)
        except SessionCreationError:
            raise
        except PersistenceError as e:
            logger.error(
                "Failed to create assistant session for account %s: %s", scope.account_id, e
            )
            raise SessionCreationError(scope.tenant_id, scope.account_id, original_error=e) from e

        logger.info("Started assistant session %s", session.id)
        return session

    async def patch(self, session: AssistantSession, patch: SessionPatch) -> AssistantSession:
        """Apply a tool's patch and persist only the fields it touched."""
        if patch.is_empty:
            return session
        session.apply(patch)
        return await self.save(session)

    async def save(
        self, session: AssistantSession, now: Optional[datetime] = None
    ) -> AssistantSession:
        """Persist dirty fields and slide the expiry forward."""
        session.touch(self._ttl, now)
        async with self._uow.atomic():
            session = await self._repository.save(session)
        return session
