"""
SQLAlchemy implementation of AssistantSessionRepositoryPort.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update

from warehouse_assistant.domain.exceptions import OptimisticLockError
from warehouse_assistant.domain.model.assistant import (
    AssistantSession,
    CandidateSet,
    PendingDraft,
    Scope,
)
from warehouse_assistant.domain.ports.repositories import AssistantSessionRepositoryPort
from warehouse_assistant.infrastructure.adapters.secondary.common.base_repository import (
    BaseRepository,
    handle_db_errors,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.models import (
    AssistantSessionRecord,
)

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAssistantSessionRepository(BaseRepository, AssistantSessionRepositoryPort):
    _entity_name = "AssistantSession"

    @handle_db_errors("AssistantSession")
    async def find_active(self, scope: Scope, now: datetime) -> AssistantSession | None:
        query = self.scoped(
            select(AssistantSessionRecord), AssistantSessionRecord, scope, "find_active_session"
        )
        query = (
            query.where(
                AssistantSessionRecord.user_id == scope.user_id,
                AssistantSessionRecord.expires_at > now,
            )
            .order_by(AssistantSessionRecord.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(query)
        record = result.scalar_one_or_none()
        return self._to_domain(record) if record else None

    @handle_db_errors("AssistantSession")
    async def create(self, session: AssistantSession) -> AssistantSession:
        record = AssistantSessionRecord(
            id=session.id,
            tenant_id=session.tenant_id,
            account_id=session.account_id,
            user_id=session.user_id,
            sub_account_id=session.sub_account_id,
            pending_disambiguation=(
                session.pending_disambiguation.to_dict() if session.pending_disambiguation else None
            ),
            pending_draft=session.pending_draft.to_dict() if session.pending_draft else None,
            last_route=session.last_route,
            last_selected_items=list(session.last_selected_items),
            version=session.version,
            expires_at=session.expires_at,
            created_at=session.created_at,
        )
        self._session.add(record)
        await self._session.flush()
        return session

    @handle_db_errors("AssistantSession")
    async def save(self, session: AssistantSession) -> AssistantSession:
        """Write dirty fields only, guarded by ``version``."""
        values = self._dirty_values(session)
        if not values:
            return session

        now = datetime.now(timezone.utc)
        values["version"] = session.version + 1
        values["updated_at"] = now
        result = await self._session.execute(
            update(AssistantSessionRecord)
            .where(
                AssistantSessionRecord.id == session.id,
                AssistantSessionRecord.tenant_id == session.tenant_id,
                AssistantSessionRecord.account_id == session.account_id,
                AssistantSessionRecord.version == session.version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                "Stale write to assistant session %s at version %d", session.id, session.version
            )
            raise OptimisticLockError(
                entity_type="AssistantSession",
                entity_id=session.id,
                expected_version=session.version,
            )

        session.version += 1
        session.updated_at = now
        session.mark_clean()
        return session

    @staticmethod
    def _dirty_values(session: AssistantSession) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name in session.dirty_fields:
            value = getattr(session, name)
            if name == "pending_disambiguation":
                value = value.to_dict() if value else None
            elif name == "pending_draft":
                value = value.to_dict() if value else None
            elif name == "last_selected_items":
                value = list(value)
            values[name] = value
        return values

    @staticmethod
    def _to_domain(record: AssistantSessionRecord) -> AssistantSession:
        return AssistantSession(
            id=record.id,
            tenant_id=record.tenant_id,
            account_id=record.account_id,
            user_id=record.user_id,
            sub_account_id=record.sub_account_id,
            pending_disambiguation=(
                CandidateSet.from_dict(record.pending_disambiguation)
                if record.pending_disambiguation
                else None
            ),
            pending_draft=(
                PendingDraft.from_dict(record.pending_draft) if record.pending_draft else None
            ),
            last_route=record.last_route,
            last_selected_items=list(record.last_selected_items or []),
            version=record.version,
            expires_at=_aware(record.expires_at),
            created_at=_aware(record.created_at),
            updated_at=_aware(record.updated_at),
        )
