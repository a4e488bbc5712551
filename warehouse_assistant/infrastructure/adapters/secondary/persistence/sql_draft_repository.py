"""
SQLAlchemy implementation of DraftRepositoryPort.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update

from warehouse_assistant.domain.model.assistant import Draft, DraftKind, DraftStatus, Scope
from warehouse_assistant.domain.ports.repositories import DraftRepositoryPort
from warehouse_assistant.infrastructure.adapters.secondary.common.base_repository import (
    BaseRepository,
    handle_db_errors,
)
from warehouse_assistant.infrastructure.adapters.secondary.persistence.models import (
    AssistantDraftRecord,
)

logger = logging.getLogger(__name__)


class SqlDraftRepository(BaseRepository, DraftRepositoryPort):
    _entity_name = "Draft"

    @handle_db_errors("Draft")
    async def create(self, draft: Draft) -> Draft:
        self._session.add(
            AssistantDraftRecord(
                id=draft.id,
                tenant_id=draft.tenant_id,
                account_id=draft.account_id,
                sub_account_id=draft.sub_account_id,
                kind=draft.kind.value,
                status=draft.status.value,
                created_by=draft.created_by,
                payload=draft.payload,
                summary=draft.summary,
                created_at=draft.created_at,
            )
        )
        await self._session.flush()
        return draft

    @handle_db_errors("Draft")
    async def find(self, draft_id: str, scope: Scope) -> Draft | None:
        query = self.scoped(select(AssistantDraftRecord), AssistantDraftRecord, scope, "find_draft")
        query = query.where(AssistantDraftRecord.id == draft_id).execution_options(
            populate_existing=True
        )
        result = await self._session.execute(query)
        record = result.scalar_one_or_none()
        return self._to_domain(record) if record else None

    @handle_db_errors("Draft")
    async def mark_confirmed(self, draft_id: str, scope: Scope, result: dict[str, Any]) -> bool:
        return await self._transition(
            draft_id,
            scope,
            DraftStatus.CONFIRMED,
            result=result,
            confirmed_at=datetime.now(timezone.utc),
        )

    @handle_db_errors("Draft")
    async def mark_cancelled(self, draft_id: str, scope: Scope) -> bool:
        return await self._transition(draft_id, scope, DraftStatus.CANCELLED)

    async def _transition(
        self, draft_id: str, scope: Scope, status: DraftStatus, **values: Any
    ) -> bool:
        """Move an open draft to ``status``. Only a row still in ``draft`` matches."""
        scope.require("transition_draft")
        result = await self._session.execute(
            update(AssistantDraftRecord)
            .where(
                AssistantDraftRecord.id == draft_id,
                AssistantDraftRecord.tenant_id == scope.tenant_id,
                AssistantDraftRecord.account_id == scope.account_id,
                AssistantDraftRecord.status == DraftStatus.DRAFT.value,
            )
            .values(status=status.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.info("Draft %s is no longer open; %s skipped", draft_id, status.value)
            return False
        return True

    @staticmethod
    def _to_domain(record: AssistantDraftRecord) -> Draft:
        return Draft(
            id=record.id,
            kind=DraftKind(record.kind),
            tenant_id=record.tenant_id,
            account_id=record.account_id,
            sub_account_id=record.sub_account_id,
            created_by=record.created_by,
            payload=dict(record.payload or {}),
            summary=record.summary,
            status=DraftStatus(record.status),
            result=record.result,
            created_at=record.created_at,
            confirmed_at=record.confirmed_at,
        )
