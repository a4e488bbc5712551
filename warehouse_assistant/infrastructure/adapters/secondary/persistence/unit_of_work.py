"""SQLAlchemy unit of work over the request's AsyncSession."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from warehouse_assistant.domain.exceptions import TransactionError
from warehouse_assistant.domain.ports.repositories import UnitOfWorkPort

logger = logging.getLogger(__name__)


class SqlUnitOfWork(UnitOfWorkPort):
    def __init__(self, session: AsyncSession) -> None:
        if session is None:
            raise ValueError("Session cannot be None")
        self._session = session

    @asynccontextmanager
    async def atomic(self) -> AsyncGenerator[None, None]:
        """
        Commit on success, roll back on any error.

        Example:
            async with uow.atomic():
                await drafts.mark_confirmed(...)
                await warehouse.create_will_call(...)
        """
        try:
            yield
            await self.commit()
        except Exception:
            await self.rollback()
            raise

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            logger.error("Commit failed: %s", e)
            raise TransactionError(operation="commit", original_error=e) from e

    async def rollback(self) -> None:
        try:
            await self._session.rollback()
        except SQLAlchemyError as e:
            logger.error("Rollback failed: %s", e)
            raise TransactionError(operation="rollback", original_error=e) from e
