"""
Base repository shared by the SQL adapters.

Provides:
- Exception mapping from SQLAlchemy to domain persistence exceptions
- The scope filter every business-table query goes through

Subclasses keep their own ``_to_domain`` conversion.
"""

import logging
from collections.abc import Callable
from contextlib import suppress
from functools import wraps
from typing import Any

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from warehouse_assistant.domain.exceptions import (
    ConnectionError as DomainConnectionError,
    DuplicateEntityError,
    PersistenceError,
)
from warehouse_assistant.domain.model.assistant import Scope

logger = logging.getLogger(__name__)


def handle_db_errors(entity_type: str = "Entity") -> Callable[..., Any]:
    """
    Decorator to convert database errors to domain exceptions.

    Args:
        entity_type: Name of the entity type for error messages
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except IntegrityError as e:
                error_str = str(e.orig) if e.orig else str(e)
                if "unique" in error_str.lower() or "duplicate" in error_str.lower():
                    field_name = "id"
                    if "Key" in error_str and "=" in error_str:
                        # PostgreSQL format: Key (field)=(value) already exists
                        with suppress(IndexError, AttributeError):
                            field_name = error_str.split("Key (")[1].split(")")[0]
                    raise DuplicateEntityError(
                        entity_type=entity_type,
                        field_name=field_name,
                        field_value="<unknown>",
                        message=f"Duplicate {entity_type} detected",
                    ) from e
                raise PersistenceError(
                    f"Integrity error while operating on {entity_type}",
                    original_error=e,
                ) from e
            except DBAPIError as e:
                error_str = str(e).lower()
                if "connection" in error_str or "timeout" in error_str:
                    raise DomainConnectionError(
                        database="PostgreSQL",
                        message=f"Database connection error while operating on {entity_type}",
                        original_error=e,
                    ) from e
                raise PersistenceError(
                    f"Database error while operating on {entity_type}",
                    original_error=e,
                ) from e
            except SQLAlchemyError as e:
                raise PersistenceError(
                    f"Database error while operating on {entity_type}",
                    original_error=e,
                ) from e

        return wrapper

    return decorator


class BaseRepository:
    """
    Holds the request's session and applies tenant/account scoping.

    Attributes:
        _entity_name: Human-readable entity name for error messages
    """

    _entity_name: str = "Entity"

    def __init__(self, session: AsyncSession) -> None:
        if session is None:
            raise ValueError("Session cannot be None")
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    @staticmethod
    def scoped(query: Select, model: Any, scope: Scope, operation: str) -> Select:
        """
        Restrict a query to the scope's tenant and account and to live rows.

        Raises:
            ScopeViolationError: If the scope lacks a tenant or account
        """
        scope.require(operation)
        query = query.where(
            model.tenant_id == scope.tenant_id, model.account_id == scope.account_id
        )
        if hasattr(model, "deleted_at"):
            query = query.where(model.deleted_at.is_(None))
        return query
