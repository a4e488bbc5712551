"""
Persistence-layer domain exceptions.

Repositories translate SQLAlchemy and driver errors into this family so the
application layer and the web adapter never depend on the storage engine.

Exception Hierarchy:
    PersistenceError (base)
    ├── DuplicateEntityError   - unique constraint violation
    ├── TransactionError       - commit/rollback failure
    ├── ConnectionError        - store unreachable
    ├── OptimisticLockError    - row version changed since it was read
    └── SessionCreationError   - assistant session row could not be created
"""

from typing import Any, Optional


class PersistenceError(Exception):
    """
    Base exception for all persistence errors.

    Attributes:
        message: Human-readable error description
        original_error: The underlying exception (if any)
        details: Additional context about the error
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (caused by: {self.original_error})"
        return self.message


class DuplicateEntityError(PersistenceError):
    """Raised when an insert violates a unique constraint."""

    def __init__(
        self,
        entity_type: str,
        field_name: str,
        field_value: Any,
        message: Optional[str] = None,
    ) -> None:
        self.entity_type = entity_type
        self.field_name = field_name
        self.field_value = field_value
        msg = message or f"{entity_type} with {field_name}='{field_value}' already exists"
        super().__init__(
            msg,
            details={
                "entity_type": entity_type,
                "field_name": field_name,
                "field_value": str(field_value),
            },
        )


class TransactionError(PersistenceError):
    """
    Raised when a transaction operation fails.

    Attributes:
        operation: The operation that failed (e.g., "commit", "rollback")
    """

    retryable = True

    def __init__(
        self,
        operation: str,
        message: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        self.operation = operation
        msg = message or f"Transaction {operation} failed"
        super().__init__(msg, original_error=original_error, details={"operation": operation})


class ConnectionError(PersistenceError):
    """Raised when the database cannot be reached."""

    retryable = True

    def __init__(
        self,
        database: str,
        host: Optional[str] = None,
        message: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        self.database = database
        self.host = host
        msg = message or f"Failed to connect to {database}"
        if host:
            msg += f" at {host}"
        super().__init__(
            msg,
            original_error=original_error,
            details={"database": database, "host": host},
        )


class OptimisticLockError(PersistenceError):
    """
    Raised when a versioned row was modified by another request.

    Two turns for the same scope racing on one assistant session surface
    here instead of silently overwriting each other.
    """

    retryable = True

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        msg = message or f"Concurrent modification detected for {entity_type} '{entity_id}'"
        if expected_version is not None:
            msg += f" (expected version {expected_version})"
        super().__init__(
            msg,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "expected_version": expected_version,
            },
        )


class SessionCreationError(PersistenceError):
    """Raised when no assistant session row could be created for a scope."""

    retryable = True

    def __init__(self, tenant_id: str, account_id: str, original_error: Optional[Exception] = None):
        super().__init__(
            "Could not start an assistant session",
            original_error=original_error,
            details={"tenant_id": tenant_id, "account_id": account_id},
        )
