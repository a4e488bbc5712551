"""
Domain exceptions for the warehouse assistant.

This module provides the exception hierarchy raised by repositories,
application services and agent tools.
"""

from warehouse_assistant.domain.exceptions.assistant_exceptions import (
    AlreadyConfirmedError,
    AmbiguousReferenceError,
    AssistantError,
    AuthenticationError,
    AuthorizationError,
    ConfirmationRequiredError,
    DraftCancelledError,
    NoPendingSelectionError,
    NotFoundError,
    PaymentRequiredError,
    RateLimitedError,
    ScopeViolationError,
    StateError,
    UpstreamError,
    ValidationError,
)
from warehouse_assistant.domain.exceptions.persistence_exceptions import (
    ConnectionError,
    DuplicateEntityError,
    OptimisticLockError,
    PersistenceError,
    SessionCreationError,
    TransactionError,
)

__all__ = [
    "AssistantError",
    "ValidationError",
    "NotFoundError",
    "StateError",
    "NoPendingSelectionError",
    "AlreadyConfirmedError",
    "DraftCancelledError",
    "ConfirmationRequiredError",
    "AmbiguousReferenceError",
    "UpstreamError",
    "RateLimitedError",
    "PaymentRequiredError",
    "AuthenticationError",
    "AuthorizationError",
    "ScopeViolationError",
    "PersistenceError",
    "DuplicateEntityError",
    "TransactionError",
    "ConnectionError",
    "OptimisticLockError",
    "SessionCreationError",
]
