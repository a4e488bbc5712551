"""
Centralized exception handlers for the FastAPI application.

Maps domain exceptions that end a request to HTTP responses with one error
format::

    {"error": {"type": ..., "message": ..., "error_id": ..., "retryable": ...}}

Usage:
    from warehouse_assistant.infrastructure.adapters.primary.web.middleware import (
        configure_exception_handlers,
    )

    app = FastAPI()
    configure_exception_handlers(app)
"""

import logging
import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from warehouse_assistant.domain.exceptions import (
    AssistantError,
    AuthenticationError,
    AuthorizationError,
    ConnectionError as PersistenceConnectionError,
    OptimisticLockError,
    PersistenceError,
    ScopeViolationError,
    SessionCreationError,
    UpstreamError,
)
from warehouse_assistant.domain.shared_kernel import DomainException

logger = logging.getLogger(__name__)


class ErrorResponse:
    """Standard error response format."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        message: str,
        error_id: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.message = message
        self.error_id = error_id or str(uuid.uuid4())
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        response: dict[str, Any] = {
            "error": {
                "type": self.error_type,
                "message": self.message,
                "error_id": self.error_id,
                "retryable": self.retryable,
            }
        }
        if self.details:
            response["error"]["details"] = self.details
        return response

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


def error_for(exc: Exception) -> ErrorResponse:
    """Build the error body for an exception that ends a turn.

    Also used for the error frame of a stream that already started.
    """
    if isinstance(exc, UpstreamError):
        return ErrorResponse(exc.status_code, exc.code, exc.message, retryable=exc.retryable)
    if isinstance(exc, OptimisticLockError):
        return ErrorResponse(
            409,
            "conflict",
            "The conversation was updated by another request. Please retry.",
            retryable=True,
        )
    if isinstance(exc, (SessionCreationError, PersistenceConnectionError)):
        return ErrorResponse(
            503,
            "service_unavailable",
            "The assistant is temporarily unavailable. Please try again.",
            retryable=True,
        )
    if isinstance(exc, PersistenceError):
        return ErrorResponse(
            500,
            "persistence_error",
            "A data access error occurred. Please try again.",
            retryable=exc.retryable,
        )
    if isinstance(exc, AssistantError):
        return ErrorResponse(400, exc.code, exc.message, details=exc.details)
    return ErrorResponse(500, "internal_error", "An unexpected error occurred.")


# ==============================================================================
# Auth Exception Handlers
# ==============================================================================


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    """Handle missing or invalid credentials - 401."""
    logger.info("Authentication failed: %s - path=%s", exc.message, request.url.path)
    response = ErrorResponse(401, exc.code, exc.message).to_response()
    response.headers["WWW-Authenticate"] = "Bearer"
    return response


async def authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    """Handle scope denials - 403."""
    logger.warning("Authorization denied: %s - path=%s", exc.message, request.url.path)
    return ErrorResponse(403, exc.code, exc.message).to_response()


# ==============================================================================
# Turn Exception Handlers
# ==============================================================================


async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    """Handle completion service failures - 429, 402 or 502."""
    error = error_for(exc)
    logger.warning(
        "Completion service error %s - error_id=%s, path=%s",
        exc.code,
        error.error_id,
        request.url.path,
    )
    return error.to_response()


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """Handle persistence failures - 409, 503 or 500."""
    error = error_for(exc)
    logger.error(
        "Persistence error: %s - error_id=%s, path=%s",
        exc,
        error.error_id,
        request.url.path,
        exc_info=error.status_code >= 500,
    )
    return error.to_response()


async def assistant_error_handler(request: Request, exc: AssistantError) -> JSONResponse:
    """Handle assistant errors raised outside a tool - 400."""
    error = error_for(exc)
    logger.warning(
        "Assistant error %s - error_id=%s, path=%s", exc.code, error.error_id, request.url.path
    )
    return error.to_response()


async def scope_violation_handler(request: Request, exc: ScopeViolationError) -> JSONResponse:
    """Handle unscoped data access - 500. This is a defect, never user error."""
    error_id = str(uuid.uuid4())
    logger.error(
        "Scope violation in %s - error_id=%s, path=%s",
        exc.operation,
        error_id,
        request.url.path,
        exc_info=True,
    )
    return ErrorResponse(
        500, "internal_error", "An unexpected error occurred.", error_id=error_id
    ).to_response()


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Handle generic domain exceptions - 400 Bad Request."""
    error_id = str(uuid.uuid4())
    logger.warning(
        "Domain exception: %s - error_id=%s, path=%s", str(exc), error_id, request.url.path
    )
    return ErrorResponse(400, "domain_error", str(exc), error_id=error_id).to_response()


def configure_exception_handlers(app: FastAPI) -> None:
    """Register every handler; lookup follows the exception's MRO."""
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(AuthorizationError, authorization_error_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(AssistantError, assistant_error_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
    app.add_exception_handler(ScopeViolationError, scope_violation_handler)
    app.add_exception_handler(DomainException, domain_exception_handler)
    logger.debug("Configured exception handlers")
