from warehouse_assistant.infrastructure.adapters.primary.web.middleware.exception_handlers import (
    ErrorResponse,
    configure_exception_handlers,
    error_for,
)

__all__ = ["ErrorResponse", "configure_exception_handlers", "error_for"]
