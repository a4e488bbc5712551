"""
Assistant domain exceptions.

Tool-level failures (validation, not found, wrong phase) are converted by the
tool dispatcher into ``{"ok": false, "error": {...}}`` results so the model can
explain or retry. Upstream failures abort the turn and are mapped to HTTP
errors by the web layer. ``ScopeViolationError`` is never converted: it marks
an authorization defect.
"""

from typing import Any

from warehouse_assistant.domain.shared_kernel import DomainException


class AssistantError(DomainException):
    """Base class for errors that carry a machine-readable code."""

    code = "assistant_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(AssistantError):
    """Malformed or missing tool arguments, or an ineligible entity."""

    code = "validation_error"


class NotFoundError(AssistantError):
    """Entity, draft or session absent, or outside the caller's scope."""

    code = "not_found"

    def __init__(self, entity_type: str, reference: str, message: str | None = None) -> None:
        self.entity_type = entity_type
        self.reference = reference
        super().__init__(
            message or f"No {entity_type} matching '{reference}' was found",
            details={"entity_type": entity_type, "reference": reference},
        )


class StateError(AssistantError):
    """An action was attempted in the wrong conversational phase."""

    code = "invalid_state"


class NoPendingSelectionError(StateError):
    code = "no_pending_selection"

    def __init__(self) -> None:
        super().__init__("No pending selection to resolve")


class AlreadyConfirmedError(StateError):
    code = "already_confirmed"

    def __init__(self, draft_id: str) -> None:
        self.draft_id = draft_id
        super().__init__(
            f"Draft {draft_id} has already been confirmed", details={"draft_id": draft_id}
        )


class DraftCancelledError(StateError):
    code = "draft_cancelled"

    def __init__(self, draft_id: str) -> None:
        self.draft_id = draft_id
        super().__init__(f"Draft {draft_id} was cancelled", details={"draft_id": draft_id})


class ConfirmationRequiredError(StateError):
    """A draft was submitted in the same turn that proposed it."""

    code = "confirmation_required"

    def __init__(self, draft_id: str) -> None:
        self.draft_id = draft_id
        super().__init__(
            f"Draft {draft_id} was proposed in this turn; show the summary and wait for the "
            "user to confirm it",
            details={"draft_id": draft_id},
        )


class AmbiguousReferenceError(AssistantError):
    """More than one entity matched a reference; a user choice is required."""

    code = "ambiguous_reference"

    def __init__(self, entity_kind: str, query: str, candidates: list[Any]) -> None:
        self.entity_kind = entity_kind
        self.query = query
        self.candidates = candidates
        super().__init__(
            f"{len(candidates)} {entity_kind} match '{query}'",
            details={"count": len(candidates)},
        )


class UpstreamError(AssistantError):
    """The completion service failed."""

    code = "upstream_error"
    status_code = 502
    retryable = True


class RateLimitedError(UpstreamError):
    code = "rate_limited"
    status_code = 429


class PaymentRequiredError(UpstreamError):
    code = "payment_required"
    status_code = 402
    retryable = False


class AuthorizationError(AssistantError):
    """Credentials do not grant access to the requested tenant or account."""

    code = "forbidden"


class ScopeViolationError(DomainException):
    """A persistence call was attempted without a complete tenant/account scope."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Unscoped access attempted in {operation}")


class AuthenticationError(AuthorizationError):
    """Missing, malformed or unknown credentials."""

    code = "unauthorized"
