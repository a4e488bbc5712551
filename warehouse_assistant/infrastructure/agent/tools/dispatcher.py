"""
Tool Dispatcher.

Validates a requested tool call against the tool's parameter model, resolves
entity-naming arguments to canonical ids in scope, and runs the handler.

Failure policy:
- ``AssistantError`` raised by resolution or the handler becomes a structured
  ``{"ok": false, "error": ...}`` result; the model sees it and carries on.
- An ambiguous reference becomes a disambiguation hand-off: the candidates
  are stored as the session's pending selection and listed for the user.
- ``ScopeViolationError`` and ``PersistenceError`` propagate and end the turn.
- Anything else is logged with its traceback and reported to the model as a
  generic internal error.

Drafts made by "draft" tools are added to the caller's ``turn_draft_ids`` set;
"mutate" tools see that set and refuse to confirm those drafts in the same turn.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from warehouse_assistant.application.services import (
    DisambiguationManager,
    DraftWorkflowManager,
    EntityReferenceResolver,
)
from warehouse_assistant.domain.exceptions import (
    AmbiguousReferenceError,
    AssistantError,
    PersistenceError,
    ScopeViolationError,
    ValidationError,
)
from warehouse_assistant.domain.model.assistant import AssistantSession, CandidateKind, Scope
from warehouse_assistant.domain.ports.repositories import WarehouseRepositoryPort
from warehouse_assistant.domain.ports.services import RequestedToolCall
from warehouse_assistant.infrastructure.agent.tools.context import ToolContext
from warehouse_assistant.infrastructure.agent.tools.define import (
    ToolInfo,
    tool_info_to_openai_format,
)
from warehouse_assistant.infrastructure.agent.tools.result import ToolResult

logger = logging.getLogger(__name__)


def _describe_validation_error(error: PydanticValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(p) for p in detail.get("loc", ())) or "arguments"
        parts.append(f"{location}: {detail.get('msg', 'invalid')}")
    return "Invalid arguments: " + "; ".join(parts)


class ToolDispatcher:
    """Runs tool calls for one turn."""

    def __init__(
        self,
        tools: dict[str, ToolInfo],
        resolver: EntityReferenceResolver,
        disambiguation: DisambiguationManager,
        drafts: DraftWorkflowManager,
        warehouse: WarehouseRepositoryPort,
    ) -> None:
        self._tools = tools
        self._resolver = resolver
        self._disambiguation = disambiguation
        self._drafts = drafts
        self._warehouse = warehouse

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        """Tool schemas in the OpenAI function-calling format."""
        return [tool_info_to_openai_format(info) for info in self._tools.values()]

    async def dispatch(
        self,
        call: RequestedToolCall,
        scope: Scope,
        session: AssistantSession,
        round_index: int = 0,
        turn_draft_ids: Optional[set[str]] = None,
    ) -> ToolResult:
        info = self._tools.get(call.name)
        if info is None:
            logger.warning("Model requested unknown tool %s", call.name)
            return ToolResult.failure(
                ValidationError(
                    f"Unknown tool '{call.name}'",
                    details={"available_tools": self.tool_names},
                )
            )

        ctx = ToolContext(
            scope=scope,
            session=session,
            resolver=self._resolver,
            disambiguation=self._disambiguation,
            drafts=self._drafts,
            warehouse=self._warehouse,
            call_id=call.id,
            round_index=round_index,
            turn_draft_ids=frozenset(turn_draft_ids or ()),
        )

        try:
            params = self._validate(info, call.arguments)
            params = await self._resolve_entities(info, params, scope)
            result = await info.execute(ctx, **params)
        except AmbiguousReferenceError as e:
            return self._hand_off(info, e)
        except AssistantError as e:
            logger.info("Tool %s returned %s in round %d", info.name, e.code, round_index)
            return ToolResult.failure(e)
        except (ScopeViolationError, PersistenceError):
            raise
        except Exception:
            logger.exception("Tool %s failed unexpectedly (call %s)", info.name, call.id)
            return ToolResult.internal_error()

        if result.title is None:
            result.title = info.name
        if (
            info.permission == "draft"
            and not result.is_error
            and turn_draft_ids is not None
            and result.output.get("draft_id")
        ):
            turn_draft_ids.add(result.output["draft_id"])
        logger.info(
            "Tool %s completed in round %d (error=%s)", info.name, round_index, result.is_error
        )
        return result

    @staticmethod
    def _validate(info: ToolInfo, arguments: dict[str, Any]) -> dict[str, Any]:
        if "_error" in arguments or "_raw" in arguments:
            reason = arguments.get("_error", "malformed JSON")
            raise ValidationError(f"Could not parse the arguments for {info.name}: {reason}")
        try:
            model = info.params_model.model_validate(arguments)
        except PydanticValidationError as e:
            raise ValidationError(_describe_validation_error(e)) from e
        return model.model_dump()

    async def _resolve_entities(
        self, info: ToolInfo, params: dict[str, Any], scope: Scope
    ) -> dict[str, Any]:
        for name, kind in info.entity_fields.items():
            value: Optional[Any] = params.get(name)
            if value is None:
                continue
            if isinstance(value, list):
                entities = await self._resolver.resolve_many(value, kind, scope)
                params[name] = [entity.id for entity in entities]
            else:
                entity = await self._resolver.resolve_one(value, kind, scope)
                params[name] = entity.id
        return params

    def _hand_off(self, info: ToolInfo, error: AmbiguousReferenceError) -> ToolResult:
        patch = self._disambiguation.begin(
            CandidateKind(error.entity_kind),
            error.candidates,
            error.query,
            action=info.name,
        )
        logger.info(
            "Tool %s needs a selection between %d candidates", info.name, len(error.candidates)
        )
        return ToolResult.selection(patch, error.query)
