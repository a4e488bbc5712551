"""
Draft/Confirm Workflow Manager.

Every mutating action runs in two phases:

- ``create_draft`` validates the referenced items against the scope and the
  action's eligibility rules, then persists a proposal with status ``draft``.
- ``submit_draft`` re-validates (state may have moved on since the draft was
  made), performs the real mutation and flips the draft to ``confirmed``, all
  inside one transaction.

A failed submit leaves no partial mutation behind. Submitting the same draft
twice fails the second time without mutating again: the status flip is a
conditional update, so a draft that is no longer open rolls the whole
transaction back.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from warehouse_assistant.domain.exceptions import (
    AlreadyConfirmedError,
    NotFoundError,
    ValidationError,
)
from warehouse_assistant.domain.model.assistant import (
    Draft,
    DraftKind,
    PendingDraft,
    Scope,
    SessionPatch,
)
from warehouse_assistant.domain.model.warehouse import ItemCommitments, ItemRecord, ItemStatus
from warehouse_assistant.domain.ports.repositories import (
    DraftRepositoryPort,
    UnitOfWorkPort,
    WarehouseRepositoryPort,
)

logger = logging.getLogger(__name__)

# Open work that blocks each action family.
_BLOCKING_COMMITMENTS: dict[DraftKind, tuple[str, ...]] = {
    DraftKind.WILL_CALL: ("open_will_call", "open_disposal"),
    DraftKind.REPAIR_QUOTE: ("open_repair_quote", "open_disposal"),
    DraftKind.REALLOCATION: ("open_will_call", "open_disposal"),
    DraftKind.DISPOSAL: ("open_will_call", "open_disposal"),
}

# Item statuses each action family accepts. Allocated items can still be quoted.
_ELIGIBLE_STATUSES: dict[DraftKind, frozenset[ItemStatus]] = {
    DraftKind.WILL_CALL: frozenset({ItemStatus.ACTIVE}),
    DraftKind.REPAIR_QUOTE: frozenset({ItemStatus.ACTIVE, ItemStatus.ALLOCATED}),
    DraftKind.REALLOCATION: frozenset({ItemStatus.ACTIVE}),
    DraftKind.DISPOSAL: frozenset({ItemStatus.ACTIVE}),
}

_COMMITMENT_REASONS = {
    "open_will_call": "is already scheduled for pickup",
    "open_repair_quote": "already has an open repair quote",
    "open_disposal": "is already pending disposal",
}

_ACTION_NAMES = {
    DraftKind.WILL_CALL: "a will call pickup",
    DraftKind.REPAIR_QUOTE: "a repair quote",
    DraftKind.REALLOCATION: "a reallocation",
    DraftKind.DISPOSAL: "disposal",
}


class DraftWorkflowManager:
    def __init__(
        self,
        warehouse: WarehouseRepositoryPort,
        drafts: DraftRepositoryPort,
        unit_of_work: UnitOfWorkPort,
    ) -> None:
        self._warehouse = warehouse
        self._drafts = drafts
        self._uow = unit_of_work

    # ------------------------------------------------------------------
    # Phase one
    # ------------------------------------------------------------------

    async def create_draft(
        self,
        kind: DraftKind,
        scope: Scope,
        item_ids: list[str],
        parameters: Optional[dict[str, Any]] = None,
    ) -> tuple[Draft, SessionPatch]:
        """
        Validate and persist a proposal.

        Args:
            kind: Action family
            scope: Request scope
            item_ids: Canonical ids of the target items
            parameters: Kind-specific options (pickup_date, released_to,
                notes, to_sub_account_id, reason)

        Returns:
            The persisted draft and a patch pointing the session at it

        Raises:
            ValidationError: Missing parameters or ineligible items
            NotFoundError: An item or the target sub-account is not in scope
        """
        scope.require("create_draft")
        parameters = dict(parameters or {})
        if not item_ids:
            raise ValidationError("At least one item is required")

        items = await self._load_eligible_items(kind, scope, item_ids)
        payload = await self._validate_parameters(kind, scope, items, parameters)
        payload["item_ids"] = [item.id for item in items]

        draft = Draft.propose(kind, scope, payload, self._summarize(kind, items, payload))
        async with self._uow.atomic():
            draft = await self._drafts.create(draft)

        logger.info("Created %s draft %s for %d item(s)", kind.value, draft.id, len(items))
        return draft, SessionPatch(pending_draft=PendingDraft.of(draft))

    # ------------------------------------------------------------------
    # Phase two
    # ------------------------------------------------------------------

    async def submit_draft(
        self,
        draft_id: str,
        scope: Scope,
        pending: Optional[PendingDraft] = None,
    ) -> tuple[dict[str, Any], SessionPatch]:
        """
        Confirm a draft and perform its mutation.

        Raises:
            NotFoundError: No such draft in this tenant and account
            AlreadyConfirmedError: The draft was already submitted
            DraftCancelledError: The draft was declined
            ValidationError: The items are no longer eligible
        """
        scope.require("submit_draft")
        draft = await self._drafts.find(draft_id, scope)
        if draft is None or not draft.visible_to(scope):
            raise NotFoundError("draft", draft_id)
        draft.ensure_submittable()

        async with self._uow.atomic():
            items = await self._load_eligible_items(draft.kind, scope, draft.item_ids)
            await self._validate_parameters(draft.kind, scope, items, dict(draft.payload))
            result = await self._apply(draft, scope)
            if not await self._drafts.mark_confirmed(draft.id, scope, result):
                raise AlreadyConfirmedError(draft.id)

        logger.info("Confirmed %s draft %s", draft.kind.value, draft.id)
        return {"draft_id": draft.id, "kind": draft.kind.value, **result}, self._clear_if_pending(
            draft.id, pending
        )

    async def cancel_draft(
        self,
        draft_id: str,
        scope: Scope,
        pending: Optional[PendingDraft] = None,
    ) -> SessionPatch:
        scope.require("cancel_draft")
        draft = await self._drafts.find(draft_id, scope)
        if draft is None:
            raise NotFoundError("draft", draft_id)
        draft.ensure_submittable()
        async with self._uow.atomic():
            if not await self._drafts.mark_cancelled(draft.id, scope):
                raise AlreadyConfirmedError(draft.id)
        logger.info("Cancelled %s draft %s", draft.kind.value, draft.id)
        return self._clear_if_pending(draft.id, pending)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def _load_eligible_items(
        self, kind: DraftKind, scope: Scope, item_ids: list[str]
    ) -> list[ItemRecord]:
        unique_ids = list(dict.fromkeys(item_ids))
        found = {item.id: item for item in await self._warehouse.get_items(scope, unique_ids)}

        items: list[ItemRecord] = []
        for item_id in unique_ids:
            item = found.get(item_id)
            if item is None or (
                scope.sub_account_id and item.sub_account_id != scope.sub_account_id
            ):
                raise NotFoundError("item", item_id)
            items.append(item)

        commitments = await self._warehouse.get_item_commitments(scope, unique_ids)
        for item in items:
            self._check_commitments(kind, item, commitments.get(item.id, ItemCommitments()))
            if item.status not in _ELIGIBLE_STATUSES[kind]:
                raise ValidationError(
                    f"Item {item.item_code} is {item.status.value.replace('_', ' ')} and cannot "
                    f"be used for {_ACTION_NAMES[kind]}",
                    details={"item_id": item.id, "status": item.status.value},
                )
        return items

    @staticmethod
    def _check_commitments(kind: DraftKind, item: ItemRecord, commitments: ItemCommitments) -> None:
        for attr in _BLOCKING_COMMITMENTS[kind]:
            reference = getattr(commitments, attr)
            if reference:
                raise ValidationError(
                    f"Item {item.item_code} {_COMMITMENT_REASONS[attr]} ({reference})",
                    details={"item_id": item.id, "blocking": reference},
                )

    async def _validate_parameters(
        self,
        kind: DraftKind,
        scope: Scope,
        items: list[ItemRecord],
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        if kind == DraftKind.WILL_CALL:
            pickup_date = _parse_date(parameters.get("pickup_date"))
            if pickup_date and pickup_date < datetime.now(timezone.utc).date():
                raise ValidationError("The pickup date cannot be in the past")
            return {
                "pickup_date": pickup_date.isoformat() if pickup_date else None,
                "released_to": parameters.get("released_to"),
                "notes": parameters.get("notes"),
            }

        if kind == DraftKind.REPAIR_QUOTE:
            notes = (parameters.get("notes") or "").strip()
            if not notes:
                raise ValidationError("Describe the damage so the repair can be quoted")
            return {"notes": notes}

        if kind == DraftKind.REALLOCATION:
            target_id = parameters.get("to_sub_account_id")
            if not target_id:
                raise ValidationError("A destination sub-account is required")
            target = await self._warehouse.get_sub_account(scope, target_id)
            if target is None:
                raise NotFoundError("sub-account", target_id)
            already_there = [i.item_code for i in items if i.sub_account_id == target.id]
            if already_there:
                raise ValidationError(
                    f"{', '.join(already_there)} already belong to {target.name}",
                    details={"to_sub_account_id": target.id},
                )
            return {"to_sub_account_id": target.id, "to_sub_account_name": target.name}

        reason = (parameters.get("reason") or "").strip()
        if not reason:
            raise ValidationError("A reason for disposal is required")
        return {"reason": reason}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def _apply(self, draft: Draft, scope: Scope) -> dict[str, Any]:
        payload = draft.payload
        if draft.kind == DraftKind.WILL_CALL:
            return await self._warehouse.create_will_call(
                scope,
                draft.item_ids,
                pickup_date=_parse_date(payload.get("pickup_date")),
                released_to=payload.get("released_to"),
                notes=payload.get("notes"),
            )
        if draft.kind == DraftKind.REPAIR_QUOTE:
            return await self._warehouse.create_repair_quote(
                scope, draft.item_ids, payload["notes"]
            )
        if draft.kind == DraftKind.REALLOCATION:
            return await self._warehouse.reallocate_items(
                scope, draft.item_ids, payload["to_sub_account_id"]
            )
        return await self._warehouse.create_disposal_request(
            scope, draft.item_ids, payload["reason"]
        )

    @staticmethod
    def _summarize(kind: DraftKind, items: list[ItemRecord], payload: dict[str, Any]) -> str:
        listed = ", ".join(item.label for item in items[:5])
        if len(items) > 5:
            listed += f" and {len(items) - 5} more"
        noun = "item" if len(items) == 1 else "items"

        if kind == DraftKind.WILL_CALL:
            summary = f"Will call pickup for {len(items)} {noun}: {listed}"
            if payload.get("pickup_date"):
                summary += f" on {payload['pickup_date']}"
            if payload.get("released_to"):
                summary += f", released to {payload['released_to']}"
            return summary
        if kind == DraftKind.REPAIR_QUOTE:
            return f"Repair quote request for {len(items)} {noun}: {listed} ({payload['notes']})"
        if kind == DraftKind.REALLOCATION:
            return f"Move {len(items)} {noun} to {payload['to_sub_account_name']}: {listed}"
        return f"Dispose of {len(items)} {noun}: {listed} (reason: {payload['reason']})"

    @staticmethod
    def _clear_if_pending(draft_id: str, pending: Optional[PendingDraft]) -> SessionPatch:
        if pending is None or pending.draft_id == draft_id:
            return SessionPatch(pending_draft=None)
        return SessionPatch()


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(f"'{value}' is not a valid date (use YYYY-MM-DD)") from e
