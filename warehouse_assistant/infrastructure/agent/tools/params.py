"""Parameter models for the assistant tools.

Descriptions double as instructions to the model, so they say what a field
accepts in the user's own terms (item codes, partial numbers, descriptions).
"""

from typing import Literal, Optional

from pydantic import Field, field_validator

from warehouse_assistant.infrastructure.agent.tools.define import ToolParams

ItemStatusFilter = Literal["active", "allocated", "released", "pending_disposal", "disposed"]

_ITEM_REFERENCE = (
    "Item reference: the item id, a full or partial item number (e.g. 12345 or ITM-12345), "
    "or words from the description"
)


# =============================================================================
# READ TOOLS
# =============================================================================


class SearchItemsParams(ToolParams):
    query: str = Field(min_length=1, description=_ITEM_REFERENCE)
    status: Optional[ItemStatusFilter] = Field(
        default=None, description="Only items in this status"
    )
    sub_account_id: Optional[str] = Field(
        default=None, description="Sub-account id, code or name to search within"
    )


class SearchSubAccountsParams(ToolParams):
    query: str = Field(min_length=1, description="Sub-account code, number or name")


class GetItemStatusParams(ToolParams):
    item_id: str = Field(min_length=1, description=_ITEM_REFERENCE)


class SearchShipmentsParams(ToolParams):
    query: Optional[str] = Field(
        default=None, description="Shipment number or words from its notes or release name"
    )
    shipment_type: Optional[Literal["inbound", "will_call", "outbound"]] = None
    status: Optional[str] = Field(default=None, description="Shipment status, e.g. scheduled")


# =============================================================================
# DISAMBIGUATION
# =============================================================================


class ResolveDisambiguationParams(ToolParams):
    selections: Optional[list[int]] = Field(
        default=None, description="Numbers the user picked from the presented list (1-based)"
    )
    select_all: bool = Field(default=False, description="The user wants every listed option")


# =============================================================================
# DRAFTS
# =============================================================================


class _ItemsParams(ToolParams):
    item_ids: list[str] = Field(
        min_length=1, description="Items to include. Each entry is an " + _ITEM_REFERENCE.lower()
    )

    @field_validator("item_ids", mode="before")
    @classmethod
    def _wrap_single(cls, value):
        # Models regularly send a bare string for a one-item list.
        if isinstance(value, str):
            return [value]
        return value


class CreateWillCallDraftParams(_ItemsParams):
    pickup_date: Optional[str] = Field(default=None, description="Pickup date, YYYY-MM-DD")
    released_to: Optional[str] = Field(default=None, description="Person collecting the items")
    notes: Optional[str] = None


class CreateRepairQuoteDraftParams(_ItemsParams):
    notes: str = Field(min_length=1, description="Description of the damage to quote")


class CreateReallocationDraftParams(_ItemsParams):
    to_sub_account_id: str = Field(
        min_length=1, description="Destination sub-account id, code or name"
    )


class CreateDisposalDraftParams(_ItemsParams):
    reason: str = Field(min_length=1, description="Why the items should be disposed of")


class DraftReferenceParams(ToolParams):
    draft_id: Optional[str] = Field(
        default=None, description="Draft id. Defaults to the draft awaiting confirmation"
    )
