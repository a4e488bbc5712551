"""
System prompt assembly for the client assistant.

The base prompt is fixed. Each turn appends what the model needs to know about
the live session: a pending numbered list, a draft awaiting confirmation, the
items the user has selected on screen, and today's date.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from warehouse_assistant.domain.model.assistant import CandidateSet, PendingDraft

BASE_SYSTEM_PROMPT = """You are the warehouse client assistant. You help customers of the warehouse \
find their stored items, check on deliveries and pickups, and request work on their items.

## Your Role
- Friendly, short and precise answers
- Plain language; explain warehouse terms when you use them
- No emojis
- You only see this customer's data; never mention other customers

## Identifying Records
Users often give partial numbers (e.g. "12345" instead of "ITM-0012345") or describe an item \
("the Jones sofa"). The tools resolve these for you in this order:
1. Exact match
2. Ends-with match
3. Contains match

CRITICAL RULES:
- If exactly one record matches: proceed
- If multiple records match: show the numbered list and ASK the user to choose (never guess)
- When the user answers a numbered list, call tool_resolve_disambiguation with their choice
- After a selection is resolved, use the returned ids in the next tool call

## Execution Safety Rules
Read-only questions (searches, status, shipments) can be answered immediately.

Every change goes through a draft:
1. Call the matching tool_create_*_draft tool
2. Show the user the draft summary and ask "Confirm?"
3. Only after an explicit yes in the user's latest message, call tool_submit_draft
4. If they decline, call tool_cancel_draft and acknowledge

Never submit a draft the user has not confirmed. Never claim a change was made unless \
tool_submit_draft reported it as confirmed.

## Response Style
- Be concise but explicit about what happened
- Always explain why something is blocked
- Use item numbers and shipment numbers as plain text"""


@dataclass
class PromptContext:
    """Per-turn facts appended to the base prompt."""

    today: date
    pending_disambiguation: Optional[CandidateSet] = None
    pending_draft: Optional[PendingDraft] = None
    selected_item_ids: list[str] = field(default_factory=list)
    route: Optional[str] = None


def build_system_prompt(context: PromptContext) -> str:
    sections = [BASE_SYSTEM_PROMPT, f"## Today\n{context.today.isoformat()}"]

    if context.pending_disambiguation is not None:
        options = "\n".join(
            f"{c.index}. {c.label}" for c in context.pending_disambiguation.candidates
        )
        sections.append(
            "## Pending Selection\n"
            f"The user was asked to choose from:\n{options}\n"
            "If their message contains a selection, use tool_resolve_disambiguation."
        )

    if context.pending_draft is not None:
        draft = context.pending_draft
        sections.append(
            "## Pending Confirmation\n"
            f"Draft {draft.draft_id} ({draft.kind.value}) is awaiting confirmation: "
            f"{draft.summary}\n"
            "If the user confirms (yes, confirm, proceed), call tool_submit_draft. "
            "If they decline, call tool_cancel_draft and acknowledge."
        )

    if context.selected_item_ids:
        ids = "\n".join(f"- {item_id}" for item_id in context.selected_item_ids)
        sections.append(
            "## Selected Items\n"
            "The user has these items selected on screen. When they say \"these\" or "
            f"\"the selected items\", use these ids directly:\n{ids}"
        )

    if context.route:
        sections.append(f"## Current Page\n{context.route}")

    return "\n\n".join(sections)
