"""Assistant tools.

Importing this package registers every tool with the ``@tool_define``
registry.
"""

from warehouse_assistant.infrastructure.agent.tools import (  # noqa: F401
    disambiguation_tools,
    draft_tools,
    search_tools,
)
from warehouse_assistant.infrastructure.agent.tools.context import ToolContext
from warehouse_assistant.infrastructure.agent.tools.define import (
    ToolInfo,
    get_registered_tools,
    tool_define,
    tool_info_to_openai_format,
)
from warehouse_assistant.infrastructure.agent.tools.dispatcher import ToolDispatcher
from warehouse_assistant.infrastructure.agent.tools.result import ToolResult

__all__ = [
    "ToolContext",
    "ToolDispatcher",
    "ToolInfo",
    "ToolResult",
    "get_registered_tools",
    "tool_define",
    "tool_info_to_openai_format",
]
