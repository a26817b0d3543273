"""Agent package for the Hub Sales Assistant.

The service-style entry point lives in `agent`; the tool catalog, input
schemas, handlers, dispatcher and prompt assembly sit in their own modules.
"""

from .agent import SalesAssistantService, configuration_status
from .catalog import ToolName, get_tool_catalog
from .dispatcher import ToolDispatcher
from .handlers import ToolHandlers
from .model import ChatModel, ModelResponse

__all__ = [
    "ChatModel",
    "ModelResponse",
    "SalesAssistantService",
    "ToolDispatcher",
    "ToolHandlers",
    "ToolName",
    "configuration_status",
    "get_tool_catalog",
]
