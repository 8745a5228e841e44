from .definitions import TOOL_NAMES, ToolName, tool_definitions
from .dispatcher import ToolDispatcher
from .render import render_human
from .server import McpServer

__all__ = [
    "McpServer",
    "TOOL_NAMES",
    "ToolDispatcher",
    "ToolName",
    "render_human",
    "tool_definitions",
]
