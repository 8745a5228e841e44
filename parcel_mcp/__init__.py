"""
Parcel projects MCP server: project CRUD tools over MCP stdio and an HTTP
bridge for the browser frontend.
"""

from parcel_mcp.version import __version__
from parcel_mcp.config import BridgeConfig
from parcel_mcp.errors import ToolBridgeError

__all__ = ["BridgeConfig", "ToolBridgeError", "__version__"]
