"""
Parcel MCP core: entity accessors, list normalization and context memory.
"""

from parcel_mcp.core.context import ContextMemory
from parcel_mcp.core.normalize import LIST_SHAPE_PROBES, normalize_list_payload

__all__ = ["ContextMemory", "LIST_SHAPE_PROBES", "normalize_list_payload"]
