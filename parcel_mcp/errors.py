"""
Parcel MCP exceptions.
"""

from __future__ import annotations

from typing import Any, Optional


class ToolBridgeError(RuntimeError):
    """Base class for every failure surfaced by a tool call."""


class InvalidArgumentError(ToolBridgeError, ValueError):
    """Raised when caller input fails validation or identifier resolution."""


class NotFoundError(ToolBridgeError):
    """Raised when a name lookup or batch fetch yields nothing."""


class NotConfiguredError(ToolBridgeError):
    """Raised when a required external credential is absent."""


class UnknownToolError(ToolBridgeError):
    """Raised when dispatching a name that is not in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class RouterError(ToolBridgeError):
    """Raised when the free-text router does not produce a usable plan."""


class InvalidPayloadError(ToolBridgeError):
    """Raised when a list response is neither an array nor an object."""


class UpstreamError(ToolBridgeError):
    """Base class for failures talking to the backend or the LLM provider."""


class UpstreamConnectionError(UpstreamError):
    """Raised when a downstream service cannot be reached at all."""


class UpstreamTimeoutError(UpstreamError):
    """Raised when a downstream call exceeds its deadline."""

    def __init__(self, url: str, timeout_seconds: float) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Request to {url} timed out after {timeout_seconds:g}s")


class UpstreamHTTPError(UpstreamError):
    """Raised when a downstream service answers with a non-2xx status."""

    def __init__(
        self,
        detail: str,
        *,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        body: Optional[Any] = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(detail)
