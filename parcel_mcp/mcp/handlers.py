import logging
import time
from typing import Any, Callable, Dict

from parcel_mcp.errors import ToolBridgeError
from parcel_mcp.version import __version__

from .content import text_content
from .dispatcher import ToolDispatcher
from .protocol import INVALID_PARAMS, SERVER_NAME, SUPPORTED_PROTOCOL_VERSIONS, negotiate_protocol_version

logger = logging.getLogger("ParcelMCP.mcp.handlers")

SendFn = Callable[[Any, Any], None]
SendErrorFn = Callable[[Any, int, str], None]


def new_session_state() -> Dict[str, Any]:
    return {
        "negotiated": False,
        "initialized": False,
        "protocol_version": SUPPORTED_PROTOCOL_VERSIONS[0],
        "client_capabilities": {},
        "client_info": {},
    }


def handle_initialize(msg_id: Any, params: Dict[str, Any], session: Dict[str, Any], send_error_fn: SendErrorFn, send_result_fn: SendFn):
    """Handle protocol negotiation."""
    requested_version = params.get("protocolVersion")
    negotiated_version = negotiate_protocol_version(requested_version)
    if not negotiated_version:
        send_error_fn(
            msg_id,
            INVALID_PARAMS,
            f"Unsupported protocol version: {requested_version}. "
            f"Supported versions: {', '.join(SUPPORTED_PROTOCOL_VERSIONS)}",
        )
        return

    capabilities = params.get("capabilities")
    client_info = params.get("clientInfo")
    session["negotiated"] = True
    session["initialized"] = False
    session["protocol_version"] = negotiated_version
    session["client_capabilities"] = capabilities if isinstance(capabilities, dict) else {}
    session["client_info"] = client_info if isinstance(client_info, dict) else {}

    send_result_fn(msg_id, {
        "protocolVersion": negotiated_version,
        "capabilities": {
            "tools": {
                "listChanged": False
            }
        },
        "serverInfo": {"name": SERVER_NAME, "version": __version__},
        "instructions": (
            "Parcel projects MCP server. Create, look up, update, search and delete zoning "
            "projects. get/delete accept no arguments to act on the last viewed project or "
            "the first result of the last search."
        ),
    })


def handle_list_tools(msg_id: Any, dispatcher: ToolDispatcher, send_result_fn: SendFn):
    send_result_fn(msg_id, {"tools": dispatcher.list_tools()})


def handle_call_tool(msg_id: Any, params: Dict[str, Any], dispatcher: ToolDispatcher, send_error_fn: SendErrorFn, send_result_fn: SendFn):
    """
    Execute a single tool call.

    Tool failures are reported in-band as an `isError` result so the host
    sees the message and the connection stays usable. Only malformed params
    produce a JSON-RPC error.
    """
    name = params.get("name")
    if not isinstance(name, str) or not name.strip():
        send_error_fn(msg_id, INVALID_PARAMS, "Invalid params: tools/call requires non-empty string name")
        return
    arguments = params.get("arguments")
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        send_error_fn(msg_id, INVALID_PARAMS, "Invalid params: tools/call arguments must be an object")
        return

    name = name.strip()
    outcome = "success"
    started = time.monotonic()
    try:
        content = dispatcher.invoke(name, arguments)
        send_result_fn(msg_id, {"content": content})
    except ToolBridgeError as exc:
        outcome = "tool_error"
        logger.warning("Tool %s failed: %s", name, exc)
        send_result_fn(msg_id, {"isError": True, "content": text_content(str(exc))})
    except Exception as exc:
        outcome = "error"
        logger.exception("Tool execution failed: %s", name)
        send_result_fn(msg_id, {"isError": True, "content": text_content(str(exc) or repr(exc))})
    finally:
        elapsed_ms = (time.monotonic() - started) * 1000.0
        logger.info(
            "Tool call telemetry: name=%s id=%r outcome=%s elapsed_ms=%.1f",
            name, msg_id, outcome, elapsed_ms,
        )
