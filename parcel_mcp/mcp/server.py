import sys
import json
import logging
import threading
from typing import Optional, Dict, Any, BinaryIO, TextIO

from .dispatcher import ToolDispatcher
from .handlers import handle_call_tool, handle_initialize, handle_list_tools, new_session_state
from .protocol import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, METHOD_NOT_FOUND

logger = logging.getLogger("ParcelMCP.mcp.server")

NOT_INITIALIZED_MESSAGE = "Server not initialized. Send initialize then notifications/initialized."


class McpServer:
    """
    JSON-RPC 2.0 over stdio.

    Messages are handled one at a time in arrival order; the tool dispatcher
    (and its context memory) is shared with the HTTP bridge.
    """
    def __init__(
        self,
        dispatcher: ToolDispatcher,
        output: Optional[TextIO] = None,
    ):
        self.dispatcher = dispatcher
        self.output = output
        self.session = new_session_state()
        self.transport_closed = threading.Event()
        self.write_lock = threading.Lock()

    def stop(self):
        self.transport_closed.set()

    def send_rpc(self, message: Dict[str, Any]) -> None:
        """Serialize and send a JSON-RPC message to stdout."""
        if self.transport_closed.is_set():
            return

        stream = self.output if self.output is not None else sys.stdout
        try:
            serialized = json.dumps(message)
            with self.write_lock:
                if self.transport_closed.is_set():
                    return
                stream.write(serialized + "\n")
                stream.flush()
        except (BrokenPipeError, OSError) as exc:
            self.transport_closed.set()
            logger.warning("MCP stdio transport closed while sending: %s", exc)

    def send_result(self, msg_id: Any, result: Any) -> None:
        self.send_rpc({"jsonrpc": "2.0", "id": msg_id, "result": result})

    def send_error(self, msg_id: Any, code: int, message: str) -> None:
        """Convenience method for sending JSON-RPC errors."""
        self.send_rpc({
            "jsonrpc": "2.0",
            "id": msg_id,
            "error": {
                "code": code,
                "message": message,
            },
        })

    def read_message(self, stream: BinaryIO) -> Optional[Dict[str, Any]]:
        """
        Read one inbound JSON-RPC message from a binary stream.
        Supports Content-Length framing and newline-delimited JSON.
        """
        while True:
            line = stream.readline()
            if not line:
                return None
            if not line.strip():
                continue

            lowered = line.lower()
            if lowered.startswith(b"content-length:"):
                try:
                    content_length = int(line.split(b":", 1)[1].strip())
                    if content_length <= 0:
                        raise ValueError("content length must be positive")
                except ValueError:
                    logger.warning("Invalid Content-Length header: %r", line)
                    if not self._consume_framing_headers(stream):
                        return None
                    continue

                if not self._consume_framing_headers(stream):
                    return None

                payload = stream.read(content_length)
                if not payload or len(payload) != content_length:
                    logger.warning("Truncated framed JSON payload")
                    return None

                try:
                    msg = json.loads(payload.decode("utf-8"))
                except (UnicodeDecodeError, json.JSONDecodeError):
                    logger.warning("Invalid framed JSON payload")
                    continue

                if isinstance(msg, dict):
                    return msg
                continue

            try:
                msg = json.loads(line.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                logger.debug("Skipping non-JSON line on stdio transport")
                continue

            if isinstance(msg, dict):
                return msg
            continue

    def _consume_framing_headers(self, stream: BinaryIO) -> bool:
        while True:
            header_line = stream.readline()
            if not header_line:
                return False
            if header_line in (b"\r\n", b"\n"):
                return True

    def _request_params(self, msg_id: Any, method: str, params: Any) -> Optional[Dict[str, Any]]:
        """Check lifecycle and params shape for request methods."""
        if not self.session["negotiated"]:
            if msg_id is not None:
                self.send_error(msg_id, INVALID_REQUEST, NOT_INITIALIZED_MESSAGE)
            return None
        if msg_id is None:
            logger.debug("Ignoring %s notification without id", method)
            return None
        validated = {} if params is None else params
        if not isinstance(validated, dict):
            self.send_error(msg_id, INVALID_PARAMS, f"Invalid params: {method} params must be an object")
            return None
        return validated

    def dispatch(self, msg: Dict[str, Any]) -> None:
        """
        Handle a single parsed JSON-RPC message.

        Unknown request methods (with id) return -32601; unknown
        notifications (no id) are ignored.
        """
        msg_id = msg.get("id")
        method = msg.get("method")
        params = msg.get("params")

        if not isinstance(method, str):
            if msg_id is not None:
                self.send_error(msg_id, INVALID_REQUEST, "Invalid Request: missing method")
            return

        if method == "initialize":
            if params is None:
                params = {}
            if not isinstance(params, dict):
                self.send_error(msg_id, INVALID_PARAMS, "Invalid params: initialize params must be an object")
                return
            handle_initialize(msg_id, params, self.session, self.send_error, self.send_result)
            return

        if method == "notifications/initialized":
            if self.session["negotiated"]:
                self.session["initialized"] = True
                logger.info("Client initialized connection")
            else:
                logger.warning("Ignored notifications/initialized before successful initialize")
            return

        if method == "ping":
            if msg_id is not None:
                self.send_result(msg_id, {})
            return

        if method == "tools/list":
            if self._request_params(msg_id, method, params) is None:
                return
            handle_list_tools(msg_id, self.dispatcher, self.send_result)
            return

        if method == "tools/call":
            validated = self._request_params(msg_id, method, params)
            if validated is None:
                return
            handle_call_tool(msg_id, validated, self.dispatcher, self.send_error, self.send_result)
            return

        if msg_id is not None:
            self.send_error(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}")
        else:
            logger.debug("Ignoring unknown notification method: %s", method)

    def dispatch_guarded(self, msg: Dict[str, Any]) -> None:
        try:
            self.dispatch(msg)
        except Exception:
            logger.exception("Unexpected error during RPC dispatch")
            msg_id = msg.get("id")
            if msg_id is not None and not self.transport_closed.is_set():
                self.send_error(msg_id, INTERNAL_ERROR, "Internal error during request dispatch.")

    def serve_forever(self, stream: Optional[BinaryIO] = None) -> None:
        """Read and dispatch messages until stdin closes."""
        source = stream or sys.stdin.buffer
        logger.info("MCP stdio transport started")
        while not self.transport_closed.is_set():
            msg = self.read_message(source)
            if msg is None:
                break
            self.dispatch_guarded(msg)
        logger.info("MCP stdio transport stopped")
