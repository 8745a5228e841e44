"""
HTTP bridge for the browser frontend.

Two endpoints share the tool dispatcher (and its context memory) with the
stdio transport:

- POST /tool  {name, arguments}  -> {content, human}
- POST /chat  {text}             -> {plan, content, human}

Every response carries permissive CORS headers; any other route is 404.
"""

import json
import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from parcel_mcp.errors import ToolBridgeError
from parcel_mcp.llm.completion import CompletionClient
from parcel_mcp.mcp.dispatcher import ToolDispatcher
from parcel_mcp.mcp.render import render_human
from parcel_mcp.version import __version__

from .router import route

logger = logging.getLogger("ParcelMCP.bridge.api")

CORS_HEADERS = (
    (b"access-control-allow-origin", b"*"),
    (b"access-control-allow-headers", b"content-type"),
    (b"access-control-allow-methods", b"POST, OPTIONS"),
)


class CorsHeadersMiddleware:
    """
    Pure ASGI middleware: answer every OPTIONS request with 204 and stamp the
    CORS headers onto every other response, error responses included.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            await send({
                "type": "http.response.start",
                "status": 204,
                "headers": list(CORS_HEADERS),
            })
            await send({"type": "http.response.body", "body": b""})
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.extend(CORS_HEADERS)
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, send_with_headers)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def read_json_body(request: Request) -> Dict[str, Any]:
    """Empty body reads as {}; malformed JSON raises."""
    raw = await request.body()
    if not raw:
        return {}
    body = json.loads(raw)
    return body if isinstance(body, dict) else {}


def _failure(label: str, exc: Exception) -> JSONResponse:
    if isinstance(exc, ToolBridgeError):
        logger.warning("%s failed: %s", label, exc)
    else:
        logger.exception("%s failed", label)
    return error_response(500, str(exc) or repr(exc))


def create_app(dispatcher: ToolDispatcher, completion: CompletionClient) -> FastAPI:
    app = FastAPI(
        title="Parcel Projects MCP Bridge",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(CorsHeadersMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and wrong methods are both reported as not found.
        if exc.status_code in (404, 405):
            return error_response(404, "Not found")
        return error_response(exc.status_code, str(exc.detail))

    @app.post("/tool")
    async def call_tool(request: Request):
        try:
            body = await read_json_body(request)
            name = body.get("name")
            if not name:
                return error_response(400, 'Missing "name"')
            tool_name = str(name)
            content = await run_in_threadpool(dispatcher.invoke, tool_name, body.get("arguments") or {})
            return {"content": content, "human": render_human(tool_name, content)}
        except Exception as e:
            return _failure("POST /tool", e)

    @app.post("/chat")
    async def chat(request: Request):
        if not completion.is_configured:
            return error_response(400, "OpenAI not configured")
        try:
            body = await read_json_body(request)
            text = body.get("text")
            if not text or not isinstance(text, str):
                return error_response(400, 'Missing "text" in body')

            plan = await run_in_threadpool(route, completion, dispatcher.list_tools(), text)
            tool_name = str(plan["tool"])
            content = await run_in_threadpool(dispatcher.invoke, tool_name, plan["arguments"])
            return {"plan": plan, "content": content, "human": render_human(tool_name, content)}
        except Exception as e:
            return _failure("POST /chat", e)

    return app
