"""
Process entry point.

    parcel-mcp              # HTTP bridge in the background + MCP on stdio
    parcel-mcp stdio        # MCP on stdio only
    parcel-mcp http         # HTTP bridge only
    parcel-mcp tools        # print the tool catalog
"""

import argparse
import json
import logging
import sys
import threading
from typing import List, Optional

import uvicorn
from dotenv import load_dotenv

from parcel_mcp.backend.client import BackendClient
from parcel_mcp.bridge.api import create_app
from parcel_mcp.config import BridgeConfig
from parcel_mcp.core.context import ContextMemory
from parcel_mcp.llm.completion import CompletionClient
from parcel_mcp.logging_setup import configure_logging
from parcel_mcp.mcp.definitions import tool_definitions
from parcel_mcp.mcp.dispatcher import ToolDispatcher
from parcel_mcp.mcp.server import McpServer
from parcel_mcp.version import __version__

logger = logging.getLogger("ParcelMCP.cli")

COMMANDS = ("serve", "stdio", "http", "tools")


def build_dispatcher(config: BridgeConfig) -> ToolDispatcher:
    """One dispatcher (and one context memory) shared by every transport."""
    return ToolDispatcher(
        backend=BackendClient(config.backend),
        completion=CompletionClient(config.llm),
        memory=ContextMemory(),
    )


def build_http_server(dispatcher: ToolDispatcher, host: str, port: int) -> uvicorn.Server:
    app = create_app(dispatcher, dispatcher.completion)
    # No uvicorn log config and no access log: stdout is reserved for MCP.
    return uvicorn.Server(uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        access_log=False,
    ))


def start_http_thread(server: uvicorn.Server) -> threading.Thread:
    thread = threading.Thread(target=server.run, name="parcel-mcp-http", daemon=True)
    thread.start()
    return thread


def run_stdio(dispatcher: ToolDispatcher) -> None:
    McpServer(dispatcher).serve_forever()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="parcel-mcp", description="Parcel projects MCP server and HTTP bridge")
    parser.add_argument("command", nargs="?", default="serve", choices=COMMANDS, help="What to run (default: serve)")
    parser.add_argument("--host", default=None, help="HTTP bridge host (overrides MCP_HTTP_HOST)")
    parser.add_argument("--port", type=int, default=None, help="HTTP bridge port (overrides MCP_HTTP_PORT)")
    parser.add_argument("--env-file", default=None, help="Path to a .env file (default: ./.env)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    load_dotenv(args.env_file)
    config = BridgeConfig.from_env()
    configure_logging(config.log.level, config.log.file)

    if args.command == "tools":
        # Catalog output is the one thing written to stdout outside the MCP loop.
        print(json.dumps(tool_definitions(), indent=2, ensure_ascii=False))
        return 0

    host = args.host or config.http.host
    port = args.port or config.http.port
    dispatcher = build_dispatcher(config)

    if not config.llm.configured:
        logger.info("OPENAI_API_KEY not set; ai.summarize, notes summaries and /chat are disabled")

    try:
        if args.command == "http":
            logger.info("Starting HTTP bridge on http://%s:%d", host, port)
            build_http_server(dispatcher, host, port).run()
            return 0

        http_thread = None
        if args.command == "serve":
            logger.info("Starting HTTP bridge on http://%s:%d", host, port)
            http_thread = start_http_thread(build_http_server(dispatcher, host, port))

        logger.info("Parcel MCP server %s started (backend: %s)", __version__, config.backend.base_url)
        run_stdio(dispatcher)

        if http_thread is not None and http_thread.is_alive():
            logger.info("stdin closed; HTTP bridge keeps serving until interrupted")
            http_thread.join()
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
        return 130
    finally:
        dispatcher.backend.close()
        dispatcher.completion.close()


if __name__ == "__main__":
    sys.exit(main())
