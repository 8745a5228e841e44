"""
Free-text routing: ask the completion API to pick one tool and its arguments.
"""

import json
import logging
from typing import Any, Dict, Iterable, List

from parcel_mcp.errors import RouterError
from parcel_mcp.llm.completion import CompletionClient

logger = logging.getLogger("ParcelMCP.bridge.router")

ROUTER_MAX_TOKENS = 220
ROUTER_TEMPERATURE = 0

ROUTER_SYSTEM_PROMPT = "You route user requests to one of these tools and return STRICT JSON only."
ROUTER_NOTES = (
    "Notes:\n"
    "- Deletions may use implicit context (last viewed or last search result) if no id/name provided.\n"
    "- There is a projects.deleteRandom tool."
)
ROUTER_OUTPUT_FORMAT = 'Output EXACT JSON: {"tool":"<name>","arguments":{...}}'


def build_router_messages(tools: Iterable[Dict[str, Any]], text: str) -> List[Dict[str, str]]:
    tools_list = "\n".join(f"- {tool['name']}: {tool['description']}" for tool in tools)
    system = f"{ROUTER_SYSTEM_PROMPT}\n\nTOOLS:\n{tools_list}\n\n{ROUTER_NOTES}\n\n{ROUTER_OUTPUT_FORMAT}"
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": text},
    ]


def _first_embedded_object(text: str) -> Any:
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
            return value
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
    raise RouterError("Router did not return JSON")


def extract_plan(text: str) -> Dict[str, Any]:
    """
    Parse the router reply into `{"tool": str, "arguments": dict}`.

    The whole reply is tried as JSON first; models that wrap the object in
    prose fall back to the first decodable `{...}` in the text.
    """
    try:
        plan = json.loads(text)
    except json.JSONDecodeError:
        plan = _first_embedded_object(text)

    if not isinstance(plan, dict) or not plan.get("tool"):
        raise RouterError("Router did not specify tool")
    if not isinstance(plan.get("arguments"), dict):
        plan["arguments"] = {}
    return plan


def route(completion: CompletionClient, tools: Iterable[Dict[str, Any]], text: str) -> Dict[str, Any]:
    reply = completion.complete(
        build_router_messages(tools, text),
        max_tokens=ROUTER_MAX_TOKENS,
        temperature=ROUTER_TEMPERATURE,
    )
    plan = extract_plan(reply.text)
    logger.info("Router selected tool %s", plan["tool"])
    return plan
