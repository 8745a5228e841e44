"""
Tool dispatch and context resolution.

`ToolDispatcher.invoke` validates caller arguments, fills in missing
identifiers from `ContextMemory`, calls the backend or the completion API,
records what it saw back into memory and returns MCP content blocks.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from parcel_mcp.backend.client import BackendClient
from parcel_mcp.core.context import ContextMemory
from parcel_mcp.core.entity import entity_id, entity_name
from parcel_mcp.core.normalize import normalize_list_payload
from parcel_mcp.errors import (
    InvalidArgumentError,
    InvalidPayloadError,
    NotConfiguredError,
    NotFoundError,
    UnknownToolError,
)
from parcel_mcp.llm.completion import NOT_CONFIGURED_MESSAGE, CompletionClient

from .content import json_block, text_content
from .definitions import ToolName, tool_definitions

logger = logging.getLogger("ParcelMCP.mcp.dispatcher")

ContentBlocks = List[Dict[str, Any]]

PROJECT_FIELDS = ("projectName", "address", "zoningCode", "zoneType")
OPTIONAL_PROJECT_FIELDS = PROJECT_FIELDS + ("notes",)
SEARCH_FILTER_KEYS = ("q", "zoning_code", "zone_type", "address", "city", "state")
SEARCH_PAGING_KEYS = ("page", "limit")
DEFAULT_RANDOM_BATCH = 25
RESOLUTION_HINT = 'Provide either "id" or "projectName", or run a search/get first.'

SUMMARIZE_MAX_TOKENS = 180
NOTES_SUMMARY_MAX_TOKENS = 120
SUMMARIZE_SYSTEM_PROMPT = (
    "You are a concise assistant. Summarize the text into 1–3 short bullet points."
)
NOTES_SYSTEM_PROMPT = (
    "You are a concise summarizer. Summarize the project notes into 1–2 sentences."
)


def has_non_empty_string(args: Dict[str, Any], key: str) -> bool:
    value = args.get(key)
    return isinstance(value, str) and value.strip() != ""


def require_string(args: Dict[str, Any], key: str) -> str:
    if not has_non_empty_string(args, key):
        raise InvalidArgumentError(f'Missing or invalid "{key}"')
    return args[key].strip()


def optional_fields(args: Dict[str, Any], keys) -> Dict[str, str]:
    """Stringify the truthy optional fields in `keys`; absent or falsy ones are omitted."""
    return {key: str(args[key]) for key in keys if args.get(key)}


def finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if math.isfinite(value) else None


def format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class ResolvedTarget:
    project_id: str
    display_name: Optional[str] = None


class ToolDispatcher:
    """
    Validates, resolves and executes tool calls.

    The handler table is keyed by `ToolName`, so every registered tool has
    exactly one handler. `rng` is injectable so random deletion can be made
    deterministic in tests.
    """

    def __init__(
        self,
        backend: BackendClient,
        completion: CompletionClient,
        memory: Optional[ContextMemory] = None,
        rng: Optional[random.Random] = None,
    ):
        self.backend = backend
        self.completion = completion
        self.memory = memory or ContextMemory()
        self.rng = rng or random.Random()
        self._handlers: Dict[ToolName, Callable[[Dict[str, Any]], ContentBlocks]] = {
            ToolName.AI_SUMMARIZE: self._summarize,
            ToolName.PROJECTS_CREATE: self._create,
            ToolName.PROJECTS_GET: self._get,
            ToolName.PROJECTS_UPDATE: self._update,
            ToolName.PROJECTS_DELETE: self._delete,
            ToolName.PROJECTS_DELETE_RANDOM: self._delete_random,
            ToolName.PROJECTS_SEARCH: self._search,
        }

    def list_tools(self) -> List[Dict[str, Any]]:
        return tool_definitions()

    def invoke(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ContentBlocks:
        try:
            tool = ToolName(name)
        except ValueError:
            raise UnknownToolError(str(name)) from None
        args = arguments if isinstance(arguments, dict) else {}
        logger.debug("Invoking tool %s with argument keys %s", tool.value, sorted(args))
        return self._handlers[tool](args)

    # --- Context resolution ---

    def _search_first_by_name(self, name: str) -> Optional[Any]:
        result = self.backend.list_projects({"q": name, "limit": "1"})
        items = normalize_list_payload(result)["items"]
        return items[0] if items else None

    def resolve_target(self, args: Dict[str, Any]) -> ResolvedTarget:
        """
        Resolve which project a get/delete call refers to.

        Order: explicit id, explicit projectName (backend lookup), last
        entity, first row of the last search. The display name is the
        requested name for a lookup and the remembered name for memory hits.
        """
        if has_non_empty_string(args, "id"):
            return ResolvedTarget(args["id"].strip())

        if has_non_empty_string(args, "projectName"):
            name = args["projectName"].strip()
            found = self._search_first_by_name(name)
            found_id = entity_id(found)
            if found_id is None:
                raise NotFoundError(f"Project not found by name: {name}")
            return ResolvedTarget(found_id, name)

        last_entity = self.memory.get_last_entity()
        last_id = entity_id(last_entity)
        if last_id is not None:
            return ResolvedTarget(last_id, entity_name(last_entity))

        last_results = self.memory.get_last_search_results()
        first_id = entity_id(last_results[0]) if last_results else None
        if first_id is not None:
            return ResolvedTarget(first_id, entity_name(last_results[0]))

        raise InvalidArgumentError(RESOLUTION_HINT)

    # --- Handlers ---

    def _summarize(self, args: Dict[str, Any]) -> ContentBlocks:
        text = require_string(args, "text")
        if not self.completion.is_configured:
            raise NotConfiguredError(NOT_CONFIGURED_MESSAGE)
        reply = self.completion.complete(
            [
                {"role": "system", "content": SUMMARIZE_SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            max_tokens=SUMMARIZE_MAX_TOKENS,
        )
        return text_content(reply.text)

    def _create(self, args: Dict[str, Any]) -> ContentBlocks:
        body = {key: require_string(args, key) for key in PROJECT_FIELDS}
        body.update(optional_fields(args, ("notes",)))
        created = self.backend.create_project(body)
        self.memory.set_last_entity(created)
        return [json_block(created)]

    def _get(self, args: Dict[str, Any]) -> ContentBlocks:
        target = self.resolve_target(args)
        project = self.backend.get_project(target.project_id)
        if self.completion.is_configured and isinstance(project, dict) and project.get("notes"):
            self._attach_notes_summary(project)
        self.memory.set_last_entity(project)
        return [json_block(project)]

    def _attach_notes_summary(self, project: Dict[str, Any]) -> None:
        # Summarization is optional for get; failures are reported on the entity.
        try:
            reply = self.completion.complete(
                [
                    {"role": "system", "content": NOTES_SYSTEM_PROMPT},
                    {"role": "user", "content": str(project["notes"])},
                ],
                max_tokens=NOTES_SUMMARY_MAX_TOKENS,
            )
            project["notes_summary"] = reply.text
        except Exception as exc:
            logger.warning("Notes summary failed for project %s: %s", entity_id(project), exc)
            project["notes_summary_error"] = str(exc)

    def _update(self, args: Dict[str, Any]) -> ContentBlocks:
        project_id = require_string(args, "id")
        body = optional_fields(args, OPTIONAL_PROJECT_FIELDS)
        updated = self.backend.update_project(project_id, body)
        self.memory.set_last_entity(updated)
        return [json_block(updated)]

    def _delete(self, args: Dict[str, Any]) -> ContentBlocks:
        target = self.resolve_target(args)
        self.backend.delete_project(target.project_id)
        self.memory.set_last_entity(None)
        if target.display_name:
            message = f'Deleted project "{target.display_name}" (id: {target.project_id}).'
        else:
            message = f"Deleted project {target.project_id}."
        return text_content(message)

    def _delete_random(self, args: Dict[str, Any]) -> ContentBlocks:
        limit = finite_number(args.get("limit"))
        batch_limit = max(1, int(limit)) if limit is not None else DEFAULT_RANDOM_BATCH
        result = self.backend.list_projects({"limit": str(batch_limit)})
        items = normalize_list_payload(result)["items"]
        if not items:
            raise NotFoundError("No projects available to delete.")

        pick = self.rng.choice(items)
        project_id = entity_id(pick)
        if project_id is None:
            raise InvalidPayloadError("Selected project has no id field.")
        name = entity_name(pick) or "(unnamed)"

        self.backend.delete_project(project_id)
        self.memory.set_last_entity(None)
        logger.info("Deleted random project %s out of a batch of %d", project_id, len(items))
        return text_content(f'Deleted random project "{name}" (id: {project_id}).')

    def _search(self, args: Dict[str, Any]) -> ContentBlocks:
        params = optional_fields(args, SEARCH_FILTER_KEYS)
        for key in SEARCH_PAGING_KEYS:
            value = finite_number(args.get(key))
            if value is not None:
                params[key] = format_number(value)

        payload = normalize_list_payload(self.backend.list_projects(params))
        self.memory.set_last_search_results(payload["items"])
        return [json_block(payload)]
