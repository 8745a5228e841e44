from enum import Enum
from typing import Any, Dict, List, Tuple

JSON_SCHEMA_2020_12 = "https://json-schema.org/draft/2020-12/schema"


class ToolName(str, Enum):
    AI_SUMMARIZE = "ai.summarize"
    PROJECTS_CREATE = "projects.create"
    PROJECTS_GET = "projects.get"
    PROJECTS_UPDATE = "projects.update"
    PROJECTS_DELETE = "projects.delete"
    PROJECTS_DELETE_RANDOM = "projects.deleteRandom"
    PROJECTS_SEARCH = "projects.search"


TOOLS_SCHEMAS: Tuple[Dict[str, Any], ...] = (
    {
        "name": ToolName.AI_SUMMARIZE.value,
        "description": "Summarize any given text in 1–3 bullet points.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "The text to summarize."}
            },
            "required": ["text"]
        }
    },
    {
        "name": ToolName.PROJECTS_CREATE.value,
        "description": "Create a project (projectName, address, zoningCode, zoneType, optional notes)",
        "inputSchema": {
            "type": "object",
            "properties": {
                "projectName": {"type": "string"},
                "address": {"type": "string"},
                "zoningCode": {"type": "string"},
                "zoneType": {"type": "string"},
                "notes": {"type": "string"}
            },
            "required": ["projectName", "address", "zoningCode", "zoneType"]
        }
    },
    {
        "name": ToolName.PROJECTS_GET.value,
        "description": (
            "Get a project by id OR projectName (if projectName is provided, server will search "
            "and get first match). Optionally summarizes notes if OpenAI key is set."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "projectName": {"type": "string"}
            },
            "required": []
        }
    },
    {
        "name": ToolName.PROJECTS_UPDATE.value,
        "description": "Update a project by id (partial fields). Uses PUT to match backend.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "projectName": {"type": "string"},
                "address": {"type": "string"},
                "zoningCode": {"type": "string"},
                "zoneType": {"type": "string"},
                "notes": {"type": "string"}
            },
            "required": ["id"]
        }
    },
    {
        "name": ToolName.PROJECTS_DELETE.value,
        "description": (
            "Delete a project by id OR by projectName. If neither is provided, will use last "
            "viewed project or the first item from the last search."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "projectName": {"type": "string"}
            },
            "required": []
        }
    },
    {
        "name": ToolName.PROJECTS_DELETE_RANDOM.value,
        "description": (
            "Delete a random project: fetch a batch, choose one randomly, delete it, and return "
            "which one was deleted."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "limit": {"type": "number", "description": "Batch size to sample from (default 25)"}
            },
            "required": []
        }
    },
    {
        "name": ToolName.PROJECTS_SEARCH.value,
        "description": (
            "Search/filter via GET /projects using q, zoning_code, zone_type, address, city, "
            "state, plus page/limit."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "q": {"type": "string"},
                "zoning_code": {"type": "string"},
                "zone_type": {"type": "string"},
                "address": {"type": "string"},
                "city": {"type": "string"},
                "state": {"type": "string"},
                "page": {"type": "number"},
                "limit": {"type": "number"}
            }
        }
    },
)

READ_ONLY_TOOLS = {
    ToolName.AI_SUMMARIZE.value,
    ToolName.PROJECTS_GET.value,
    ToolName.PROJECTS_SEARCH.value,
}

DESTRUCTIVE_TOOLS = {
    ToolName.PROJECTS_DELETE.value,
    ToolName.PROJECTS_DELETE_RANDOM.value,
}

IDEMPOTENT_TOOLS = READ_ONLY_TOOLS.union({
    ToolName.PROJECTS_UPDATE.value,
    ToolName.PROJECTS_DELETE.value,
})

TOOL_NAMES: Tuple[str, ...] = tuple(schema["name"] for schema in TOOLS_SCHEMAS)


def tool_definitions() -> List[Dict[str, Any]]:
    """Tool catalog in MCP `tools/list` shape, with annotations and schema dialect."""
    tools_list = []
    for schema_def in TOOLS_SCHEMAS:
        name = schema_def["name"]
        input_schema = dict(schema_def["inputSchema"])
        input_schema.setdefault("$schema", JSON_SCHEMA_2020_12)
        read_only = name in READ_ONLY_TOOLS
        tools_list.append({
            "name": name,
            "description": schema_def["description"],
            "inputSchema": input_schema,
            "annotations": {
                "readOnlyHint": read_only,
                "destructiveHint": name in DESTRUCTIVE_TOOLS,
                "idempotentHint": name in IDEMPOTENT_TOOLS,
                "openWorldHint": True,
            },
        })
    return tools_list
