"""
Markdown rendering of tool results for the browser frontend.
"""

import json
from typing import Any, Dict, List, Optional

from parcel_mcp.core.entity import entity_id, entity_name, first_present, zone_type, zoning_code

from .content import first_block
from .definitions import ToolName

SEARCH_PREVIEW_LIMIT = 5
PLACEHOLDER = "—"


def md_escape(value: Any) -> str:
    return ("" if value is None else str(value)).replace("|", "\\|")


def _or_placeholder(value: Any) -> Any:
    return PLACEHOLDER if value is None else value


def render_search(payload: Any) -> str:
    payload = payload if isinstance(payload, dict) else {}
    items = payload.get("items")
    items = items if isinstance(items, list) else []
    total = payload.get("total")
    if total is None:
        total = len(items)
    if not items:
        return "No matching projects found."

    head = "| Project | Address | Zoning | Zone Type | ID |\n|---|---|---|---|---|"
    rows = []
    for project in items[:SEARCH_PREVIEW_LIMIT]:
        cells = [
            md_escape(_or_placeholder(entity_name(project))),
            md_escape(_or_placeholder(first_present(project, ("address",)))),
            md_escape(_or_placeholder(zoning_code(project))),
            md_escape(_or_placeholder(zone_type(project))),
        ]
        rows.append(
            f"| {' | '.join(cells)} | `{md_escape(_or_placeholder(entity_id(project)))}` |"
        )

    more = ""
    if isinstance(total, (int, float)) and total > SEARCH_PREVIEW_LIMIT:
        more = f"\n\n_Showing {SEARCH_PREVIEW_LIMIT} of {total} results._"
    plural = "" if total == 1 else "s"
    return f"**Found {total} project{plural}**\n\n{head}\n" + "\n".join(rows) + more


def render_get(project: Any) -> str:
    if not isinstance(project, dict):
        return "Project not found."
    lines = [
        f"**{entity_name(project) or 'Project'}**",
        f"- **ID:** `{_or_placeholder(entity_id(project))}`",
        f"- **Address:** {_or_placeholder(project.get('address'))}",
        f"- **Zoning:** {_or_placeholder(zoning_code(project))}",
        f"- **Zone Type:** {_or_placeholder(zone_type(project))}",
    ]
    if project.get("notes_summary"):
        lines.append(f"- **Notes (summary):** {project['notes_summary']}")
    if project.get("notes"):
        lines.append(f"<details><summary>Full notes</summary>\n\n{project['notes']}\n\n</details>")
    return "\n".join(lines)


def _render_saved(project: Any, verb: str) -> str:
    p = project if isinstance(project, dict) else {}
    # Trailing double spaces are markdown hard line breaks.
    return (
        f"✅ **{verb} project**: **{entity_name(p) or 'Project'}**  \n"
        f"- **ID:** `{_or_placeholder(entity_id(p))}`  \n"
        f"- **Address:** {_or_placeholder(p.get('address'))}  \n"
        f"- **Zoning:** {_or_placeholder(zoning_code(p))}  \n"
        f"- **Zone Type:** {_or_placeholder(zone_type(p))}"
    )


def render_create(project: Any) -> str:
    return _render_saved(project, "Created")


def render_update(project: Any) -> str:
    return _render_saved(project, "Updated")


def render_delete(first: Optional[Dict[str, Any]]) -> str:
    text = first.get("text") if first else None
    return f"✅ {text or 'Deleted.'}"


def render_human(tool_name: str, content: List[Dict[str, Any]]) -> str:
    """Render a tool result as markdown. Pure; identical input gives identical output."""
    first = first_block(content)
    structured = first.get("json") if first else None

    if tool_name == ToolName.PROJECTS_SEARCH.value:
        return render_search(structured)
    if tool_name == ToolName.PROJECTS_GET.value:
        return render_get(structured)
    if tool_name == ToolName.PROJECTS_CREATE.value:
        return render_create(structured)
    if tool_name == ToolName.PROJECTS_UPDATE.value:
        return render_update(structured)
    if tool_name in (ToolName.PROJECTS_DELETE.value, ToolName.PROJECTS_DELETE_RANDOM.value):
        return render_delete(first)
    if tool_name == ToolName.AI_SUMMARIZE.value:
        return (first or {}).get("text") or "Done."

    if first and first.get("text"):
        return first["text"]
    if structured:
        return "```json\n" + json.dumps(structured, indent=2, ensure_ascii=False) + "\n```"
    return "Done."
