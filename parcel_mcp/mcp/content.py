"""
Tool result content blocks.

Text blocks follow MCP (`{"type": "text", "text": ...}`); structured data is
carried as `{"type": "json", "json": ...}`, the shape the frontend consumes.
"""

from typing import Any, Dict, List, Optional

TEXT = "text"
JSON = "json"


def text_block(text: Any) -> Dict[str, Any]:
    return {"type": TEXT, "text": str(text)}


def json_block(value: Any) -> Dict[str, Any]:
    return {"type": JSON, "json": value}


def text_content(text: Any) -> List[Dict[str, Any]]:
    return [text_block(text)]


def first_block(content: Any) -> Optional[Dict[str, Any]]:
    if isinstance(content, list) and content and isinstance(content[0], dict):
        return content[0]
    return None
