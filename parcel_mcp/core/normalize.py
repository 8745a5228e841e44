"""
List payload normalization.

The project backend has shipped several list envelopes over time (bare
arrays, `{items}`, `{data}`, `{rows}`, `{data: {items}}` ...). Every list
response goes through `normalize_list_payload` so the rest of the bridge only
ever sees `{"items": [...], "total": n}`.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

from parcel_mcp.errors import InvalidPayloadError

# (container path, key) pairs probed in order; the first list found wins.
LIST_SHAPE_PROBES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    ((), "items"),
    ((), "data"),
    ((), "results"),
    ((), "rows"),
    ((), "projects"),
    (("data",), "items"),
)

TOTAL_KEYS: Tuple[str, ...] = ("total", "count", "totalCount")


def _resolve_container(value: Dict[str, Any], path: Tuple[str, ...]) -> Optional[Dict[str, Any]]:
    container: Any = value
    for key in path:
        if not isinstance(container, dict):
            return None
        container = container.get(key)
    return container if isinstance(container, dict) else None


def _coerce_total(raw: Any, fallback: int) -> Any:
    """Coerce a reported total to a non-negative number; integral values become int."""
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return 0
        try:
            raw = float(text)
        except ValueError:
            return fallback
    if not isinstance(raw, (int, float)):
        return fallback
    if not math.isfinite(raw) or raw < 0:
        return fallback
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    return raw


def _extract_total(container: Dict[str, Any], items: List[Any]) -> Any:
    for key in TOTAL_KEYS:
        raw = container.get(key)
        if raw is not None:
            return _coerce_total(raw, len(items))
    return len(items)


def normalize_list_payload(value: Any) -> Dict[str, Any]:
    """
    Coerce a list-style backend response into `{"items": [...], "total": n}`.

    Raises InvalidPayloadError when `value` is neither a list nor an object.
    Objects without a recognised list property are treated as a single row.
    """
    if isinstance(value, list):
        return {"items": value, "total": len(value)}
    if not isinstance(value, dict):
        raise InvalidPayloadError("Invalid list payload: expected array or object")

    for path, key in LIST_SHAPE_PROBES:
        container = _resolve_container(value, path)
        if container is None:
            continue
        items = container.get(key)
        if isinstance(items, list):
            return {"items": items, "total": _extract_total(container, items)}

    return {"items": [value], "total": 1}
