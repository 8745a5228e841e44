"""
Accessors for the handful of project fields the bridge understands.

Entities are backend-owned JSON objects. Some deployments spell fields in
camelCase and some in snake_case, so every accessor tries its spellings in a
fixed priority order and treats everything else as opaque.
"""

from typing import Any, Optional, Tuple

ID_KEYS: Tuple[str, ...] = ("id", "projectId")
NAME_KEYS: Tuple[str, ...] = ("projectName", "name")
ZONING_CODE_KEYS: Tuple[str, ...] = ("zoningCode", "zoning_code")
ZONE_TYPE_KEYS: Tuple[str, ...] = ("zoneType", "zone_type")


def first_present(entity: Any, keys: Tuple[str, ...]) -> Optional[Any]:
    """Return the first non-null value among `keys`, or None for non-objects."""
    if not isinstance(entity, dict):
        return None
    for key in keys:
        value = entity.get(key)
        if value is not None:
            return value
    return None


def entity_id(entity: Any) -> Optional[str]:
    value = first_present(entity, ID_KEYS)
    if value is None or value == "":
        return None
    return str(value)


def entity_name(entity: Any) -> Optional[str]:
    value = first_present(entity, NAME_KEYS)
    if value is None or value == "":
        return None
    return str(value)


def zoning_code(entity: Any) -> Optional[Any]:
    return first_present(entity, ZONING_CODE_KEYS)


def zone_type(entity: Any) -> Optional[Any]:
    return first_present(entity, ZONE_TYPE_KEYS)
