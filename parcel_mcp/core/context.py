"""
Short-lived conversational memory.

Holds the last project the assistant touched and the rows of the last search
so follow-ups like "delete it" or "show me the first one" can be resolved
without an explicit id. Nothing is persisted; entries are overwritten on the
next write and may be stale relative to the backend.
"""

import threading
from typing import Any, List, Optional


class ContextMemory:
    """
    Process-wide mutable cell shared by every transport.

    A single RLock serializes writers so readers always observe a complete
    previous write. Concurrent writers on different connections are
    last-write-wins.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._last_entity: Optional[Any] = None
        self._last_search_results: List[Any] = []

    def get_last_entity(self) -> Optional[Any]:
        with self._lock:
            return self._last_entity

    def set_last_entity(self, entity: Optional[Any]) -> None:
        with self._lock:
            self._last_entity = None if entity is None or entity == "" else entity

    def get_last_search_results(self) -> List[Any]:
        with self._lock:
            return list(self._last_search_results)

    def set_last_search_results(self, items: Optional[List[Any]]) -> None:
        with self._lock:
            self._last_search_results = list(items or [])
