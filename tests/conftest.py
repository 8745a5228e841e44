import copy
import random
from typing import Any, Dict, List, Optional

import pytest

from parcel_mcp.core.context import ContextMemory
from parcel_mcp.errors import UpstreamHTTPError
from parcel_mcp.llm.completion import Completion
from parcel_mcp.mcp.dispatcher import ToolDispatcher


class FakeBackend:
    """In-memory project store with the BackendClient surface."""

    def __init__(self, projects: Optional[List[Dict[str, Any]]] = None):
        self.projects: Dict[str, Dict[str, Any]] = {}
        for project in projects or []:
            self.projects[project["id"]] = dict(project)
        self.list_response: Any = None
        self.calls: List[tuple] = []

    def list_projects(self, params=None):
        self.calls.append(("list", dict(params or {})))
        if self.list_response is not None:
            return copy.deepcopy(self.list_response)
        rows = list(self.projects.values())
        query = (params or {}).get("q")
        if query:
            rows = [row for row in rows if query.lower() in str(row.get("projectName", "")).lower()]
        limit = (params or {}).get("limit")
        if limit:
            rows = rows[: int(limit)]
        return {"items": copy.deepcopy(rows), "total": len(rows)}

    def get_project(self, project_id):
        self.calls.append(("get", project_id))
        if project_id not in self.projects:
            raise UpstreamHTTPError(
                'HTTP 404 Not Found: {"error":"not found"}',
                status_code=404,
                reason="Not Found",
                body='{"error":"not found"}',
            )
        return copy.deepcopy(self.projects[project_id])

    def create_project(self, body):
        self.calls.append(("create", dict(body)))
        project_id = f"p{len(self.projects) + 1}"
        project = {"id": project_id, **body}
        self.projects[project_id] = project
        return copy.deepcopy(project)

    def update_project(self, project_id, body):
        self.calls.append(("update", project_id, dict(body)))
        project = self.projects.setdefault(project_id, {"id": project_id})
        project.update(body)
        return copy.deepcopy(project)

    def delete_project(self, project_id):
        self.calls.append(("delete", project_id))
        self.projects.pop(project_id, None)
        return {"deleted": True}

    def close(self):
        pass

    def calls_of(self, kind: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == kind]


class FakeCompletion:
    """Scripted stand-in for CompletionClient."""

    def __init__(self, replies=None, configured: bool = True, error: Optional[Exception] = None):
        self.replies = list(replies or [])
        self.configured = configured
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def complete(self, messages, max_tokens=512, temperature=0.2, model=None):
        self.calls.append({
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        text = self.replies.pop(0) if self.replies else ""
        return Completion(raw={"choices": [{"message": {"content": text}}]}, text=text)

    def close(self):
        pass


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def completion():
    return FakeCompletion(configured=False)


@pytest.fixture
def memory():
    return ContextMemory()


@pytest.fixture
def dispatcher(backend, completion, memory):
    return ToolDispatcher(backend, completion, memory=memory, rng=random.Random(7))
