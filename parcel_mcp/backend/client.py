"""
HTTP client for the remote project store.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, urlparse

import requests

from parcel_mcp.config import BackendConfig
from parcel_mcp.errors import UpstreamConnectionError, UpstreamHTTPError, UpstreamTimeoutError

logger = logging.getLogger("ParcelMCP.backend")

PROJECTS_PATH = "/projects"


def _normalize_base_url(base_url: str) -> str:
    value = base_url.rstrip("/")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid projects API base URL: {base_url!r}")
    return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def decode_body(text: str) -> Any:
    """Parse a response body as strict JSON, handing back the raw text when it is not JSON."""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return text


class BackendClient:
    """
    Synchronous client for the project CRUD API.

    Every call carries the configured timeout and the static `x-api-key`
    header when one is configured. Nothing is retried.

    Usage:
        client = BackendClient(BackendConfig(base_url="http://localhost:3333"))
        rows = client.list_projects({"q": "Oak", "limit": "5"})
    """

    def __init__(
        self,
        config: Optional[BackendConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or BackendConfig()
        self.base_url = _normalize_base_url(self.config.base_url)
        self.timeout = self.config.timeout_seconds
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._session.headers.setdefault("Accept", "application/json")

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "BackendClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = dict(extra or {})
        if self.config.api_key:
            headers["x-api-key"] = self.config.api_key
        return headers

    def request(
        self,
        path: str,
        method: str = "GET",
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Issue one request and decode the response.

        Returns parsed JSON when the body is JSON and the raw text otherwise.
        Raises UpstreamTimeoutError, UpstreamConnectionError or
        UpstreamHTTPError (non-2xx, carrying status, reason and raw body).
        """
        url = self._url(path)
        request_headers = self._headers(headers)
        if json_body is not None:
            request_headers.setdefault("Content-Type", "application/json")
        try:
            response = self._session.request(
                method=method,
                url=url,
                params=params or None,
                json=json_body,
                headers=request_headers,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.warning("Backend %s %s timed out after %.1fs", method, path, self.timeout)
            raise UpstreamTimeoutError(url, self.timeout) from exc
        except requests.RequestException as exc:
            raise UpstreamConnectionError(
                f"Failed to connect to projects API at {self.base_url}: {exc}"
            ) from exc

        text = response.text or ""
        if not response.ok:
            reason = response.reason or ""
            raise UpstreamHTTPError(
                f"HTTP {response.status_code} {reason}: {text}",
                status_code=response.status_code,
                reason=reason,
                body=text,
            )
        logger.debug("Backend %s %s -> %d", method, path, response.status_code)
        return decode_body(text)

    def _project_path(self, project_id: str) -> str:
        return f"{PROJECTS_PATH}/{quote(str(project_id), safe='')}"

    def list_projects(self, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request(PROJECTS_PATH, params=params)

    def get_project(self, project_id: str) -> Any:
        return self.request(self._project_path(project_id))

    def create_project(self, body: Dict[str, Any]) -> Any:
        return self.request(PROJECTS_PATH, "POST", json_body=body)

    def update_project(self, project_id: str, body: Dict[str, Any]) -> Any:
        return self.request(self._project_path(project_id), "PUT", json_body=body)

    def delete_project(self, project_id: str) -> Any:
        return self.request(self._project_path(project_id), "DELETE")
