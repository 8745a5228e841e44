"""
Minimal OpenAI-compatible chat completion client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from parcel_mcp.config import LLMConfig
from parcel_mcp.errors import (
    NotConfiguredError,
    UpstreamConnectionError,
    UpstreamHTTPError,
    UpstreamTimeoutError,
)

logger = logging.getLogger("ParcelMCP.llm")

NOT_CONFIGURED_MESSAGE = "OpenAI is not configured. Set OPENAI_API_KEY in .env."


@dataclass(frozen=True)
class Completion:
    raw: Any
    text: str


def extract_reply_text(payload: Any) -> str:
    """Return choices[0].message.content, or an empty string when absent."""
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


class CompletionClient:
    """
    Single-turn chat completion against `<base_url>/chat/completions`.

    An empty reply is not an error; callers treat it as "no summary".
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or LLMConfig()
        self.timeout = self.config.timeout_ms / 1000.0
        self._owns_session = session is None
        self._session = session or requests.Session()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    @property
    def is_configured(self) -> bool:
        return self.config.configured

    @property
    def url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/chat/completions"

    def complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 512,
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> Completion:
        if not self.is_configured:
            raise NotConfiguredError("Missing OPENAI_API_KEY in environment")

        body = {
            "model": model or self.config.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        try:
            response = self._session.post(
                self.url,
                json=body,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise UpstreamTimeoutError(self.url, self.timeout) from exc
        except requests.RequestException as exc:
            raise UpstreamConnectionError(f"Failed to reach completion API: {exc}") from exc

        text = response.text or ""
        if not response.ok:
            raise UpstreamHTTPError(
                f"OpenAI API error {response.status_code}: {text}",
                status_code=response.status_code,
                reason=response.reason,
                body=text,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamHTTPError(
                f"OpenAI API returned a non-JSON body: {text[:200]}",
                status_code=response.status_code,
                reason=response.reason,
                body=text,
            ) from exc

        reply = extract_reply_text(payload)
        logger.debug("Completion model=%s max_tokens=%d reply_chars=%d", body["model"], max_tokens, len(reply))
        return Completion(raw=payload, text=reply)
