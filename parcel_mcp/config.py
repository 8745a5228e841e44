"""
Parcel MCP Configuration
------------------------
Centralized configuration for the bridge. Values come from environment
variables (optionally seeded from a `.env` file by the CLI) with the defaults
below.
"""

import os
import logging
from typing import Optional
from pydantic import BaseModel, Field

logger = logging.getLogger("ParcelMCP.Config")

DEFAULT_API_BASE_URL = "http://localhost:3333"
DEFAULT_TIMEOUT_MS = 10000
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_HTTP_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 4545


def _parse_positive_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(float(raw))
        if value <= 0:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected positive number. Using %d.",
            name,
            raw,
            default,
        )
        return default


def _optional_str_env(name: str) -> Optional[str]:
    raw = os.environ.get(name, "").strip()
    return raw or None


class BackendConfig(BaseModel):
    """Remote project store configuration."""
    base_url: str = DEFAULT_API_BASE_URL
    api_key: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


class LLMConfig(BaseModel):
    """OpenAI-compatible chat completion configuration."""
    api_key: Optional[str] = None
    model: str = DEFAULT_OPENAI_MODEL
    base_url: str = DEFAULT_OPENAI_BASE_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


class HttpBridgeConfig(BaseModel):
    """Frontend HTTP bridge configuration."""
    host: str = DEFAULT_HTTP_HOST
    port: int = DEFAULT_HTTP_PORT


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None


class BridgeConfig(BaseModel):
    """Root configuration object."""
    backend: BackendConfig = Field(default_factory=BackendConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    http: HttpBridgeConfig = Field(default_factory=HttpBridgeConfig)
    log: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """
        Load configuration from environment variables.

        Environment variables override defaults:
        - PROJECTS_API_BASE_URL: Backend base URL
        - PROJECTS_API_KEY: Static credential sent as x-api-key
        - MCP_HTTP_TIMEOUT_MS: Per-request timeout for backend and LLM calls
        - OPENAI_API_KEY / OPENAI_MODEL / OPENAI_BASE_URL: Completion provider
        - MCP_HTTP_HOST / MCP_HTTP_PORT: HTTP bridge binding
        - PARCEL_MCP_LOG_LEVEL / PARCEL_MCP_LOG_FILE: Logging
        """
        timeout_ms = _parse_positive_int_env("MCP_HTTP_TIMEOUT_MS", DEFAULT_TIMEOUT_MS)
        return cls(
            backend=BackendConfig(
                base_url=os.environ.get("PROJECTS_API_BASE_URL") or DEFAULT_API_BASE_URL,
                api_key=_optional_str_env("PROJECTS_API_KEY"),
                timeout_ms=timeout_ms,
            ),
            llm=LLMConfig(
                api_key=_optional_str_env("OPENAI_API_KEY"),
                model=os.environ.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
                base_url=os.environ.get("OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL,
                timeout_ms=timeout_ms,
            ),
            http=HttpBridgeConfig(
                host=os.environ.get("MCP_HTTP_HOST") or DEFAULT_HTTP_HOST,
                port=_parse_positive_int_env("MCP_HTTP_PORT", DEFAULT_HTTP_PORT),
            ),
            log=LoggingConfig(
                level=(os.environ.get("PARCEL_MCP_LOG_LEVEL") or "INFO").upper(),
                file=_optional_str_env("PARCEL_MCP_LOG_FILE"),
            ),
        )
