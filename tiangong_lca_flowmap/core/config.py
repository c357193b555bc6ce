"""Application configuration primitives."""

from __future__ import annotations

import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRETS_PATH = Path(".secrets/secrets.toml")


def _authorization_header(api_key: str | None, prefix: str = "Bearer") -> dict[str, str]:
    if not api_key:
        return {}
    value = f"{prefix} {api_key}".strip() if prefix else api_key
    return {"Authorization": value}


class Settings(BaseSettings):
    """Central configuration for flow resolution against the Tiangong catalog."""

    mcp_base_url: HttpUrl = "https://lcamcp.tiangong.earth/mcp"
    mcp_api_key: str | None = None
    mcp_transport: Literal["streamable_http"] = "streamable_http"
    mcp_service_name: str = "tiangong_lca_remote"
    flow_search_tool_name: str = "Search_Flows_Tool"
    database_tool_name: str = "Database_CRUD_Tool"

    flow_map_name: str = "Tiangong-Flow-Mapping"

    request_timeout: float = 30.0
    max_retries: int = 3
    retry_backoff: float = 0.5
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    model_config = SettingsConfigDict(env_prefix="LCA_", env_file=(), extra="ignore")

    def mcp_config(self) -> dict[str, Any]:
        """Return the connection block for the catalog MCP service."""
        config: dict[str, Any] = {
            "transport": self.mcp_transport,
            "url": str(self.mcp_base_url),
        }
        headers = _authorization_header(self.mcp_api_key)
        if headers:
            config["headers"] = headers
        if self.request_timeout and self.request_timeout > 0:
            config["timeout"] = float(self.request_timeout)
        return config

    def mcp_service_configs(self) -> dict[str, dict[str, Any]]:
        """Return a mapping of MCP service names to their configuration blocks."""
        return {self.mcp_service_name: self.mcp_config()}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings(**_load_settings_overrides())


def _load_settings_overrides(secrets_path: Path = DEFAULT_SECRETS_PATH) -> dict[str, Any]:
    """Load configuration overrides from the secrets TOML file."""
    if not secrets_path.exists():
        return {}
    with secrets_path.open("rb") as handle:
        data = tomllib.load(handle)
    overrides: dict[str, Any] = {}

    remote = _extract_section(data, "tiangong_lca_remote", "mcp")
    if remote:
        overrides["mcp_base_url"] = remote.get("url")
        overrides["mcp_transport"] = remote.get("transport")
        overrides["mcp_service_name"] = remote.get("service_name")
        overrides["mcp_api_key"] = _sanitize_api_key(remote.get("api_key") or remote.get("authorization"))
        overrides["request_timeout"] = _coerce_float(remote.get("timeout"))

    general_cfg = data.get("lca") or {}
    overrides.update({key: value for key, value in general_cfg.items() if key in Settings.model_fields})
    return {key: value for key, value in overrides.items() if value is not None}


def _extract_section(data: dict[str, Any], *candidates: str) -> dict[str, Any] | None:
    for key in candidates:
        section = data.get(key)
        if isinstance(section, dict):
            return section
    return None


def _sanitize_api_key(value: str | None) -> str | None:
    if not value:
        return None
    token = value.strip()
    if token.lower().startswith("bearer "):
        token = token[len("bearer ") :].strip()
    return token or None


def _coerce_float(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    return None
