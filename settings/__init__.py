"""Environment configuration: API keys, endpoints and cookie policy.

Copy .env.example -> .env and fill in the values; variables already set in
the environment take precedence over the file.
"""
from __future__ import annotations

import os
import typing as t
from dataclasses import dataclass, fields

from dotenv import load_dotenv

from syllabus_server.errors import ConfigError


DEFAULT_LLM_MODEL = "gpt-5"
DEFAULT_COMPOSIO_BASE_URL = "https://backend.composio.dev"
DEFAULT_TOOL_VERSION = "20251027_00"
COOKIE_MAX_AGE = 3600  # 1 hour

# Human-readable names used in ConfigError messages
_ENV_NAMES = {
    "llm_api_key": "LLM_API_KEY (or OPENAI_API_KEY)",
    "composio_api_key": "COMPOSIO_API_KEY",
    "composio_auth_config_id": "COMPOSIO_AUTH_CONFIG_ID",
}


@dataclass(frozen=True)
class Settings:
    llm_api_key: str = ""
    llm_base_url: t.Optional[str] = None
    llm_model: str = DEFAULT_LLM_MODEL
    composio_api_key: str = ""
    composio_base_url: str = DEFAULT_COMPOSIO_BASE_URL
    composio_auth_config_id: str = ""
    tool_version: str = DEFAULT_TOOL_VERSION
    environment: str = "development"
    cookie_max_age: int = COOKIE_MAX_AGE

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def require(self, *names: str) -> None:
        """Raise ``ConfigError`` listing every empty setting among ``names``."""
        known = {f.name for f in fields(self)}
        missing = [n for n in names if n in known and not getattr(self, n)]
        if missing:
            labels = ", ".join(_ENV_NAMES.get(n, n.upper()) for n in missing)
            raise ConfigError(f"Missing configuration: {labels}")


def load_settings(env: t.Optional[t.Mapping[str, str]] = None) -> Settings:
    """Read settings from ``env`` (defaults to ``os.environ`` after loading .env)."""
    if env is None:
        load_dotenv(override=False)
        env = os.environ

    return Settings(
        llm_api_key=env.get("LLM_API_KEY") or env.get("OPENAI_API_KEY", ""),
        llm_base_url=env.get("LLM_BASE_URL") or None,
        llm_model=env.get("LLM_MODEL") or DEFAULT_LLM_MODEL,
        composio_api_key=env.get("COMPOSIO_API_KEY", ""),
        composio_base_url=env.get("COMPOSIO_BASE_URL") or DEFAULT_COMPOSIO_BASE_URL,
        composio_auth_config_id=env.get("COMPOSIO_AUTH_CONFIG_ID", ""),
        tool_version=env.get("COMPOSIO_TOOL_VERSION") or DEFAULT_TOOL_VERSION,
        environment=env.get("ENVIRONMENT", "development"),
    )
