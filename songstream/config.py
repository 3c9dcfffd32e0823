"""YAML configuration with environment overrides.

Example config.yaml:

    client:
      endpoint: http://127.0.0.1:8787/api/chat
      persona: music
    server:
      host: 127.0.0.1
      port: 8787
      model_id: "@cf/meta/llama-3.3-70b-instruct-fp8-fast"
      max_tokens: 1024
      account_id: abc123
      # api_token is best supplied via SONGSTREAM_CF_API_TOKEN
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .enrichment import DEFAULT_PERSONA
from .transport import DEFAULT_ENDPOINT

DEFAULT_MODEL_ID = "@cf/meta/llama-3.3-70b-instruct-fp8-fast"
DEFAULT_MAX_TOKENS = 1024

ENV_ENDPOINT = "SONGSTREAM_ENDPOINT"
ENV_ACCOUNT_ID = "SONGSTREAM_CF_ACCOUNT_ID"
ENV_API_TOKEN = "SONGSTREAM_CF_API_TOKEN"


class ConfigError(Exception):
    """Configuration file could not be read or has invalid values."""

    pass


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    return value


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ClientConfig:
    """Settings for the chat client."""

    endpoint: str = DEFAULT_ENDPOINT
    persona: str = DEFAULT_PERSONA

    def to_dict(self) -> dict:
        """Serialize to dict for YAML storage."""
        return {"endpoint": self.endpoint, "persona": self.persona}

    @classmethod
    def from_dict(cls, data: dict) -> ClientConfig:
        """Deserialize from dict."""
        return cls(
            endpoint=str(data.get("endpoint", DEFAULT_ENDPOINT)),
            persona=str(data.get("persona", DEFAULT_PERSONA)),
        )


@dataclass
class ServerConfig:
    """Settings for the chat endpoint server and its inference backend."""

    host: str = "127.0.0.1"
    port: int = 8787
    model_id: str = DEFAULT_MODEL_ID
    max_tokens: int = DEFAULT_MAX_TOKENS
    account_id: str | None = None
    api_token: str | None = None

    def to_dict(self) -> dict:
        """Serialize to dict for YAML storage. The API token is never written."""
        result: dict = {
            "host": self.host,
            "port": self.port,
            "model_id": self.model_id,
            "max_tokens": self.max_tokens,
        }
        if self.account_id is not None:
            result["account_id"] = self.account_id
        return result

    @classmethod
    def from_dict(cls, data: dict) -> ServerConfig:
        """Deserialize from dict.

        Raises:
            ConfigError: If port or max_tokens is not an integer.
        """
        try:
            port = int(data.get("port", 8787))
            max_tokens = int(data.get("max_tokens", DEFAULT_MAX_TOKENS))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid server setting: {exc}") from exc
        return cls(
            host=str(data.get("host", "127.0.0.1")),
            port=port,
            model_id=str(data.get("model_id", DEFAULT_MODEL_ID)),
            max_tokens=max_tokens,
            account_id=data.get("account_id"),
            api_token=data.get("api_token"),
        )


@dataclass
class AppConfig:
    """Top-level configuration."""

    client: ClientConfig = field(default_factory=ClientConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def to_dict(self) -> dict:
        """Serialize to dict for YAML storage."""
        return {"client": self.client.to_dict(), "server": self.server.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> AppConfig:
        """Deserialize from dict."""
        return cls(
            client=ClientConfig.from_dict(_section(data, "client")),
            server=ServerConfig.from_dict(_section(data, "server")),
        )

    def apply_env(self, environ: dict[str, str] | None = None) -> AppConfig:
        """Override settings from environment variables, in place."""
        env = os.environ if environ is None else environ
        if env.get(ENV_ENDPOINT):
            self.client.endpoint = env[ENV_ENDPOINT]
        if env.get(ENV_ACCOUNT_ID):
            self.server.account_id = env[ENV_ACCOUNT_ID]
        if env.get(ENV_API_TOKEN):
            self.server.api_token = env[ENV_API_TOKEN]
        return self


def load_config(path: Path | None, environ: dict[str, str] | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    A missing path or file yields the defaults. Environment overrides are
    applied last.

    Raises:
        ConfigError: If the file is not valid YAML or has invalid values.
    """
    data: dict = {}
    if path is not None and path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        if loaded is not None:
            if not isinstance(loaded, dict):
                raise ConfigError(f"{path} must contain a mapping")
            data = loaded
    return AppConfig.from_dict(data).apply_env(environ)
