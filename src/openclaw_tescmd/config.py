"""Gateway connection and plugin settings.

Connection values are resolved per field, highest priority first:

1. explicit overrides (CLI flags)
2. environment (``OPENCLAW_GATEWAY_HOST`` / ``_PORT`` / ``_TOKEN``)
3. ``~/.openclaw/openclaw.json`` (``gateway.host``, ``gateway.port``,
   ``gateway.auth.token``)
4. defaults (``127.0.0.1:18789``, empty token)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 18789
DEFAULT_CONFIG_PATH = Path("~/.openclaw/openclaw.json")


class ConnectionConfig(BaseModel):
    """Resolved gateway host, port, and auth token."""

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, gt=0, lt=65536)
    token: str = ""

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


class GatewayEnvSettings(BaseSettings):
    """Gateway connection values read from the environment."""

    model_config = SettingsConfigDict(env_prefix="OPENCLAW_GATEWAY_", extra="ignore")

    host: str | None = None
    port: int | None = None
    token: str | None = None


class _GatewayAuthFile(BaseModel):
    token: str | None = None


class _GatewayFileSection(BaseModel):
    host: str | None = None
    port: int | None = None
    auth: _GatewayAuthFile = Field(default_factory=_GatewayAuthFile)


class _OpenClawFile(BaseModel):
    gateway: _GatewayFileSection = Field(default_factory=_GatewayFileSection)


class PluginSettings(BaseSettings):
    """Plugin-level settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="OPENCLAW_TESCMD_",
        extra="ignore",
    )

    debug: bool = False
    trigger_poll_interval_ms: int = Field(default=30000, gt=0)
    platform: str = "tesla"
    binary: str = "tescmd"
    vin: str | None = None


class ConnectionConfigResolver:
    """Resolve :class:`ConnectionConfig` once and cache it.

    ``resolve()`` never raises: unreadable files and malformed
    environment values are logged and skipped.
    """

    def __init__(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        token: str | None = None,
        config_path: Path | str | None = None,
    ) -> None:
        self._overrides: dict[str, Any] = {"host": host, "port": port, "token": token}
        self._config_path = (
            DEFAULT_CONFIG_PATH.expanduser() if config_path is None else Path(config_path)
        )
        self._resolved: ConnectionConfig | None = None

    def resolve(self) -> ConnectionConfig:
        if self._resolved is not None:
            return self._resolved

        env = self._load_env()
        file_values = self._load_file()
        merged: dict[str, Any] = {}
        for key in ("host", "port", "token"):
            for source in (self._overrides, env, file_values):
                value = source.get(key)
                if value is not None:
                    merged[key] = value
                    break

        try:
            config = ConnectionConfig.model_validate(merged)
        except ValidationError as exc:
            logger.warning("Invalid gateway connection values, using defaults: %s", exc)
            config = ConnectionConfig()

        logger.debug("Gateway connection resolved: %s:%s", config.host, config.port)
        self._resolved = config
        return config

    def _load_env(self) -> dict[str, Any]:
        try:
            return GatewayEnvSettings().model_dump()
        except ValidationError as exc:
            logger.warning("Ignoring malformed OPENCLAW_GATEWAY_* environment: %s", exc)
            return {}

    def _load_file(self) -> dict[str, Any]:
        path = self._config_path
        try:
            if not path.is_file():
                return {}
            raw = json.loads(path.read_text(encoding="utf-8"))
            parsed = _OpenClawFile.model_validate(raw)
        except (OSError, ValueError) as exc:
            # ValidationError and JSONDecodeError are both ValueErrors
            logger.debug("Could not read gateway config %s: %s", path, exc)
            return {}
        section = parsed.gateway
        return {"host": section.host, "port": section.port, "token": section.auth.token}
