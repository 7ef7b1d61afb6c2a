"""Application-wide settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .mcp.widget import WidgetConfig, WidgetSignalMode


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    return normalized in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip()
    return normalized or default


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = _env_str(name)
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class ServerSettings:
    """Identity, listen address and protocol endpoint."""

    name: str
    version: str
    host: str
    port: int
    mcp_path: str
    json_response: bool
    cors_allow_origins: tuple[str, ...]

    @classmethod
    def from_env(cls) -> "ServerSettings":
        return cls(
            name=_env_str("MCP_SERVER_NAME", "dadjokes") or "dadjokes",
            version=_env_str("MCP_SERVER_VERSION", "1.0.0") or "1.0.0",
            host=_env_str("HOST", "0.0.0.0") or "0.0.0.0",
            port=_env_int("PORT", 3000),
            mcp_path=_env_str("MCP_PATH", "/mcp") or "/mcp",
            json_response=_env_bool("MCP_JSON_RESPONSE", True),
            cors_allow_origins=_env_list("CORS_ALLOW_ORIGINS", ("*",)),
        )


@dataclass(frozen=True)
class WidgetSettings:
    """Widget document binding; both source variants are one config."""

    uri: str
    signal_mode: str
    fallback_text: str

    @classmethod
    def from_env(cls) -> "WidgetSettings":
        return cls(
            uri=_env_str("WIDGET_URI", "ui://widget/joke4.html") or "ui://widget/joke4.html",
            signal_mode=(_env_str("WIDGET_SIGNAL_MODE", "immediate") or "immediate").lower(),
            fallback_text=_env_str("WIDGET_FALLBACK_TEXT", "Wait for it...") or "Wait for it...",
        )

    def to_config(self) -> WidgetConfig:
        mode: WidgetSignalMode = "event" if self.signal_mode == "event" else "immediate"
        return WidgetConfig(uri=self.uri, signal_mode=mode, fallback_text=self.fallback_text)


class Settings:
    """Container for application settings."""

    def __init__(
        self,
        *,
        server: ServerSettings,
        widget: WidgetSettings,
        log_level: str = "INFO",
    ) -> None:
        self.server = server
        self.widget = widget
        self.log_level = log_level

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            server=ServerSettings.from_env(),
            widget=WidgetSettings.from_env(),
            log_level=(_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Return a cached Settings instance built from the current environment."""

    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
