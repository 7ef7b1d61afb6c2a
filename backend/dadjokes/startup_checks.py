"""Startup validation to keep deployments predictable."""

from __future__ import annotations

import logging
import os
import sys

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

RESERVED_PATHS = ("/manifest.json", "/health")
WIDGET_SIGNAL_MODES = ("immediate", "event")


def _ensure_int_env(name: str) -> None:
    raw = os.getenv(name)
    if raw is None:
        return
    try:
        int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def run_startup_checks(settings: Settings | None = None) -> None:
    """Fail fast when configuration is invalid."""
    if os.getenv("SKIP_STARTUP_CHECKS") == "1":
        logger.warning("Startup checks skipped via SKIP_STARTUP_CHECKS=1")
        return

    settings = settings or get_settings()
    _ensure_int_env("PORT")

    port = settings.server.port
    if not 0 < port < 65536:
        raise RuntimeError(f"PORT must be between 1 and 65535, got {port}")

    path = settings.server.mcp_path
    if not path.startswith("/") or path == "/":
        raise RuntimeError(f"MCP_PATH must be an absolute sub-path, got {path!r}")
    if path in RESERVED_PATHS:
        raise RuntimeError(f"MCP_PATH {path!r} collides with a built-in route")

    if settings.widget.signal_mode not in WIDGET_SIGNAL_MODES:
        raise RuntimeError(
            f"WIDGET_SIGNAL_MODE must be immediate|event, got {settings.widget.signal_mode!r}"
        )
    if "://" not in settings.widget.uri:
        raise RuntimeError(f"WIDGET_URI must be a scheme-qualified URI, got {settings.widget.uri!r}")

    logger.info("Startup checks passed. Configuration is valid.")


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    try:
        run_startup_checks()
    except Exception as exc:  # pragma: no cover - CLI guard
        logger.error("Startup check failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
