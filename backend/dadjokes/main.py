"""FastAPI application bootstrap and process entrypoint."""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import get_router
from .container import build_container
from .env import load_dotenv_if_present
from .jokes import JokeProvider
from .session_logging import SessionIdFilter
from .settings import Settings, get_settings
from .startup_checks import run_startup_checks

logger = logging.getLogger(__name__)


def _configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [session_id=%(session_id)s] %(name)s: %(message)s",
    )
    root_logger = logging.getLogger()
    session_filter = SessionIdFilter()
    for handler in root_logger.handlers:
        handler.addFilter(session_filter)


def create_app(
    settings: Settings | None = None,
    *,
    provider: JokeProvider | None = None,
) -> FastAPI:
    """Construct the FastAPI application; the catalog is sealed before routing."""
    settings = settings or get_settings()
    container = build_container(settings=settings, provider=provider)

    app = FastAPI(title=settings.server.name, version=settings.server.version)
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )
    app.include_router(get_router(container))

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info(
            "Demo MCP Server running on http://localhost:%s%s tools=%s resources=%s",
            settings.server.port,
            settings.server.mcp_path,
            len(container.registry.list_tools()),
            len(container.registry.list_resources()),
        )

    return app


def main() -> int:
    """Run the server; non-zero when configuration or the listen socket fails."""
    load_dotenv_if_present()
    settings = get_settings()
    _configure_logging(settings.log_level)
    try:
        run_startup_checks(settings)
    except RuntimeError as exc:
        logger.error("Startup check failed: %s", exc)
        return 1

    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
    )
    server = uvicorn.Server(config)
    try:
        server.run()
    except OSError as exc:
        logger.error("Server error: %s", exc)
        return 1
    return 0 if server.started else 1


if __name__ == "__main__":
    sys.exit(main())
