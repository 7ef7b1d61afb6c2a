"""Explicit dependency container for server runtime wiring.

Side-effect free on import; ``build_container`` constructs the catalog and
dispatcher without binding any socket.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .jokes import JokeProvider
    from .mcp.dispatcher import Dispatcher
    from .mcp.registry import CapabilityRegistry
    from .mcp.transport import StreamableHTTPTransport
    from .settings import Settings


@dataclass
class ServerContainer:
    """Holds the constructed runtime dependencies for the server."""

    settings: Settings
    provider: JokeProvider
    registry: CapabilityRegistry
    dispatcher: Dispatcher
    transport: StreamableHTTPTransport


def build_container(
    *,
    settings: "Settings" | None = None,
    provider: "JokeProvider" | None = None,
) -> ServerContainer:
    """Construct the dependency graph; the registry is sealed on return."""

    from .catalog import build_catalog
    from .jokes import default_provider
    from .mcp.dispatcher import Dispatcher, ServerInfo
    from .mcp.transport import StreamableHTTPTransport
    from .settings import get_settings

    settings = settings or get_settings()
    provider = provider or default_provider()

    registry = build_catalog(provider, settings.widget.to_config())
    dispatcher = Dispatcher(
        registry,
        ServerInfo(name=settings.server.name, version=settings.server.version),
    )
    transport = StreamableHTTPTransport(
        dispatcher,
        path=settings.server.mcp_path,
        json_response=settings.server.json_response,
    )
    return ServerContainer(
        settings=settings,
        provider=provider,
        registry=registry,
        dispatcher=dispatcher,
        transport=transport,
    )
