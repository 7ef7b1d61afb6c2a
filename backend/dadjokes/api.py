"""API router for the MCP server.

Safe to import: routes are built from an already-constructed container.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter

if TYPE_CHECKING:
    from .container import ServerContainer

logger = logging.getLogger(__name__)

MANIFEST_DESCRIPTION = "MCP server that tells dad jokes and renders them in a widget."


def build_manifest(container: "ServerContainer") -> dict[str, Any]:
    server = container.settings.server
    return {
        "name": server.name,
        "version": server.version,
        "description": MANIFEST_DESCRIPTION,
        "transport": {"type": "streamable-http", "url": server.mcp_path},
    }


def get_router(container: "ServerContainer") -> APIRouter:
    """Build API routes using the provided dependency container."""

    router = APIRouter()
    router.include_router(container.transport.router())
    manifest = build_manifest(container)

    @router.get("/manifest.json")
    async def manifest_endpoint() -> dict[str, Any]:
        return manifest

    @router.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return router
