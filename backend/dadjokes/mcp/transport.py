"""Stateless streamable-HTTP transport.

Every POST gets its own :class:`ProtocolSession`; no session header is
issued or honoured and nothing is buffered between requests.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.requests import ClientDisconnect

from ..session_logging import log_session
from .dispatcher import Dispatcher
from .errors import INVALID_REQUEST, PARSE_ERROR
from .session import ProtocolSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[Dispatcher], ProtocolSession]

# Non-standard status (nginx convention) for responses nobody is left to read.
CLIENT_CLOSED_REQUEST = 499
_SERVER_ERROR = -32000


def _format_sse(payload: Any) -> str:
    data = json.dumps(payload, separators=(",", ":"))
    return f"event: message\ndata: {data}\n\n"


def _status_for(payload: Any) -> int:
    if isinstance(payload, dict) and payload.get("error"):
        if payload["error"].get("code") in (PARSE_ERROR, INVALID_REQUEST):
            return status.HTTP_400_BAD_REQUEST
    return status.HTTP_200_OK


def _accepts_event_stream(request: Request) -> bool:
    return "text/event-stream" in request.headers.get("accept", "")


async def _watch_disconnect(request: Request, session: ProtocolSession) -> None:
    """Close ``session`` as soon as the client goes away."""
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            await session.close("client_disconnected")
            return


class StreamableHTTPTransport:
    """Maps each inbound HTTP POST onto exactly one protocol session.

    The session closes once its reply is computed, before the response is
    written. JSON and SSE bodies are built from that finished reply, so
    teardown never waits on the client reading the response.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        path: str = "/mcp",
        json_response: bool = True,
        session_factory: SessionFactory = ProtocolSession,
    ):
        self.dispatcher = dispatcher
        self.path = path
        self.json_response = json_response
        self._session_factory = session_factory

    def router(self) -> APIRouter:
        router = APIRouter(tags=["mcp"])
        router.add_api_route(self.path, self.handle_post, methods=["POST"])
        router.add_api_route(self.path, self.method_not_allowed, methods=["GET", "DELETE"])
        return router

    async def handle_post(self, request: Request) -> Response:
        """Dispatch one POSTed envelope inside a fresh session."""
        try:
            body = await request.body()
        except ClientDisconnect:
            logger.warning("client disconnected while sending the request body")
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        async with self._session_factory(self.dispatcher) as session:
            log_session(
                session.session_id,
                "mcp request client=%s",
                request.client.host if request.client else "unknown",
            )
            watcher = asyncio.create_task(_watch_disconnect(request, session))
            try:
                payload = await session.handle(body)
            finally:
                watcher.cancel()
                await asyncio.gather(watcher, return_exceptions=True)
            if session.closed:
                log_session(
                    session.session_id,
                    "client disconnected before completion; result discarded",
                    level=logging.WARNING,
                )
                return Response(status_code=CLIENT_CLOSED_REQUEST)

        if payload is None:
            return Response(status_code=status.HTTP_202_ACCEPTED)
        if not self.json_response and _accepts_event_stream(request):

            async def event_generator():
                yield _format_sse(payload)

            response = StreamingResponse(event_generator(), media_type="text/event-stream")
            response.headers["Cache-Control"] = "no-cache"
            response.headers["X-Accel-Buffering"] = "no"
            return response
        return JSONResponse(payload, status_code=_status_for(payload))

    async def method_not_allowed(self, request: Request) -> JSONResponse:
        """Stateless mode keeps no stream to resume and no session to delete."""
        return JSONResponse(
            {
                "jsonrpc": "2.0",
                "error": {"code": _SERVER_ERROR, "message": "Method not allowed."},
                "id": None,
            },
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            headers={"Allow": "POST"},
        )
