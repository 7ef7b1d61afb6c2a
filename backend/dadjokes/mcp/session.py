"""Per-request protocol session."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Union
from uuid import uuid4

from ..session_logging import log_session
from .dispatcher import Dispatcher, DispatchTrace

logger = logging.getLogger(__name__)

TeardownHook = Callable[[], Union[Awaitable[None], None]]


class SessionClosedError(RuntimeError):
    """Raised when a closed session is asked to handle another body."""


class ProtocolSession:
    """Binds one inbound HTTP exchange to one dispatch context.

    A session is created for exactly one request and never reused, so request
    ids from concurrent clients can not collide. Use it as an async context
    manager: teardown hooks run exactly once, whichever of completion, error
    or client disconnect happens first.
    """

    def __init__(self, dispatcher: Dispatcher, *, session_id: str | None = None):
        self.session_id = session_id or uuid4().hex
        self.dispatcher = dispatcher
        self.traces: list[DispatchTrace] = []
        self.close_reason: str | None = None
        self._teardown_hooks: list[TeardownHook] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on_close(self, hook: TeardownHook) -> None:
        """Register a hook to run when the session closes."""
        if self._closed:
            raise SessionClosedError(f"session {self.session_id} already closed")
        self._teardown_hooks.append(hook)

    async def handle(self, body: bytes) -> dict[str, Any] | list[dict[str, Any]] | None:
        if self._closed:
            raise SessionClosedError(f"session {self.session_id} already closed")
        log_session(self.session_id, "session handling body bytes=%s", len(body))
        return await self.dispatcher.handle_body(
            body, session_id=self.session_id, traces=self.traces
        )

    async def close(self, reason: str = "completed") -> bool:
        """Close the session; returns False when it was already closed."""
        if self._closed:
            return False
        self._closed = True
        self.close_reason = reason
        hooks, self._teardown_hooks = self._teardown_hooks, []
        for hook in reversed(hooks):
            try:
                outcome = hook()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(
                    "session teardown hook failed", extra={"session_id": self.session_id}
                )
        log_session(self.session_id, "session closed reason=%s", reason)
        return True

    async def __aenter__(self) -> "ProtocolSession":
        log_session(self.session_id, "session opened")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close("error" if exc_type is not None else "completed")
