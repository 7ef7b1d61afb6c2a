"""Session-scoped logging helpers.

Records carry a ``session_id`` attribute so concurrent requests can be told
apart in the log stream.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("dadjokes.session")


class SessionIdFilter(logging.Filter):
    """Ensure every log record has a session_id attribute."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = "system"
        return True


def log_session(session_id: str, message: str, *args: object, level: int = logging.INFO) -> None:
    logger.log(level, message, *args, extra={"session_id": session_id})


__all__ = ["SessionIdFilter", "log_session"]
