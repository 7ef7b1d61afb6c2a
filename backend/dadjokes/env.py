"""Environment loading helpers.

Not invoked at import time. The entrypoint calls them explicitly so tests
stay free of side effects.
"""

from __future__ import annotations

import logging

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)


def load_dotenv_if_present(filename: str = ".env") -> str | None:
    """Load variables from ``filename`` if found; real environment wins."""

    dotenv_path = find_dotenv(filename=filename, usecwd=True)
    if not dotenv_path:
        return None
    load_dotenv(dotenv_path=dotenv_path, override=False)
    logger.info("environment loaded from %s", dotenv_path)
    return dotenv_path
