"""Logging setup for ``perch run``.

perch logs through stdlib ``logging`` with named loggers:

- ``perch.server``: startup, recovered failures, streaming errors
- ``perch.access``: one line per request
- ``perch.templates``: template set loading
- ``perch.static``: rejected static paths

Library code never configures handlers; only the CLI calls
``configure_logging()``.
"""

import logging
import sys
from typing import TextIO

from perch.context import get_request_id

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(request_id)s] %(message)s"


class RequestIdFilter(logging.Filter):
    """Stamp ``record.request_id`` with the current request id (``-`` outside one)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id() or "-"
        return True


def configure_logging(level: str = "info", *, stream: TextIO | None = None) -> logging.Handler:
    """Attach a stream handler to the ``perch`` logger and set its level.

    Returns the installed handler. Calling again replaces it.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        msg = f"Unknown log level: {level!r}"
        raise ValueError(msg)

    root = logging.getLogger("perch")
    for existing in list(root.handlers):
        if getattr(existing, "_perch_handler", False):
            root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler._perch_handler = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(numeric)
    return handler
