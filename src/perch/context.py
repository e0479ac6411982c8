"""Request-scoped context via ContextVar.

Provides:
- ``request_var``: The current ``Request`` for this task.
- ``request_id_var``: The id assigned by the ``RequestID`` middleware.

Both are set by the request pipeline and reset after each request.

Thread safety:
    ``ContextVar`` is task-local under asyncio, so concurrent requests
    never observe each other's values. No locks needed.
"""

from contextvars import ContextVar

from perch.http.request import Request

request_var: ContextVar[Request] = ContextVar("perch_request")
"""The current request. Set by the ASGI handler before dispatch."""

request_id_var: ContextVar[str | None] = ContextVar("perch_request_id", default=None)
"""The current request id. Set by ``RequestID`` middleware."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()


def get_request_id() -> str | None:
    """Return the current request id, or ``None`` outside a request."""
    return request_id_var.get()
