"""Request identification middleware.

Assigns every request a fresh id, exposes it through
``perch.context.get_request_id()`` for log correlation, and echoes it in
a response header. Ids supplied by the client are never reused.
"""

import uuid
from collections.abc import Callable

from perch.context import request_id_var
from perch.http.request import Request
from perch.http.response import StreamingResponse
from perch.middleware.protocol import AnyResponse, Next


def _new_request_id() -> str:
    return uuid.uuid4().hex


class RequestID:
    """Outermost built-in middleware: attach a unique id to each request.

    For a ``StreamingResponse`` the id is left set on return: the body is
    rendered while it is sent, and the request pipeline restores the
    previous value once sending is done.

    Usage::

        app.add_middleware(RequestID(header="X-Trace-ID"))
    """

    __slots__ = ("_factory", "_header")

    def __init__(
        self,
        header: str | None = "X-Request-ID",
        *,
        factory: Callable[[], str] = _new_request_id,
    ) -> None:
        self._header = header
        self._factory = factory

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        request_id = self._factory()
        token = request_id_var.set(request_id)
        try:
            response = await next(request)
        except BaseException:
            request_id_var.reset(token)
            raise
        if not isinstance(response, StreamingResponse):
            request_id_var.reset(token)
        if self._header:
            response = response.with_header(self._header, request_id)
        return response
