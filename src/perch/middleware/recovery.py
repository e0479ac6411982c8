"""Failure recovery middleware.

One request's failure must never take down the listener or affect
sibling requests. ``Recoverer`` is the per-request boundary that turns
every exception raised downstream into an HTTP response.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from perch.errors import HTTPError, RenderError
from perch.http.request import Request
from perch.middleware.protocol import AnyResponse, Next
from perch.server.errors import handle_http_error, handle_internal_error, handle_render_error

if TYPE_CHECKING:
    from perch.templating.templates import TemplateSet


class Recoverer:
    """Convert downstream failures into responses.

    - ``HTTPError`` → its status (through ``@app.error`` handlers if any)
    - ``RenderError`` → ``500`` plain text, message shown when
      *expose_errors* is true
    - any other ``Exception`` → ``500 Internal Server Error``

    ``BaseException`` subclasses that are not ``Exception`` (task
    cancellation, interpreter shutdown) are left to propagate.
    """

    __slots__ = ("_error_handlers", "_expose_errors", "_templates")

    def __init__(
        self,
        error_handlers: dict[int | type, Callable[..., Any]] | None = None,
        *,
        templates: TemplateSet | None = None,
        expose_errors: bool = True,
    ) -> None:
        self._error_handlers = error_handlers or {}
        self._templates = templates
        self._expose_errors = expose_errors

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        try:
            return await next(request)
        except HTTPError as exc:
            return await handle_http_error(exc, request, self._error_handlers, self._templates)
        except RenderError as exc:
            return await handle_render_error(
                exc,
                request,
                self._error_handlers,
                self._templates,
                expose=self._expose_errors,
            )
        except Exception as exc:
            return await handle_internal_error(exc, request, self._error_handlers, self._templates)
