"""Error translation for perch requests.

Maps HTTPError, RenderError, and unexpected failures to Response objects,
using registered error handlers or plain-text defaults. Every path
produces a response; the connection is never dropped without one.
"""

from __future__ import annotations

import html
import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from perch.context import get_request_id
from perch.errors import HTTPError, RenderError
from perch.http.request import Request
from perch.http.response import TEXT, Response

if TYPE_CHECKING:
    from perch.templating.templates import TemplateSet

logger = logging.getLogger("perch.server")


def default_fragment_error(status: int, detail: str) -> str:
    """Minimal HTML snippet for fragment error responses."""
    return f'<div class="perch-error" data-status="{status}">{html.escape(detail)}</div>'


def _with_htmx_error_headers(response: Response, request: Request) -> Response:
    """Point htmx at the error container when the request is a fragment.

    - ``HX-Retarget: #perch-error`` — swap into a dedicated container
    - ``HX-Reswap: innerHTML`` — replace, don't append
    - ``HX-Trigger: perchError`` — client-side hook for custom handling
    """
    if not request.is_fragment:
        return response
    return (
        response.with_hx_retarget("#perch-error")
        .with_hx_reswap("innerHTML")
        .with_hx_trigger("perchError")
    )


def _error_response(status: int, detail: str, request: Request) -> Response:
    if request.is_fragment:
        resp = Response(body=default_fragment_error(status, detail), status=status)
        return _with_htmx_error_headers(resp, request)
    return Response(body=detail, status=status, content_type=TEXT)


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
    templates: TemplateSet | None,
) -> Response:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc)
    args and may be sync or async.
    """
    from perch.server.negotiation import negotiate

    params = list(inspect.signature(handler).parameters.values())

    if len(params) >= 2:
        result = handler(request, exc)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result

    if isinstance(result, Response):
        return result
    response = negotiate(result, templates=templates, request=request)
    if not isinstance(response, Response):
        msg = "Error handlers must produce a buffered response"
        raise TypeError(msg)
    return response


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    templates: TemplateSet | None,
) -> Response:
    """Map an HTTPError to a Response using registered error handlers."""
    logger.debug("%d %s %s — %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc, templates)
        # Keep the exception's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    resp = _error_response(exc.status, exc.detail or f"Error {exc.status}", request)
    for name, value in exc.headers:
        resp = resp.with_header(name, value)
    return resp


async def handle_render_error(
    exc: RenderError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    templates: TemplateSet | None,
    *,
    expose: bool,
) -> Response:
    """Map a template render failure to a 500.

    The error text reaches the client only when *expose* is true; it is
    always logged with the request id.
    """
    logger.error(
        "[%s] render failed for %s %s: %s",
        get_request_id() or "-",
        request.method,
        request.path,
        exc,
        exc_info=exc,
    )

    handler = error_handlers.get(RenderError) or error_handlers.get(500)
    if handler is not None:
        response = await call_error_handler(handler, request, exc, templates)
        return response if response.status != 200 else response.with_status(500)

    detail = f"Internal Server Error: {exc}" if expose else "Internal Server Error"
    return _error_response(500, detail, request)


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    templates: TemplateSet | None,
) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception(
        "[%s] 500 %s %s",
        get_request_id() or "-",
        request.method,
        request.path,
        exc_info=exc,
    )

    handler = error_handlers.get(type(exc)) or error_handlers.get(500)
    if handler is not None:
        try:
            response = await call_error_handler(handler, request, exc, templates)
        except Exception:
            logger.exception("Error handler for %s failed", type(exc).__name__)
        else:
            return response if response.status != 200 else response.with_status(500)

    return _error_response(500, "Internal Server Error", request)
