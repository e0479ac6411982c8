"""ASGI handler: translates ASGI scope/messages to perch types.

Converts the scope to a typed Request, runs it through the middleware
chain and the router, and sends the response back through ASGI
``send()``.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from contextvars import Token
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.context import request_id_var, request_var
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import StreamingResponse
from perch.middleware.protocol import AnyResponse, Next
from perch.routing.route import RouteMatch
from perch.routing.router import Router
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.negotiation import negotiate
from perch.server.sender import send_response, send_streaming_response

if TYPE_CHECKING:
    from perch.templating.templates import TemplateSet


def build_chain(
    middleware: tuple[Callable[..., Any], ...],
    endpoint: Next,
) -> Next:
    """Wrap *endpoint* so that ``middleware[0]`` runs first."""
    handler = endpoint
    for mw in reversed(middleware):

        async def step(req: Request, _mw: Any = mw, _next: Next = handler) -> AnyResponse:
            return await _mw(req, _next)

        handler = step
    return handler


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
    error_handlers: dict[int | type, Callable[..., Any]],
    templates: TemplateSet | None = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    token: Token[Request] = request_var.set(request)
    # Streamed bodies render while being sent, so both ids stay set until then
    id_token: Token[str | None] = request_id_var.set(None)

    try:
        try:

            async def dispatch(req: Request) -> AnyResponse:
                match = router.match(req.method, req.path)
                return await _invoke_handler(match, req, templates=templates)

            response = await build_chain(middleware, dispatch)(request)

        # Reached without a Recoverer in the chain, or when middleware ahead of it raises
        except HTTPError as exc:
            response = await handle_http_error(exc, request, error_handlers, templates)
        except Exception as exc:
            response = await handle_internal_error(exc, request, error_handlers, templates)

        head = request.method == "HEAD"
        try:
            await _send(response, send, head=head)
        except UnicodeEncodeError as exc:
            # Raised while encoding headers or body, before anything was sent
            fallback = await handle_internal_error(exc, request, {}, None)
            await send_response(fallback, send, head=head)
    finally:
        request_id_var.reset(id_token)
        request_var.reset(token)


async def _send(response: AnyResponse, send: Send, *, head: bool) -> None:
    if isinstance(response, StreamingResponse):
        await send_streaming_response(response, send, head=head)
    else:
        await send_response(response, send, head=head)


async def _invoke_handler(
    match: RouteMatch,
    request: Request,
    *,
    templates: TemplateSet | None = None,
) -> AnyResponse:
    """Call the matched route handler and negotiate its return value."""
    handler = match.route.handler
    request = replace(request, path_params=match.path_params)
    kwargs = _build_handler_kwargs(handler, request, match.path_params)
    result = await invoke(handler, **kwargs)
    return negotiate(result, templates=templates, request=request)


def _build_handler_kwargs(
    handler: Callable[..., Any],
    request: Request,
    path_params: dict[str, str],
) -> dict[str, Any]:
    """Inspect the handler signature and build kwargs.

    Resolution order:
    1. ``request`` parameter (by name or ``Request`` annotation)
    2. Path parameters (by name, converted to the annotated type)
    """
    sig = inspect.signature(handler, eval_str=True)
    kwargs: dict[str, Any] = {}

    for name, param in sig.parameters.items():
        if name == "request" or param.annotation is Request:
            kwargs[name] = request
        elif name in path_params:
            value = path_params[name]
            if param.annotation in (int, float):
                try:
                    kwargs[name] = param.annotation(value)
                except ValueError:
                    kwargs[name] = value
            else:
                kwargs[name] = value

    return kwargs
