"""Content negotiation: maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from perch.errors import ConfigurationError
from perch.http.response import HTML, Redirect, Response, StreamingResponse
from perch.templating.returns import Fragment, Page, Stream, Template

if TYPE_CHECKING:
    from perch.http.request import Request
    from perch.templating.templates import TemplateSet


def _require_templates(templates: TemplateSet | None, kind: str) -> TemplateSet:
    if templates is None:
        msg = (
            f"{kind} return type requires a template set. "
            "Set template_dir in AppConfig."
        )
        raise ConfigurationError(msg)
    return templates


def negotiate(
    value: Any,
    *,
    templates: TemplateSet | None = None,
    request: Request | None = None,
) -> Response | StreamingResponse:
    """Convert a route handler's return value to a response.

    Dispatch order:

    1. ``Response`` / ``StreamingResponse`` -> pass through
    2. ``Redirect``          -> status with Location header
    3. ``Template``          -> full render -> Response
    4. ``Fragment``          -> block render -> Response
    5. ``Page``              -> Template or Fragment based on request headers
    6. ``Stream``            -> chunked render -> StreamingResponse
    7. ``str``               -> 200, text/html
    8. ``bytes``             -> 200, application/octet-stream
    9. ``(value, int)``      -> negotiate value, override status
    10. ``(value, int, dict)`` -> negotiate value, override status + headers
    """
    match value:
        case Response() | StreamingResponse():
            return value
        case Redirect():
            return Response(body="", status=value.status).with_header("Location", value.url)
        case Template():
            tpl = _require_templates(templates, "Template")
            return Response(body=tpl.render(value.name, value.context))
        case Fragment():
            tpl = _require_templates(templates, "Fragment")
            html = tpl.render_block(value.template_name, value.block_name, value.context)
            return Response(body=html)
        case Page():
            tpl = _require_templates(templates, "Page")
            if request is not None and request.is_fragment and not request.is_history_restore:
                html = tpl.render_block(value.name, value.block_name, value.context)
            else:
                html = tpl.render(value.name, value.context)
            return Response(body=html)
        case Stream():
            tpl = _require_templates(templates, "Stream")
            return StreamingResponse(chunks=tpl.render_stream(value.name, value.context))
        case str():
            return Response(body=value, content_type=HTML)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case (inner, int() as status):
            return negotiate(inner, templates=templates, request=request).with_status(status)
        case (inner, int() as status, dict() as headers):
            response = negotiate(inner, templates=templates, request=request)
            return response.with_status(status).with_headers(headers)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                "Return str, bytes, Template, Fragment, Page, Stream, "
                "Response, or Redirect."
            )
            raise TypeError(msg)
