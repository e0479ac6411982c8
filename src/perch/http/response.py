"""HTTP responses with a chainable ``.with_*()`` API.

Each transformation returns a new object. Middleware can decorate any
response type the pipeline produces without knowing which one it got.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace
from typing import Any

HTML = "text/html; charset=utf-8"
TEXT = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class Response:
    """A fully buffered HTTP response.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = HTML
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> Response:
        return replace(self, content_type=content_type)

    # -- htmx response headers --

    def with_hx_redirect(self, url: str) -> Response:
        """Tell htmx to do a full-page redirect (``HX-Redirect``)."""
        return self.with_header("HX-Redirect", url)

    def with_hx_retarget(self, selector: str) -> Response:
        """Override the target element for this response (``HX-Retarget``)."""
        return self.with_header("HX-Retarget", selector)

    def with_hx_reswap(self, strategy: str) -> Response:
        """Override the swap strategy, e.g. ``"outerHTML"`` (``HX-Reswap``)."""
        return self.with_header("HX-Reswap", strategy)

    def with_hx_trigger(self, event: str | dict[str, Any]) -> Response:
        """Trigger a client-side event once the response arrives.

        Accepts a plain event name or a dict for events with payloads::

            .with_hx_trigger({"showToast": {"message": "Saved!"}})
        """
        value = event if isinstance(event, str) else json_module.dumps(event)
        return self.with_header("HX-Trigger", value)

    def with_hx_push_url(self, url: str | bool) -> Response:
        """Push a URL into browser history, or ``False`` to suppress it."""
        value = url if isinstance(url, str) else ("true" if url else "false")
        return self.with_header("HX-Push-Url", value)

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def header(self, name: str) -> str | None:
        """Return the first header value named *name* (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


@dataclass(frozen=True, slots=True)
class Redirect:
    """A redirect returned from a handler."""

    url: str
    status: int = 302


@dataclass(frozen=True, slots=True)
class StreamingResponse:
    """A response whose body is sent chunk by chunk.

    Headers (and the status) are committed before the first chunk, so a
    failure while producing chunks can no longer change the status.
    """

    chunks: Iterator[str]
    status: int = 200
    content_type: str = HTML
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> StreamingResponse:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> StreamingResponse:
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> StreamingResponse:
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> StreamingResponse:
        return replace(self, content_type=content_type)

    def header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None
