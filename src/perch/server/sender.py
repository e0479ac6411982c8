"""ASGI response sending: translates perch responses to ASGI messages.

Handles both buffered single-body responses and chunked streaming
responses.
"""

import logging

from perch._internal.asgi import Send
from perch.context import get_request_id
from perch.http.response import Response, StreamingResponse

logger = logging.getLogger("perch.server")

STREAM_ERROR_MARKER = "<!-- perch: render error -->"


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    return not (100 <= status < 200 or status in {204, 304})


def _raw_headers(content_type: str, headers: tuple[tuple[str, str], ...]) -> list[tuple[bytes, bytes]]:
    raw = [(b"content-type", content_type.encode("latin-1"))]
    raw.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers
    )
    return raw


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Translate a Response into ASGI ``send()`` calls.

    For ``HEAD`` requests the ``content-length`` of the would-be body is
    kept and the body itself is dropped.
    Headers and body are encoded before the first ``send()``, so an
    encoding error leaves nothing on the wire.
    """
    body = response.body_bytes if _body_allowed(response.status) else b""
    raw_headers = _raw_headers(response.content_type, response.headers)
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )


async def send_streaming_response(
    response: StreamingResponse,
    send: Send,
    *,
    head: bool = False,
) -> None:
    """Send a streaming response chunk by chunk.

    Sends headers immediately, then each chunk as an ASGI body message
    with ``more_body=True``, then closes with an empty body. The status
    is already on the wire once rendering starts, so a mid-stream error
    is logged and the body ends with an HTML comment marker.
    Headers are encoded before the first ``send()``.
    """
    raw_headers = _raw_headers(response.content_type, response.headers)
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )

    if not head and _body_allowed(response.status):
        try:
            for chunk in response.chunks:
                if chunk:
                    await send(
                        {
                            "type": "http.response.body",
                            "body": chunk.encode("utf-8"),
                            "more_body": True,
                        }
                    )
        except Exception:
            logger.exception("[%s] streaming render failed", get_request_id() or "-")
            await send(
                {
                    "type": "http.response.body",
                    "body": STREAM_ERROR_MARKER.encode("utf-8"),
                    "more_body": True,
                }
            )

    await send(
        {
            "type": "http.response.body",
            "body": b"",
            "more_body": False,
        }
    )
