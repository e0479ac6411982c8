"""Access logging middleware.

Writes one ``perch.access`` INFO record per request once the handler has
finished. Observes only: the response (or exception) passes through
unchanged.
"""

import logging
import time

from perch.context import get_request_id
from perch.errors import HTTPError
from perch.http.request import Request
from perch.middleware.protocol import AnyResponse, Next

logger = logging.getLogger("perch.access")


class AccessLog:
    """Log method, path, status, latency, client, and request id.

    Record format::

        3f2a... 127.0.0.1 "GET / HTTP/1.1" 200 in 1.42ms

    Structured fields are attached as record attributes (``method``,
    ``path``, ``status``, ``duration_ms``, ``client``, ``request_id``)
    for handlers that emit JSON.
    """

    __slots__ = ("_logger",)

    def __init__(self, logger_: logging.Logger | None = None) -> None:
        self._logger = logger_ or logger

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        start = time.perf_counter()
        status = 500
        try:
            response = await next(request)
            status = response.status
            return response
        except HTTPError as exc:
            status = exc.status
            raise
        finally:
            self._log(request, status, (time.perf_counter() - start) * 1000)

    def _log(self, request: Request, status: int, duration_ms: float) -> None:
        if not self._logger.isEnabledFor(logging.INFO):
            return
        request_id = get_request_id() or "-"
        client = request.client_host or "-"
        self._logger.info(
            '%s %s "%s %s HTTP/%s" %d in %.2fms',
            request_id,
            client,
            request.method,
            request.url,
            request.http_version,
            status,
            duration_ms,
            extra={
                "request_id": request_id,
                "client": client,
                "method": request.method,
                "path": request.path,
                "status": status,
                "duration_ms": round(duration_ms, 3),
            },
        )
