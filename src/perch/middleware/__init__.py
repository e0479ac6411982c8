"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Built-in middleware, installed in this order by default:
    RequestID -- Fresh id per request, exposed via get_request_id()
    Recoverer -- Turns downstream exceptions into error responses
    RealIP -- Resolves the client address from trusted proxy headers
    AccessLog -- One ``perch.access`` record per request
"""

from perch.middleware.access_log import AccessLog
from perch.middleware.protocol import AnyResponse, Middleware, Next
from perch.middleware.real_ip import RealIP
from perch.middleware.recovery import Recoverer
from perch.middleware.request_id import RequestID

__all__ = [
    "AccessLog",
    "AnyResponse",
    "Middleware",
    "Next",
    "RealIP",
    "Recoverer",
    "RequestID",
]
