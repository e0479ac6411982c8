"""Client address resolution middleware.

Replaces ``request.client`` with the originating client address. Proxy
headers are consulted only when explicitly trusted, since any client can
send them.
"""

import ipaddress
from dataclasses import replace

from perch.http.request import Request
from perch.middleware.protocol import AnyResponse, Next


def _first_valid_ip(value: str) -> str | None:
    """Return the first entry of a (comma-separated) header that is an IP."""
    candidate = value.split(",")[0].strip()
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


class RealIP:
    """Resolve the originating client address.

    Headers in *trusted_headers* are checked in order; the first one that
    carries a valid IP wins. ``X-Forwarded-For`` contributes its left-most
    entry. With no trusted headers (the default) the raw connection
    address is kept::

        RealIP(trusted_headers=("X-Real-IP", "X-Forwarded-For"))
    """

    __slots__ = ("_headers",)

    def __init__(self, trusted_headers: tuple[str, ...] = ()) -> None:
        self._headers = tuple(h.lower() for h in trusted_headers)

    def resolve(self, request: Request) -> str | None:
        """Return the client address for *request* without modifying it."""
        for name in self._headers:
            value = request.headers.get(name)
            if value is None:
                continue
            ip = _first_valid_ip(value)
            if ip is not None:
                return ip
        return request.client_host

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        host = self.resolve(request)
        if host is not None and host != request.client_host:
            port = request.client[1] if request.client else 0
            request = replace(request, client=(host, port))
        return await next(request)
