"""Static file serving.

``StaticFiles`` is a route handler bound to a catch-all route such as
``/static/*``. The URL prefix is stripped by the router; whatever the
wildcard captured is looked up under the configured directory.
"""

import logging
import mimetypes
from pathlib import Path

import anyio.to_thread

from perch.errors import HTTPError, NotFound
from perch.http.request import Request
from perch.http.response import Response
from perch.routing.params import WILDCARD_PARAM

logger = logging.getLogger("perch.static")


class StaticFiles:
    """Serve files from *directory*.

    Security: resolves symlinks and verifies the final path is inside
    the directory. Anything that escapes it is a ``403``; a missing file
    or a directory is a ``404``. Directory listings are never produced.

    Usage::

        app.add_route("/assets/*", StaticFiles("./public"), methods=["GET", "HEAD"])
    """

    __slots__ = ("_cache_control", "directory")

    def __init__(
        self,
        directory: str | Path,
        *,
        cache_control: str | None = "public, max-age=3600",
    ) -> None:
        self.directory = Path(directory).resolve()
        self._cache_control = cache_control

    def __repr__(self) -> str:
        return f"StaticFiles({str(self.directory)!r})"

    def resolve(self, relative: str) -> Path:
        """Map a URL-relative path to a file under the directory.

        Raises:
            HTTPError: ``403`` if the path escapes the directory.
            NotFound: If there is no regular file at that path.
        """
        if "\x00" in relative:
            raise HTTPError(status=403, detail="Forbidden")
        file_path = (self.directory / relative.lstrip("/")).resolve()
        if not file_path.is_relative_to(self.directory):
            logger.warning("Blocked path traversal attempt: %r", relative)
            raise HTTPError(status=403, detail="Forbidden")
        if not file_path.is_file():
            raise NotFound(f"Static file not found: {relative}")
        return file_path

    async def __call__(self, request: Request) -> Response:
        file_path = self.resolve(request.path_params.get(WILDCARD_PARAM, ""))

        content_type, _ = mimetypes.guess_type(file_path.name)
        if content_type is None:
            content_type = "application/octet-stream"
        elif content_type.startswith("text/") or content_type in {
            "application/javascript",
            "application/json",
        }:
            content_type = f"{content_type}; charset=utf-8"

        body = await anyio.to_thread.run_sync(file_path.read_bytes)
        response = Response(body=body, content_type=content_type)
        if self._cache_control:
            response = response.with_header("Cache-Control", self._cache_control)
        return response
