"""Perch exception hierarchy.

Shared across Router, App, handler, templating, and middleware so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app configuration is invalid.

    Covers malformed route patterns, duplicate routes, and bad
    environment values. Raised at registration or freeze time.
    """


class StartupError(PerchError):
    """A fatal error that must abort process start."""


class TemplateLoadError(StartupError):
    """The template tree is missing, empty, or contains a broken template."""

    def __init__(self, message: str, *, template_name: str | None = None) -> None:
        super().__init__(message)
        self.template_name = template_name


class BindError(StartupError):
    """The listen address could not be bound."""


class RenderError(PerchError):
    """A template could not be rendered for the current request.

    Wraps the underlying kida error (available as ``__cause__``).
    """

    def __init__(self, message: str, *, template_name: str | None = None) -> None:
        super().__init__(message)
        self.template_name = template_name


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, middleware, or handlers. The recovery
    middleware catches these and dispatches to the matching
    ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
