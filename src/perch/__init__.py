"""perch — a minimal server-rendered scaffold for htmx sites.

Routes requests through a fixed middleware chain, renders kida templates
(full pages or named fragments), and serves static assets.

Basic usage::

    from perch import App, AppConfig, Page

    app = App(AppConfig(template_dir="templates", static_dir="public"))

    @app.route("/")
    def index():
        return Page("base", "content", Title="Home")

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "AnyResponse",
    "App",
    "AppConfig",
    "ConfigurationError",
    "Fragment",
    "HTTPError",
    "Middleware",
    "MethodNotAllowed",
    "Next",
    "NotFound",
    "Page",
    "PerchError",
    "Redirect",
    "RenderError",
    "Request",
    "Response",
    "StaticFiles",
    "Stream",
    "StreamingResponse",
    "Template",
    "TemplateLoadError",
    "TemplateSet",
    "get_request",
    "get_request_id",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "Redirect", "StreamingResponse"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("Template", "Fragment", "Page", "Stream"):
        from perch.templating import returns as _returns

        return getattr(_returns, name)

    if name == "TemplateSet":
        from perch.templating.templates import TemplateSet

        return TemplateSet

    if name == "StaticFiles":
        from perch.static import StaticFiles

        return StaticFiles

    if name in ("AnyResponse", "Middleware", "Next"):
        from perch.middleware import protocol as _protocol

        return getattr(_protocol, name)

    if name in ("get_request", "get_request_id"):
        from perch import context as _context

        return getattr(_context, name)

    if name in (
        "ConfigurationError",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "PerchError",
        "RenderError",
        "TemplateLoadError",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module 'perch' has no attribute {name!r}"
    raise AttributeError(msg)
