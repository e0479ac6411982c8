"""perch application class.

Mutable during setup (route registration, middleware, filters).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.types import ErrorHandler, Handler
from perch.config import AppConfig
from perch.errors import BindError, ConfigurationError
from perch.middleware.access_log import AccessLog
from perch.middleware.protocol import Middleware
from perch.middleware.real_ip import RealIP
from perch.middleware.recovery import Recoverer
from perch.middleware.request_id import RequestID
from perch.routing.route import Route
from perch.routing.router import Router, parse_path
from perch.server.handler import handle_request
from perch.static import StaticFiles
from perch.templating.templates import TemplateSet


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    path: str
    handler: Handler
    methods: frozenset[str]
    name: str | None


def _route_key(path: str) -> str:
    return "/" + path.strip("/")


class App:
    """The perch application.

    Mutable during setup (route registration, middleware, filters).
    Frozen at runtime when ``app.run()`` or ``__call__()`` is first invoked.

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread builds the route table and the template set, even when
        several workers receive their first request at once.
    """

    __slots__ = (
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_pending_routes",
        "_router",
        "_static_mounts",
        "_template_filters",
        "_template_globals",
        "_templates",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[_PendingRoute] = []
        self._static_mounts: list[tuple[str, StaticFiles]] = []
        self._middleware_list: list[Middleware] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._template_globals: dict[str, Any] = {}
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._middleware: tuple[Callable[..., Any], ...] = ()
        self._templates: TemplateSet | None = None

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL path pattern. Use ``{param}`` for path parameters
                and a trailing ``*`` for a prefix wildcard.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name.
        """

        def decorator(func: Handler) -> Handler:
            self.add_route(path, func, methods=methods, name=name)
            return func

        return decorator

    def add_route(
        self,
        path: str,
        handler: Handler,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> None:
        """Register *handler* for *path*.

        Raises:
            ConfigurationError: If *path* is malformed or the same method
                is already registered for it.
        """
        self._check_not_frozen()
        parse_path(path)
        method_set = frozenset(m.upper() for m in (methods or ["GET"]))
        key = _route_key(path)
        for pending in self._pending_routes:
            clash = pending.methods & method_set
            if _route_key(pending.path) == key and clash:
                msg = (
                    f"Duplicate route: {', '.join(sorted(clash))} {path!r} "
                    "is already registered"
                )
                raise ConfigurationError(msg)
        self._pending_routes.append(_PendingRoute(path, handler, method_set, name))

    def mount_static(
        self,
        prefix: str,
        directory: str | Path,
        *,
        cache_control: str | None = None,
    ) -> None:
        """Serve files from *directory* under the URL *prefix*."""
        self._check_not_frozen()
        files = StaticFiles(
            directory,
            cache_control=cache_control or self.config.static_cache_control,
        )
        self._static_mounts.append((prefix, files))

    # -- Errors and middleware --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware after the built-in chain."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Template integration --

    def template_filter(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template filter."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_filters[name or func.__name__] = func
            return func

        return decorator

    def template_global(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template global."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_globals[name or func.__name__] = func
            return func

        return decorator

    @property
    def templates(self) -> TemplateSet | None:
        """The loaded template set (``None`` until frozen or if unconfigured)."""
        return self._templates

    @property
    def routes(self) -> list[Route]:
        """Compiled routes. Freezes the app."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router.routes

    # -- Running --

    def run(
        self,
        host: str | None = None,
        port: int | None = None,
        *,
        app_path: str | None = None,
    ) -> None:
        """Start the server.

        Compiles the app (route table, middleware, templates) first, so
        a broken template or route aborts before the port is opened.

        Raises:
            TemplateLoadError: If the template tree fails to load.
            BindError: If the listen address is unavailable.
        """
        from perch.server.runner import ensure_bindable, run_server

        self._ensure_frozen()

        _host = host or self.config.host
        _port = self.config.port if port is None else port

        ensure_bindable(_host, _port)
        try:
            run_server(
                self,
                _host,
                _port,
                workers=self.config.workers,
                reload=self.config.debug,
                app_path=app_path,
                log_level=self.config.log_level,
            )
        except OSError as exc:
            msg = f"Cannot serve on {_host}:{_port}: {exc}"
            raise BindError(msg) from exc

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            error_handlers=self._error_handlers,
            templates=self._templates,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup so a broken template set is reported
        as ``lifespan.startup.failed`` before any request is accepted.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                except Exception as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        config = self.config

        # 1. Route table, static mounts included
        router = Router()
        for pending in self._pending_routes:
            router.add(Route(pending.path, pending.handler, pending.methods, pending.name))

        mounts = list(self._static_mounts)
        if config.static_dir is not None:
            files = StaticFiles(config.static_dir, cache_control=config.static_cache_control)
            mounts.insert(0, (config.static_url, files))
        for prefix, files in mounts:
            pattern = "/" + prefix.strip("/") + "/*" if prefix.strip("/") else "/*"
            router.add(Route(pattern, files, frozenset({"GET", "HEAD"}), name="static"))
        router.compile()

        # 2. Template set, parsed in full before the first request
        templates: TemplateSet | None = None
        if config.template_dir is not None:
            templates = TemplateSet.load(
                config.template_dir,
                autoescape=config.autoescape,
                trim_blocks=config.trim_blocks,
                lstrip_blocks=config.lstrip_blocks,
                filters=self._template_filters,
                globals_=self._template_globals,
            )

        # 3. Middleware: built-ins first, in fixed order, then user middleware
        chain: list[Callable[..., Any]] = []
        if config.default_middleware:
            chain += [
                RequestID(config.request_id_header),
                Recoverer(
                    self._error_handlers,
                    templates=templates,
                    expose_errors=config.expose_errors,
                ),
                RealIP(config.trusted_proxy_headers),
                AccessLog(),
            ]
        chain.extend(self._middleware_list)

        self._router = router
        self._templates = templates
        self._middleware = tuple(chain)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and filters before calling app.run()."
            )
            raise RuntimeError(msg)
