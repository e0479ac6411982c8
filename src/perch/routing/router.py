"""Compiled router with trie-based path matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes.

Duplicate ``(method, pattern)`` registrations are rejected with
``ConfigurationError``; nothing is silently overwritten.
"""

import re
from dataclasses import dataclass

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.routing.params import CONVERTERS, WILDCARD_PARAM
from perch.routing.route import PathSegment, Route, RouteMatch

_PARAM_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/users"             -> [PathSegment("users")]
        "/users/{id}"        -> [PathSegment("users"), PathSegment("{id}", is_param=True, ...)]
        "/users/{id:int}"    -> [..., PathSegment("{id:int}", is_param=True, param_type="int")]
        "/files/{rest:path}" -> [..., PathSegment("{rest:path}", is_param=True, param_type="path")]
        "/static/*"          -> [..., PathSegment("*", is_param=True, param_name="path", ...)]

    Raises:
        ConfigurationError: If the pattern is malformed.
    """
    if not isinstance(path, str) or not path.startswith("/"):
        msg = f"Route path must be a string starting with '/', got {path!r}"
        raise ConfigurationError(msg)

    parts = [p for p in path.strip("/").split("/") if p]
    segments: list[PathSegment] = []
    seen_names: set[str] = set()

    for index, part in enumerate(parts):
        is_last = index == len(parts) - 1

        if part.startswith("<") and part.endswith(">"):
            msg = (
                f"Route path {path!r} uses <param> syntax. "
                "Use {param} (or {param:int}) for path parameters."
            )
            raise ConfigurationError(msg)

        if part == "*":
            if not is_last:
                msg = f"Wildcard '*' must be the last segment in route path {path!r}"
                raise ConfigurationError(msg)
            segments.append(
                PathSegment(
                    value=part,
                    is_param=True,
                    param_name=WILDCARD_PARAM,
                    param_type="path",
                )
            )
            continue

        if part.startswith("{") and part.endswith("}"):
            inner = part[1:-1]
            param_name, _, param_type = inner.partition(":")
            param_type = param_type or "str"
            if not _PARAM_NAME.match(param_name) or "{" in inner or "}" in inner:
                msg = f"Invalid parameter {part!r} in route path {path!r}"
                raise ConfigurationError(msg)
            if param_type not in CONVERTERS:
                known = ", ".join(sorted(CONVERTERS))
                msg = (
                    f"Unknown converter {param_type!r} in route path {path!r}. "
                    f"Known converters: {known}"
                )
                raise ConfigurationError(msg)
            if param_type == "path" and not is_last:
                msg = f"Path parameter {part!r} must be the last segment in {path!r}"
                raise ConfigurationError(msg)
            if param_name in seen_names:
                msg = f"Duplicate parameter name {param_name!r} in route path {path!r}"
                raise ConfigurationError(msg)
            seen_names.add(param_name)
            segments.append(
                PathSegment(
                    value=part,
                    is_param=True,
                    param_name=param_name,
                    param_type=param_type,
                )
            )
            continue

        if any(ch in part for ch in "{}*"):
            msg = f"Malformed segment {part!r} in route path {path!r}"
            raise ConfigurationError(msg)

        segments.append(PathSegment(value=part))

    return segments


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_all", "children", "param_child", "routes_by_method")

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single parameter child (only one param pattern per level)
        self.param_child: _ParamEdge | None = None
        # Catch-all edge (``*`` or ``{name:path}``)
        self.catch_all: _CatchAllEdge | None = None
        # Routes at this node, keyed by HTTP method
        self.routes_by_method: dict[str, Route] = {}


@dataclass(slots=True)
class _ParamEdge:
    """A parameter edge in the trie."""

    param_name: str
    param_type: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    """A catch-all edge — consumes the remaining path."""

    param_name: str
    routes_by_method: dict[str, Route]


class Router:
    """Compiled router with trie-based path matching.

    Usage::

        router = Router()
        router.add(Route("/users", handler, frozenset({"GET"})))
        router.add(Route("/static/*", static, frozenset({"GET", "HEAD"})))
        router.compile()
        match = router.match("GET", "/users")

    Matching precedence at every segment: static child, then parameter,
    then catch-all. Exact routes therefore always beat prefix wildcards.
    """

    __slots__ = ("_compiled", "_root")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._compiled = False

    def add(self, route: Route) -> None:
        """Add a route. Must be called before ``compile()``.

        Raises:
            ConfigurationError: On a malformed pattern, a duplicate
                ``(method, pattern)``, or a conflicting parameter name.
            RuntimeError: If the router is already compiled.
        """
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        node = self._root
        for seg in parse_path(route.path):
            if seg.is_catch_all:
                name = seg.param_name or WILDCARD_PARAM
                if node.catch_all is None:
                    node.catch_all = _CatchAllEdge(param_name=name, routes_by_method={})
                elif node.catch_all.param_name != name:
                    msg = (
                        f"Route {route.path!r} conflicts with an existing catch-all "
                        f"named {node.catch_all.param_name!r}"
                    )
                    raise ConfigurationError(msg)
                self._register(node.catch_all.routes_by_method, route)
                return

            if seg.is_param:
                if node.param_child is None:
                    pattern, _ = CONVERTERS[seg.param_type]
                    node.param_child = _ParamEdge(
                        param_name=seg.param_name or "",
                        param_type=seg.param_type,
                        regex=re.compile(f"^{pattern}$"),
                        node=_TrieNode(),
                    )
                elif (
                    node.param_child.param_name != seg.param_name
                    or node.param_child.param_type != seg.param_type
                ):
                    msg = (
                        f"Route {route.path!r} declares {seg.value!r} where another "
                        f"route declares {{{node.param_child.param_name}:"
                        f"{node.param_child.param_type}}}"
                    )
                    raise ConfigurationError(msg)
                node = node.param_child.node
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        self._register(node.routes_by_method, route)

    @staticmethod
    def _register(table: dict[str, Route], route: Route) -> None:
        for method in route.methods:
            existing = table.get(method)
            if existing is not None:
                msg = (
                    f"Duplicate route: {method} {route.path!r} is already registered "
                    f"(pattern {existing.path!r})"
                )
                raise ConfigurationError(msg)
        for method in route.methods:
            table[method] = route

    @property
    def routes(self) -> list[Route]:
        """Return every registered Route (each once), for introspection."""
        seen: set[int] = set()
        result: list[Route] = []
        self._collect_routes(self._root, seen, result)
        return result

    def _collect_routes(self, node: _TrieNode, seen: set[int], result: list[Route]) -> None:
        tables = [node.routes_by_method]
        if node.catch_all is not None:
            tables.append(node.catch_all.routes_by_method)
        for table in tables:
            for route in table.values():
                if id(route) not in seen:
                    seen.add(id(route))
                    result.append(route)

        for child in node.children.values():
            self._collect_routes(child, seen, result)
        if node.param_child is not None:
            self._collect_routes(node.param_child.node, seen, result)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request path and method against compiled routes.

        A path whose best match lacks the method keeps searching lower
        precedence branches (e.g. a catch-all) that accept it.
        ``HEAD`` falls back to the ``GET`` route when no explicit ``HEAD``
        route exists.

        Raises:
            NotFound: If no route matches the path.
            MethodNotAllowed: If the path matches but the method doesn't.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        result = self._match_node(self._root, parts, 0, {}, method)
        if result is not None:
            table, params = result
            return RouteMatch(route=_route_for(table, method), path_params=params)

        allowed: set[str] = set()
        self._collect_methods(self._root, parts, 0, allowed)
        if allowed:
            raise MethodNotAllowed(frozenset(allowed))
        raise NotFound(f"No route matches {method} {path!r}")

    def _collect_methods(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        allowed: set[str],
    ) -> None:
        """Gather the methods of every route whose pattern matches *parts*."""
        if index == len(parts):
            allowed.update(node.routes_by_method)
            return

        part = parts[index]
        child = node.children.get(part)
        if child is not None:
            self._collect_methods(child, parts, index + 1, allowed)
        edge = node.param_child
        if edge is not None and edge.regex.match(part):
            self._collect_methods(edge.node, parts, index + 1, allowed)
        if node.catch_all is not None:
            allowed.update(node.catch_all.routes_by_method)

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
        method: str,
    ) -> tuple[dict[str, Route], dict[str, str]] | None:
        """Recursively match path parts and method against the trie."""
        if index == len(parts):
            if _route_for(node.routes_by_method, method) is not None:
                return node.routes_by_method, params
            return None

        part = parts[index]

        # 1. Static child (exact match)
        child = node.children.get(part)
        if child is not None:
            result = self._match_node(child, parts, index + 1, params, method)
            if result is not None:
                return result

        # 2. Parameter child
        edge = node.param_child
        if edge is not None and edge.regex.match(part):
            result = self._match_node(
                edge.node, parts, index + 1, {**params, edge.param_name: part}, method
            )
            if result is not None:
                return result

        # 3. Catch-all consumes the rest
        catch_all = node.catch_all
        if catch_all is not None and _route_for(catch_all.routes_by_method, method) is not None:
            remaining = "/".join(parts[index:])
            return catch_all.routes_by_method, {**params, catch_all.param_name: remaining}

        return None


def _route_for(table: dict[str, Route], method: str) -> Route | None:
    route = table.get(method)
    if route is None and method == "HEAD":
        route = table.get("GET")
    return route
