"""Tests for perch.routing.router — compiled trie-based router."""

import pytest

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.routing.route import Route
from perch.routing.router import Router, parse_path


def _handler() -> str:
    return "ok"


def _route(path: str, methods: frozenset[str] | None = None) -> Route:
    return Route(path=path, handler=_handler, methods=methods or frozenset({"GET"}))


def _router(*routes: Route) -> Router:
    router = Router()
    for route in routes:
        router.add(route)
    router.compile()
    return router


class TestParsePath:
    def test_static(self) -> None:
        segments = parse_path("/api/v2/users")
        assert [s.value for s in segments] == ["api", "v2", "users"]
        assert not any(s.is_param for s in segments)

    def test_root(self) -> None:
        assert parse_path("/") == []

    def test_typed_param(self) -> None:
        segments = parse_path("/users/{id:int}")
        assert segments[1].is_param is True
        assert segments[1].param_name == "id"
        assert segments[1].param_type == "int"

    def test_wildcard(self) -> None:
        segments = parse_path("/static/*")
        assert segments[1].is_catch_all
        assert segments[1].param_name == "path"

    @pytest.mark.parametrize(
        "path",
        [
            "users",
            "/users/<id>",
            "/static/*/more",
            "/files/{rest:path}/more",
            "/users/{}",
            "/users/{1abc}",
            "/users/{id:uuid}",
            "/a/{id}/b/{id}",
            "/users/{id",
            "/img*",
        ],
    )
    def test_malformed_patterns_rejected(self, path: str) -> None:
        with pytest.raises(ConfigurationError):
            parse_path(path)

    def test_flask_syntax_hint(self) -> None:
        with pytest.raises(ConfigurationError, match=r"\{param\}"):
            parse_path("/users/<id>")


class TestMatching:
    def test_static_match(self) -> None:
        router = _router(_route("/users"))
        assert router.match("GET", "/users").route.path == "/users"

    def test_trailing_slash_ignored(self) -> None:
        router = _router(_route("/users"))
        assert router.match("GET", "/users/").route.path == "/users"

    def test_root(self) -> None:
        router = _router(_route("/"))
        assert router.match("GET", "/").route.path == "/"

    def test_param_captured(self) -> None:
        router = _router(_route("/users/{id:int}"))
        match = router.match("GET", "/users/42")
        assert match.path_params == {"id": "42"}

    def test_typed_param_rejects_non_matching(self) -> None:
        router = _router(_route("/users/{id:int}"))
        with pytest.raises(NotFound):
            router.match("GET", "/users/abc")

    def test_static_beats_param(self) -> None:
        new = Route("/users/new", _handler, frozenset({"GET"}), name="new")
        router = _router(_route("/users/{id}"), new)
        assert router.match("GET", "/users/new").route.name == "new"
        assert router.match("GET", "/users/7").path_params == {"id": "7"}

    def test_wildcard_strips_prefix(self) -> None:
        router = _router(_route("/static/*"))
        match = router.match("GET", "/static/css/app.css")
        assert match.path_params == {"path": "css/app.css"}

    def test_exact_route_beats_wildcard(self) -> None:
        exact = Route("/static/robots.txt", _handler, frozenset({"GET"}), name="robots")
        router = _router(_route("/static/*"), exact)
        assert router.match("GET", "/static/robots.txt").route.name == "robots"

    def test_backtracks_to_catch_all(self) -> None:
        router = _router(_route("/files/{name}/raw"), _route("/files/{rest:path}"))
        assert router.match("GET", "/files/a/b").path_params == {"rest": "a/b"}

    def test_no_match_is_not_found(self) -> None:
        router = _router(_route("/users"))
        with pytest.raises(NotFound):
            router.match("GET", "/nope")

    def test_wrong_method_is_405_with_allow(self) -> None:
        router = _router(_route("/items", frozenset({"GET", "POST"})))
        with pytest.raises(MethodNotAllowed) as exc_info:
            router.match("DELETE", "/items")
        assert exc_info.value.status == 405
        assert ("Allow", "GET, POST") in exc_info.value.headers

    def test_head_falls_back_to_get(self) -> None:
        router = _router(_route("/page"))
        assert router.match("HEAD", "/page").route.path == "/page"

    def test_method_miss_falls_through_to_catch_all(self) -> None:
        upload = Route("/static/upload", _handler, frozenset({"POST"}), name="upload")
        router = _router(_route("/static/*", frozenset({"GET", "HEAD"})), upload)

        assert router.match("POST", "/static/upload").route.name == "upload"
        match = router.match("GET", "/static/upload")
        assert match.route.path == "/static/*"
        assert match.path_params == {"path": "upload"}

    def test_allow_lists_every_matching_route(self) -> None:
        upload = Route("/static/upload", _handler, frozenset({"POST"}))
        router = _router(_route("/static/*", frozenset({"GET", "HEAD"})), upload)
        with pytest.raises(MethodNotAllowed) as exc_info:
            router.match("DELETE", "/static/upload")
        assert ("Allow", "GET, HEAD, POST") in exc_info.value.headers


class TestRegistration:
    def test_duplicate_rejected(self) -> None:
        router = Router()
        router.add(_route("/users"))
        with pytest.raises(ConfigurationError, match="Duplicate route"):
            router.add(_route("/users/"))

    def test_same_path_other_method_allowed(self) -> None:
        router = _router(_route("/users"), _route("/users", frozenset({"POST"})))
        assert router.match("POST", "/users").route.methods == frozenset({"POST"})

    def test_conflicting_param_names_rejected(self) -> None:
        router = Router()
        router.add(_route("/users/{id}"))
        with pytest.raises(ConfigurationError):
            router.add(_route("/users/{name}/posts"))

    def test_add_after_compile_fails(self) -> None:
        router = _router(_route("/"))
        with pytest.raises(RuntimeError, match="after compilation"):
            router.add(_route("/late"))

    def test_routes_introspection(self) -> None:
        router = _router(_route("/a"), _route("/b/{x}"), _route("/static/*"))
        assert sorted(r.path for r in router.routes) == ["/a", "/b/{x}", "/static/*"]
