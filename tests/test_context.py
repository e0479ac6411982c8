"""Tests for perch.context — request-scoped ContextVars."""

import pytest

from perch.app import App
from perch.context import get_request, get_request_id, request_var
from perch.http.request import Request
from perch.testing import TestClient


class TestOutsideRequest:
    def test_get_request_raises(self) -> None:
        with pytest.raises(LookupError):
            get_request()

    def test_request_id_is_none(self) -> None:
        assert get_request_id() is None


class TestInsideRequest:
    async def test_handler_sees_request_and_id(self) -> None:
        app = App()
        seen: dict[str, object] = {}

        @app.route("/who")
        def who():
            seen["path"] = get_request().path
            seen["id"] = get_request_id()
            return "ok"

        async with TestClient(app) as client:
            response = await client.get("/who", headers={"X-Request-ID": "trace-1"})

        assert seen["path"] == "/who"
        assert seen["id"] == response.header("X-Request-ID")
        assert seen["id"] != "trace-1"

    async def test_reset_after_request(self) -> None:
        app = App()

        @app.route("/")
        def index():
            return "ok"

        async with TestClient(app) as client:
            await client.get("/")

        assert request_var.get(None) is None
        assert get_request_id() is None

    def test_set_and_get(self) -> None:
        scope = {
            "type": "http",
            "method": "GET",
            "path": "/test",
            "headers": [],
            "query_string": b"",
            "http_version": "1.1",
        }

        async def receive():
            return {"type": "http.request", "body": b"", "more_body": False}

        request = Request.from_asgi(scope, receive)
        token = request_var.set(request)
        try:
            assert get_request() is request
        finally:
            request_var.reset(token)
