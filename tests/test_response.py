"""Tests for perch.http.response — Response chaining and Redirect."""

import json

import pytest

from perch.http.response import HTML, Redirect, Response, StreamingResponse


class TestResponse:
    def test_defaults(self) -> None:
        r = Response()
        assert r.body == ""
        assert r.status == 200
        assert r.content_type == HTML
        assert r.headers == ()

    def test_chaining_returns_new_objects(self) -> None:
        base = Response("x")
        r = base.with_status(201).with_header("A", "1").with_headers({"B": "2"})
        assert base.status == 200
        assert base.headers == ()
        assert r.status == 201
        assert r.headers == (("A", "1"), ("B", "2"))

    def test_header_lookup(self) -> None:
        r = Response().with_header("X-Request-ID", "abc")
        assert r.header("x-request-id") == "abc"
        assert r.header("missing") is None

    def test_body_views(self) -> None:
        assert Response("é").body_bytes == "é".encode()
        assert Response(b"raw").text == "raw"

    def test_content_type(self) -> None:
        r = Response("{}").with_content_type("application/json")
        assert r.content_type == "application/json"


class TestHtmxHeaders:
    def test_trigger_name(self) -> None:
        assert Response().with_hx_trigger("saved").header("HX-Trigger") == "saved"

    def test_trigger_payload(self) -> None:
        r = Response().with_hx_trigger({"toast": {"message": "ok"}})
        assert json.loads(r.header("HX-Trigger")) == {"toast": {"message": "ok"}}

    @pytest.mark.parametrize(("value", "expected"), [("/a", "/a"), (False, "false")])
    def test_push_url(self, value: str | bool, expected: str) -> None:
        assert Response().with_hx_push_url(value).header("HX-Push-Url") == expected

    def test_retarget_reswap_redirect(self) -> None:
        r = (
            Response()
            .with_hx_retarget("#main")
            .with_hx_reswap("outerHTML")
            .with_hx_redirect("/login")
        )
        assert r.header("HX-Retarget") == "#main"
        assert r.header("HX-Reswap") == "outerHTML"
        assert r.header("HX-Redirect") == "/login"


class TestOtherResponses:
    def test_redirect_default_status(self) -> None:
        assert Redirect("/next").status == 302

    def test_streaming_chaining(self) -> None:
        r = StreamingResponse(iter(["a"])).with_status(202).with_header("X-A", "1")
        assert r.status == 202
        assert r.header("x-a") == "1"
