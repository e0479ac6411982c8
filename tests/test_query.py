"""Tests for perch.http.query — immutable QueryParams."""

import pytest

from perch.http.query import QueryParams


class TestQueryParams:
    def test_getitem(self) -> None:
        q = QueryParams(b"q=hello&page=2")
        assert q["q"] == "hello"
        assert q["page"] == "2"

    def test_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            QueryParams(b"q=hello")["missing"]

    def test_multi_values(self) -> None:
        q = QueryParams(b"tag=a&tag=b")
        assert q["tag"] == "a"
        assert q.get_list("tag") == ["a", "b"]
        assert q.get_list("none") == []

    def test_blank_values_kept(self) -> None:
        q = QueryParams(b"empty=&x=1")
        assert q["empty"] == ""
        assert len(q) == 2

    def test_percent_decoding(self) -> None:
        assert QueryParams(b"q=a%20b+c")["q"] == "a b c"

    @pytest.mark.parametrize(
        ("raw", "expected"), [(b"page=3", 3), (b"page=x", None), (b"", None)]
    )
    def test_get_int(self, raw: bytes, expected: int | None) -> None:
        assert QueryParams(raw).get_int("page") == expected

    def test_raw(self) -> None:
        assert QueryParams(b"a=1").raw == b"a=1"
