"""Immutable query string parameters."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl


class QueryParams(Mapping[str, str]):
    """Parsed ``?a=1&a=2&b=`` query string.

    ``params["a"]`` is the first value; ``get_list("a")`` returns all.
    Blank values are kept.
    """

    __slots__ = ("_data", "_raw")

    _data: dict[str, list[str]]
    _raw: bytes

    def __init__(self, query_string: bytes = b"") -> None:
        data: dict[str, list[str]] = {}
        for key, value in parse_qsl(query_string.decode("latin-1"), keep_blank_values=True):
            data.setdefault(key, []).append(value)
        object.__setattr__(self, "_raw", query_string)
        object.__setattr__(self, "_data", data)

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"QueryParams({self._raw.decode('latin-1')!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._data.get(key)
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, ()))

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """Return value as int, or *default* if missing or not numeric."""
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    @property
    def raw(self) -> bytes:
        return self._raw
