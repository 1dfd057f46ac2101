"""Immutable query string parameters.

Implements ``Mapping[str, str]`` and the ``MultiValueMapping`` protocol.
"""

from collections.abc import Iterator, Mapping, Sequence
from urllib.parse import parse_qs


class QueryParams(Mapping[str, str]):
    """Immutable, multi-valued query string parameters.

    Attributes:
        _data: Parsed query string as key -> ordered list of values.
        _raw: Raw query string bytes.

    Blank values are kept (``?flag=`` maps ``flag`` to ``[""]``) so a
    present-but-empty key is distinguishable from an absent one.
    """

    _data: dict[str, list[str]]
    _raw: bytes

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes | str = b"") -> None:
        if isinstance(query_string, str):
            query_string = query_string.encode("latin-1")
        object.__setattr__(self, "_raw", query_string)
        parsed = parse_qs(query_string.decode("latin-1"), keep_blank_values=True)
        object.__setattr__(self, "_data", parsed)

    @classmethod
    def from_mapping(cls, data: Mapping[str, str | Sequence[str]]) -> "QueryParams":
        """Build query params from an already-decoded mapping."""
        q = cls()
        parsed = {k: [v] if isinstance(v, str) else list(v) for k, v in data.items()}
        object.__setattr__(q, "_data", parsed)
        return q

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self._data[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*, in the order they were sent."""
        return list(self._data.get(key, []))

    @property
    def raw(self) -> bytes:
        """The undecoded query string."""
        return self._raw
