"""Tests for reqbind.http.headers: case-insensitive Headers."""

import pytest

from reqbind._internal.multimap import MultiValueMapping
from reqbind.http.headers import Headers


def _h(*pairs: tuple[str, str]) -> Headers:
    """Shorthand: build Headers from string pairs."""
    raw = tuple((k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs)
    return Headers(raw)


class TestHeaders:
    def test_case_insensitive_lookup(self) -> None:
        h = _h(("Content-Type", "text/html"))
        assert h["content-type"] == "text/html"
        assert h["CONTENT-TYPE"] == "text/html"

    def test_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            _h(("Accept", "*/*"))["X-Missing"]

    def test_contains(self) -> None:
        h = _h(("Accept", "*/*"))
        assert "Accept" in h
        assert "x-missing" not in h
        assert 42 not in h  # type: ignore[operator]

    def test_iter_yields_unique_lowercase_keys(self) -> None:
        h = _h(("Accept", "*/*"), ("Content-Type", "text/html"), ("Accept", "text/xml"))
        assert list(h) == ["accept", "content-type"]
        assert len(h) == 2

    def test_get_and_get_list(self) -> None:
        h = _h(("X-Tag", "a"), ("X-Tag", "b"))
        assert h.get("x-tag") == "a"
        assert h.get("x-missing", "fallback") == "fallback"
        assert h.get_list("X-Tag") == ["a", "b"]
        assert h.get_list("X-Missing") == []

    def test_satisfies_multivalue_mapping(self) -> None:
        assert isinstance(_h(("A", "1")), MultiValueMapping)


class TestMediaType:
    def test_strips_parameters_and_case(self) -> None:
        h = _h(("Content-Type", "Multipart/Form-Data; boundary=xyz"))
        assert h.media_type() == "multipart/form-data"

    def test_missing(self) -> None:
        assert Headers().media_type() == ""
