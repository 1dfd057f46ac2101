"""Tests for reqbind.http.request: frozen Request with consume-once body."""

import pytest

from reqbind.http.request import Request


class TestRequestFromASGI:
    def test_basic_fields(self, make_scope, make_receive) -> None:
        scope = make_scope(method="POST", path="/users", query_string=b"q=1")
        req = Request.from_asgi(scope, make_receive())

        assert req.method == "POST"
        assert req.path == "/users"
        assert req.query["q"] == "1"
        assert req.has_body is True

    def test_path_params(self, make_scope, make_receive) -> None:
        req = Request.from_asgi(make_scope(path="/users/42"), make_receive(), path_params={"id": "42"})

        assert req.path_value("id") == "42"
        assert req.path_value("missing") == ""

    def test_path_params_from_scope(self, make_scope, make_receive) -> None:
        req = Request.from_asgi(make_scope(path_params={"slug": "hello"}), make_receive())
        assert req.path_value("slug") == "hello"

    def test_no_receive_means_no_body(self, make_scope) -> None:
        req = Request.from_asgi(make_scope(), None)
        assert req.has_body is False

    def test_is_multipart(self, make_scope, make_receive) -> None:
        headers = [(b"content-type", b"multipart/form-data; boundary=abc")]
        req = Request.from_asgi(make_scope(headers=headers), make_receive())
        assert req.is_multipart is True

        plain = Request.from_asgi(make_scope(), make_receive())
        assert plain.is_multipart is False
        assert plain.content_type is None


class TestRequestBody:
    async def test_body(self, make_request) -> None:
        req = make_request(body=b"hello world")
        assert await req.body() == b"hello world"

    async def test_body_chunked(self, make_request) -> None:
        req = make_request(chunks=(b"hello ", b"world"))
        assert await req.body() == b"hello world"

    async def test_stream(self, make_request) -> None:
        req = make_request(chunks=(b"chunk1", b"chunk2"))
        chunks = [chunk async for chunk in req.stream()]
        assert chunks == [b"chunk1", b"chunk2"]

    async def test_second_read_is_empty(self, make_request) -> None:
        req = make_request(body=b"once")

        assert req.consumed is False
        assert await req.body() == b"once"
        assert req.consumed is True
        assert await req.body() == b""

    async def test_no_body(self, make_request) -> None:
        req = make_request(body=None)
        assert await req.body() == b""


class TestRequestFrozen:
    def test_cannot_mutate(self, make_request) -> None:
        req = make_request()

        with pytest.raises(AttributeError):
            req.method = "POST"  # type: ignore[misc]


class TestRequestMultipartForm:
    def test_keep_and_release(self, make_request) -> None:
        class _Form:
            closed = False

            def close(self) -> None:
                self.closed = True

        req = make_request()
        form = _Form()
        assert req.multipart_form is None

        req.keep_multipart_form(form)  # type: ignore[arg-type]
        assert req.multipart_form is form

        req.release_multipart_form()
        assert req.multipart_form is None
        assert form.closed is True

    def test_release_without_form(self, make_request) -> None:
        req = make_request()
        req.release_multipart_form()
        assert req.multipart_form is None
