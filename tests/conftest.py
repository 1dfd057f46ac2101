"""Shared pytest fixtures: ASGI scopes, receive callables, multipart bodies."""

from collections.abc import Callable

import pytest

from reqbind.http.request import Request

BOUNDARY = "reqbindboundary"


def _make_scope(**overrides: object) -> dict[str, object]:
    """Build a minimal valid ASGI HTTP scope."""
    base: dict[str, object] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": [],
    }
    base.update(overrides)
    return base


def _make_receive(*bodies: bytes):
    """Create an ASGI receive callable that yields bodies, then stops."""
    messages = []
    for i, body in enumerate(bodies):
        is_last = i == len(bodies) - 1
        messages.append({"type": "http.request", "body": body, "more_body": not is_last})
    if not messages:
        messages.append({"type": "http.request", "body": b"", "more_body": False})
    it = iter(messages)

    async def receive():
        try:
            return next(it)
        except StopIteration:
            msg = "receive() called after the body was fully read"
            raise AssertionError(msg) from None

    return receive


def encode_multipart(
    files: list[tuple[str, str, bytes]],
    values: list[tuple[str, str]] | None = None,
    boundary: str = BOUNDARY,
) -> bytes:
    """Encode (field, filename, data) files and (field, value) pairs."""
    out = bytearray()
    for name, value in values or []:
        out += f"--{boundary}\r\n".encode()
        out += f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
        out += value.encode() + b"\r\n"
    for name, filename, data in files:
        out += f"--{boundary}\r\n".encode()
        out += f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'.encode()
        out += b"Content-Type: application/octet-stream\r\n\r\n"
        out += data + b"\r\n"
    out += f"--{boundary}--\r\n".encode()
    return bytes(out)


@pytest.fixture
def make_scope() -> Callable[..., dict[str, object]]:
    return _make_scope


@pytest.fixture
def make_receive() -> Callable[..., object]:
    return _make_receive


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Factory: ``make_request(query=b"...", path_params={...}, body=b"...")``.

    ``body=None`` builds a request without a body stream. ``chunks``
    splits the body across several ASGI messages.
    """

    def factory(
        *,
        query: bytes = b"",
        path_params: dict[str, str] | None = None,
        body: bytes | None = b"",
        chunks: tuple[bytes, ...] | None = None,
        headers: list[tuple[bytes, bytes]] | None = None,
        method: str = "GET",
    ) -> Request:
        scope = _make_scope(method=method, query_string=query, headers=headers or [])
        if body is None and chunks is None:
            receive = None
        else:
            receive = _make_receive(*(chunks if chunks is not None else (body,)))
        return Request.from_asgi(scope, receive, path_params=path_params)

    return factory


@pytest.fixture
def multipart_request(make_request) -> Callable[..., Request]:
    """Factory for multipart/form-data requests."""

    def factory(
        files: list[tuple[str, str, bytes]],
        values: list[tuple[str, str]] | None = None,
        *,
        chunk_size: int | None = None,
    ) -> Request:
        body = encode_multipart(files, values)
        chunks = None
        if chunk_size:
            chunks = tuple(body[i : i + chunk_size] for i in range(0, len(body), chunk_size))
        ct = f"multipart/form-data; boundary={BOUNDARY}".encode()
        return make_request(
            method="POST",
            body=body,
            chunks=chunks,
            headers=[(b"content-type", ct)],
        )

    return factory
