"""Immutable HTTP request: the source every binder reads from.

Frozen metadata with async, consume-once body access. The request is
honest about what it is: received data that doesn't change, and a body
stream that can be drained exactly once.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from reqbind._internal.asgi import Receive, Scope
from reqbind.http.headers import Headers
from reqbind.http.query import QueryParams

if TYPE_CHECKING:
    from reqbind.http.multipart import MultipartForm


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, query) is frozen at creation.
    The body is read asynchronously via ``.stream()`` or ``.body()``.

    Unlike a caching request, the body is *not* kept: once the live
    stream has been read to the end, further reads yield nothing. A
    request built with ``receive=None`` has no body at all.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]

    # Private: ASGI receive callable for body streaming (None means no body)
    _receive: Receive | None = None

    # Private: mutable stream state (dict contents are mutable even though
    # the field reference is frozen)
    _state: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def is_multipart(self) -> bool:
        """True if the body is ``multipart/form-data``."""
        return self.headers.media_type() == "multipart/form-data"

    @property
    def has_body(self) -> bool:
        """True if the request carries a body stream at all."""
        return self._receive is not None

    @property
    def consumed(self) -> bool:
        """True once the body stream has been read to the end."""
        return self._state.get("consumed", False)

    def path_value(self, key: str) -> str:
        """Return the path parameter *key*, or ``""`` if the route has none."""
        return self.path_params.get(key, "")

    # -- Async body access --

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks.

        Yields nothing if there is no body or it was already drained.
        """
        if self._receive is None or self.consumed:
            return
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break
        self._state["consumed"] = True

    async def body(self) -> bytes:
        """Read the rest of the request body.

        The first call drains the stream; later calls return ``b""``.
        """
        chunks = [chunk async for chunk in self.stream()]
        return b"".join(chunks)

    # -- Parsed multipart body --

    @property
    def multipart_form(self) -> MultipartForm | None:
        """The decoded multipart body, once it has been parsed."""
        return self._state.get("multipart")

    def keep_multipart_form(self, form: MultipartForm) -> None:
        """Remember *form* so later file lookups reuse it."""
        self._state["multipart"] = form

    def release_multipart_form(self) -> None:
        """Drop the decoded multipart body and free its spooled parts."""
        form = self._state.pop("multipart", None)
        if form is not None:
            form.close()

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        receive: Receive | None,
        path_params: dict[str, str] | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        return cls(
            method=scope.get("method", "GET"),
            path=scope.get("path", "/"),
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
            path_params=dict(path_params or scope.get("path_params") or {}),
            _receive=receive,
        )
