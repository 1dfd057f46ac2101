"""Request parser: every binding entry point in one place.

A ``Parser`` wraps one request. It is built per request and never
shared. Each read-style operation comes in two flavours:

- ``query()``, ``path_value()``, ``url()``, ``text()``, ``json()``,
  ``xml()``, ``file()``, ``files()`` return a ``BindResult``
- ``must_query()`` … ``must_files()`` return the plain value and raise
  ``BindAbort`` (chained to the original ``BindError``) instead

The ``must_*`` variants only unwrap the result of their counterpart.

Usage::

    parser = Parser(request, limit=8)

    page = Ref(int, 1)
    parser.query("page", page)

    @dataclass
    class ItemRoute:
        id: int = param(query="id", path="id", default=0)
        tags: list[str] = param(query="tags", default_factory=list)

    route = ItemRoute()
    parser.must_url(route)

    avatar = await parser.must_file("avatar")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from reqbind.config import BinderConfig, ConversionPolicy
from reqbind.convert import FieldRef, convert, convert_value, is_addressable
from reqbind.decode import decode_json, decode_xml
from reqbind.errors import (
    BindError,
    ConversionError,
    OpenFileError,
    PathValueMissing,
    PointerTargetError,
    QueryParamMissing,
    ReadDataError,
)
from reqbind.fields import PATH_TAG, QUERY_TAG, FieldSpec, is_bindable, iter_fields
from reqbind.files import FilePart
from reqbind.http.multipart import parse_multipart
from reqbind.http.request import Request
from reqbind.result import BindResult

if TYPE_CHECKING:
    from reqbind._internal.asgi import Receive, Scope

logger = logging.getLogger("reqbind.parser")

T = TypeVar("T")


class Parse(Protocol):
    """Structural interface of a request parser."""

    def query(self, key: str, target: Any) -> BindResult[None]: ...
    def path_value(self, key: str, target: Any) -> BindResult[None]: ...
    def url(self, target: Any) -> BindResult[None]: ...
    async def text(self) -> BindResult[str]: ...
    async def json(self, target: Any) -> BindResult[None]: ...
    async def xml(self, target: Any) -> BindResult[None]: ...
    async def file(self, name: str) -> BindResult[FilePart]: ...
    async def files(self, *names: str) -> BindResult[list[FilePart]]: ...

    def must_query(self, key: str, target: Any) -> None: ...
    def must_path_value(self, key: str, target: Any) -> None: ...
    def must_url(self, target: Any) -> None: ...
    async def must_text(self) -> str: ...
    async def must_json(self, target: Any) -> None: ...
    async def must_xml(self, target: Any) -> None: ...
    async def must_file(self, name: str) -> FilePart: ...
    async def must_files(self, *names: str) -> list[FilePart]: ...


class Parser:
    """Binds query, path, body, and file data from one request.

    Args:
        request: The request to read from.
        payload: Pre-buffered body bytes. When non-empty they replace the
            live body stream for ``text``/``json``/``xml`` and switch the
            file accessors off (they return empty results).
        limit: Multipart memory limit in megabytes. Defaults to
            ``config.multipart_limit``.
        config: Parser configuration.
    """

    __slots__ = ("config", "limit", "payload", "request")

    def __init__(
        self,
        request: Request,
        payload: bytes | None = None,
        limit: int | None = None,
        *,
        config: BinderConfig | None = None,
    ) -> None:
        self.request = request
        self.payload = payload or b""
        self.config = config or BinderConfig()
        self.limit = self.config.multipart_limit if limit is None else limit

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        receive: Receive | None,
        path_params: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> Parser:
        """Build a parser straight from an ASGI scope and receive callable."""
        return cls(Request.from_asgi(scope, receive, path_params), **kwargs)

    @property
    def policy(self) -> ConversionPolicy:
        return self.config.policy

    def close(self) -> None:
        """Release spooled storage held by a parsed multipart body."""
        self.request.release_multipart_form()

    # -- Query / path --

    def query(self, key: str, target: Any) -> BindResult[None]:
        """Convert query parameter *key* into *target*.

        One value uses the scalar rule, several use the sequence rule.
        """
        try:
            if not is_addressable(target):
                raise PointerTargetError(target)
            if key not in self.request.query:
                raise QueryParamMissing(key)
            convert(self.request.query.get_list(key), target, self.policy)
        except BindError as exc:
            return BindResult(error=exc)
        return BindResult()

    def must_query(self, key: str, target: Any) -> None:
        self._must(self.query(key, target), "query")

    def path_value(self, key: str, target: Any) -> BindResult[None]:
        """Convert path parameter *key* into *target*."""
        try:
            if not is_addressable(target):
                raise PointerTargetError(target)
            raw = self.request.path_value(key)
            if not raw:
                raise PathValueMissing(key)
            convert_value(raw, target, self.policy)
        except BindError as exc:
            return BindResult(error=exc)
        return BindResult()

    def must_path_value(self, key: str, target: Any) -> None:
        self._must(self.path_value(key, target), "path_value")

    # -- Struct binding --

    def url(self, target: Any) -> BindResult[None]:
        """Populate a dataclass instance from its query/path field tags.

        Fields are visited in declaration order. For each field the query
        source is applied first and the path source second, so when both
        are present the path value wins. Missing sources leave the field
        untouched. The first conversion failure stops the walk; fields
        already written keep their new values.
        """
        try:
            if not is_bindable(target):
                raise PointerTargetError(target)
            for spec in iter_fields(target):
                slot = FieldRef(target, spec.name, spec.type)
                try:
                    self._bind_query_field(spec, slot)
                    self._bind_path_field(spec, slot)
                except ConversionError as exc:
                    raise exc.for_field(spec.name) from exc
        except BindError as exc:
            return BindResult(error=exc)
        return BindResult()

    def must_url(self, target: Any) -> None:
        self._must(self.url(target), "url")

    def _bind_query_field(self, spec: FieldSpec, slot: FieldRef) -> None:
        key = spec.tag(QUERY_TAG)
        if not key:
            return
        values = self.request.query.get_list(key)
        if values:
            convert(values, slot, self.policy)

    def _bind_path_field(self, spec: FieldSpec, slot: FieldRef) -> None:
        key = spec.tag(PATH_TAG)
        if not key:
            return
        raw = self.request.path_value(key)
        if raw:
            convert_value(raw, slot, self.policy)

    # -- Bodies --

    async def text(self) -> BindResult[str]:
        """Return the body as text.

        A pre-buffered payload is returned every time. The live stream is
        read once; later calls return ``""``.
        """
        if self.payload:
            return BindResult(self.payload.decode(self.config.encoding, errors="replace"))
        if not self.request.has_body:
            return BindResult("")
        raw = await self.request.body()
        return BindResult(raw.decode(self.config.encoding, errors="replace"))

    async def must_text(self) -> str:
        return self._must(await self.text(), "text")

    async def json(self, target: Any) -> BindResult[None]:
        """Decode a JSON body into *target*. An empty body is a no-op."""
        try:
            if self.payload:
                decode_json(self.payload, target, self.policy)
            elif self.request.has_body:
                decode_json(await self.request.body(), target, self.policy)
        except BindError as exc:
            return BindResult(error=exc)
        return BindResult()

    async def must_json(self, target: Any) -> None:
        self._must(await self.json(target), "json")

    async def xml(self, target: Any) -> BindResult[None]:
        """Decode an XML body into *target*.

        An empty live body is an error (``XmlDecodeError``), not a no-op.
        """
        try:
            if self.payload:
                decode_xml(self.payload, target, self.policy)
            elif self.request.has_body:
                decode_xml(await self.request.body(), target, self.policy)
        except BindError as exc:
            return BindResult(error=exc)
        return BindResult()

    async def must_xml(self, target: Any) -> None:
        self._must(await self.xml(target), "xml")

    # -- Files --

    async def file(self, name: str) -> BindResult[FilePart]:
        """Return the first part uploaded under *name*, or an empty part."""
        collected: list[FilePart] = []
        try:
            await self._collect((name,), collected, first_only=True)
        except BindError as exc:
            return BindResult(FilePart(), exc)
        return BindResult(collected[0] if collected else FilePart())

    async def must_file(self, name: str) -> FilePart:
        return self._must(await self.file(name), "file")

    async def files(self, *names: str) -> BindResult[list[FilePart]]:
        """Return uploaded parts for *names*, or every part if none given.

        If opening or reading a part fails, the result carries the error
        together with the parts read before the failure.
        """
        collected: list[FilePart] = []
        try:
            await self._collect(names, collected)
        except BindError as exc:
            return BindResult(collected, exc)
        return BindResult(collected)

    async def must_files(self, *names: str) -> list[FilePart]:
        return self._must(await self.files(*names), "files")

    async def _collect(
        self,
        names: tuple[str, ...],
        out: list[FilePart],
        *,
        first_only: bool = False,
    ) -> None:
        if self.payload:
            return
        form = await parse_multipart(self.request, self.limit, upload_dir=self.config.upload_dir)
        wanted = set(names)
        for part in form.parts:
            if wanted and part.field_name not in wanted:
                continue
            try:
                fh = part.open()
            except (OSError, ValueError) as exc:
                msg = f"cannot open uploaded file {part.filename!r}"
                raise OpenFileError(msg) from exc
            try:
                data = fh.read()
            except (OSError, ValueError) as exc:
                msg = f"cannot read uploaded file {part.filename!r}"
                raise ReadDataError(msg) from exc
            out.append(FilePart.from_upload(part.field_name, part.filename, data))
            if first_only:
                return

    # -- Helpers --

    def _must(self, result: BindResult[T], operation: str) -> T:
        if not result:
            logger.debug("%s aborted: %s", operation, result.error)
        return result.unwrap()
