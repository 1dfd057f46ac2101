"""Transport-level multipart/form-data decoding.

Streams the request body through ``python-multipart``'s callback parser.
File parts are spooled: up to the memory limit they stay in memory,
beyond it they spill to a temporary file. Plain (non-file) values are
held in memory and capped at the limit plus 10 MB.

The parse result is cached on the request so repeated file lookups on
one request decode the body only once.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from tempfile import SpooledTemporaryFile
from typing import IO, TYPE_CHECKING, Any

from python_multipart.exceptions import FormParserError
from python_multipart.multipart import MultipartParser, parse_options_header

from reqbind.errors import InvalidMultipart, MultipartParseError

if TYPE_CHECKING:
    from reqbind.http.request import Request

logger = logging.getLogger("reqbind.multipart")

# Non-file values may use this much on top of the memory limit
VALUE_ALLOWANCE = 10 << 20


@dataclass(slots=True)
class UploadedPart:
    """A file part as it came off the wire, before it is read.

    ``open()`` rewinds the spooled storage and hands it back; reading it
    is up to the caller.
    """

    field_name: str
    filename: str
    content_type: str
    size: int
    _file: IO[bytes] = field(repr=False)

    def open(self) -> IO[bytes]:
        """Return the part's storage, positioned at the start."""
        self._file.seek(0)
        return self._file

    def close(self) -> None:
        self._file.close()


@dataclass(slots=True)
class MultipartForm:
    """Decoded multipart body: plain values and file parts.

    ``values`` and ``files`` group by field name, keeping the order
    fields first appeared. ``parts`` lists every file part in wire order.
    """

    values: dict[str, list[str]] = field(default_factory=dict)
    files: dict[str, list[UploadedPart]] = field(default_factory=dict)
    parts: list[UploadedPart] = field(default_factory=list)

    def add_part(self, part: UploadedPart) -> None:
        self.files.setdefault(part.field_name, []).append(part)
        self.parts.append(part)

    def close(self) -> None:
        """Release spooled storage for every file part."""
        for part in self.parts:
            part.close()


def limit_bytes(limit_mb: int) -> int:
    """Convert a megabyte limit to bytes (``limit << 20``)."""
    return limit_mb << 20


async def parse_multipart(
    request: Request,
    limit: int,
    *,
    upload_dir: str | None = None,
) -> MultipartForm:
    """Decode the request body as multipart/form-data.

    Args:
        request: The request to read. Its body stream is consumed.
        limit: Memory limit in megabytes.
        upload_dir: Directory for parts that spill to disk.

    Raises:
        InvalidMultipart: If the request is not multipart/form-data.
        MultipartParseError: If the boundary is missing, the body is
            malformed, or plain values exceed their allowance.
    """
    cached = request.multipart_form
    if cached is not None:
        return cached

    if not request.is_multipart:
        raise InvalidMultipart(request.content_type)

    _, options = parse_options_header(request.content_type or "")
    boundary = options.get(b"boundary")
    if not boundary:
        msg = "multipart body missing boundary parameter"
        raise MultipartParseError(msg)

    form = await _decode(
        request.stream(),
        boundary,
        max_memory=limit_bytes(limit),
        upload_dir=upload_dir,
    )
    request.keep_multipart_form(form)
    logger.debug(
        "parsed multipart body: %d value field(s), %d file part(s)",
        len(form.values),
        sum(len(parts) for parts in form.files.values()),
    )
    return form


async def _decode(
    chunks: AsyncIterable[bytes],
    boundary: bytes,
    *,
    max_memory: int,
    upload_dir: str | None,
) -> MultipartForm:
    form = MultipartForm()
    value_budget = max_memory + VALUE_ALLOWANCE

    # Current part state
    header_field = bytearray()
    header_value = bytearray()
    headers: dict[str, str] = {}
    field_name: str | None = None
    filename: str | None = None
    value_data = bytearray()
    spool: SpooledTemporaryFile[bytes] | None = None
    size = 0

    def on_part_begin() -> None:
        nonlocal field_name, filename, value_data, spool, size
        headers.clear()
        field_name = None
        filename = None
        value_data = bytearray()
        spool = None
        size = 0

    def on_header_field(data: bytes, start: int, end: int) -> None:
        header_field.extend(data[start:end])

    def on_header_value(data: bytes, start: int, end: int) -> None:
        header_value.extend(data[start:end])

    def on_header_end() -> None:
        name = header_field.decode("latin-1").strip().lower()
        headers[name] = header_value.decode("latin-1").strip()
        del header_field[:]
        del header_value[:]

    def on_headers_finished() -> None:
        nonlocal field_name, filename, spool
        _, params = parse_options_header(headers.get("content-disposition", ""))
        name = params.get(b"name")
        if name is not None:
            field_name = name.decode("utf-8", errors="replace")
        fname = params.get(b"filename")
        if fname is not None:
            filename = fname.decode("utf-8", errors="replace")
            spool = SpooledTemporaryFile(max_size=max_memory, dir=upload_dir)  # noqa: SIM115
            if max_memory <= 0:
                spool.rollover()

    def on_part_data(data: bytes, start: int, end: int) -> None:
        nonlocal size, value_budget
        chunk = data[start:end]
        size += len(chunk)
        if spool is not None:
            spool.write(chunk)
            return
        value_budget -= len(chunk)
        if value_budget < 0:
            msg = "multipart: message too large"
            raise MultipartParseError(msg)
        value_data.extend(chunk)

    def on_part_end() -> None:
        if field_name is None:
            if spool is not None:
                spool.close()
            return
        if spool is not None and filename is not None:
            part = UploadedPart(
                field_name=field_name,
                filename=filename,
                content_type=headers.get("content-type", "application/octet-stream"),
                size=size,
                _file=spool,
            )
            form.add_part(part)
        else:
            form.values.setdefault(field_name, []).append(
                value_data.decode("utf-8", errors="replace"),
            )

    callbacks: dict[str, Any] = {
        "on_part_begin": on_part_begin,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
        "on_header_end": on_header_end,
        "on_headers_finished": on_headers_finished,
    }

    parser = MultipartParser(boundary, callbacks)
    try:
        async for chunk in chunks:
            parser.write(chunk)
        parser.finalize()
    except FormParserError as exc:
        form.close()
        msg = f"malformed multipart body: {exc}"
        raise MultipartParseError(msg) from exc
    except MultipartParseError:
        form.close()
        raise
    return form
