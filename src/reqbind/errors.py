"""reqbind exception hierarchy.

Shared across the converter, the struct binder, and the body/file
accessors so every module raises and catches the same types.
"""

from typing import Any


class BindError(Exception):
    """Base for all reqbind binding errors."""


class PointerTargetError(BindError):
    """Raised when a destination cannot be written to.

    Destinations must be addressable: a ``Ref``, or a mutable dataclass
    instance for struct binding. Plain values, classes, and frozen
    dataclass instances are rejected before any lookup happens.
    """

    def __init__(self, target: Any) -> None:
        self.target = target
        super().__init__(f"target must be addressable, got {type(target).__name__}")


class QueryParamMissing(BindError):  # noqa: N818
    """A required query parameter is absent from the query string."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"query parameter {key!r} is missing")


QueryMissing = QueryParamMissing


class PathValueMissing(BindError):  # noqa: N818
    """A required path parameter is absent or empty."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"path value {key!r} is missing")


class InvalidMultipart(BindError):  # noqa: N818
    """A file accessor was called on a request that is not multipart."""

    def __init__(self, content_type: str | None = None) -> None:
        self.content_type = content_type
        super().__init__(f"request is not multipart/form-data (content-type: {content_type!r})")


class MultipartParseError(BindError):
    """The transport-level multipart decode failed."""


class OpenFileError(BindError):
    """An uploaded file part could not be opened.

    The underlying error is available as ``__cause__``.
    """


class ReadDataError(BindError):
    """An uploaded file part could not be read.

    The underlying error is available as ``__cause__``.
    """


class ConversionError(BindError):
    """A raw string could not be converted to the destination type.

    Attributes:
        raw: The offending raw value (a string or a list of strings).
        target_type: The declared destination type.
        field: Field name when raised from struct binding, else ``None``.
    """

    def __init__(
        self,
        raw: Any,
        target_type: Any,
        reason: str = "",
        *,
        field: str | None = None,
    ) -> None:
        self.raw = raw
        self.target_type = target_type
        self.reason = reason
        self.field = field
        super().__init__(self._message())

    def _message(self) -> str:
        name = getattr(self.target_type, "__name__", repr(self.target_type))
        msg = f"cannot convert {self.raw!r} to {name}"
        if self.field:
            msg = f"field {self.field!r}: {msg}"
        if self.reason:
            msg = f"{msg}: {self.reason}"
        return msg

    def for_field(self, field: str) -> "ConversionError":
        """Return a copy of this error tagged with *field*."""
        return ConversionError(self.raw, self.target_type, self.reason, field=field)


class DecodeError(BindError):
    """A structured body (JSON or XML) could not be decoded."""


class JsonDecodeError(DecodeError):
    """The JSON body is malformed or does not fit the target."""


class XmlDecodeError(DecodeError):
    """The XML body is malformed, empty, or does not fit the target."""


class BindAbort(Exception):  # noqa: N818
    """Raised by the ``must_*`` entry points instead of returning an error.

    The original ``BindError`` is kept on ``error`` and chained as
    ``__cause__`` so it can still be inspected.
    """

    def __init__(self, error: BindError) -> None:
        self.error = error
        super().__init__(str(error))
