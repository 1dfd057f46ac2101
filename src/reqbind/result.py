"""Binding result: immutable container for a value or an error."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from reqbind.errors import BindAbort, BindError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class BindResult(Generic[T]):
    """The outcome of one binding operation.

    ``ok`` is True when there is no error. The result is falsy on
    error, so you can write::

        result = parser.query("page", page)
        if not result:
            return Response(str(result.error), status=400)

    ``value`` holds whatever the operation produced: the text body, a
    ``FilePart``, a list of parts, or ``None`` for operations that only
    write into a target. On error it may still hold partial output
    (``files()`` returns the parts read before the failure).
    """

    value: T | None = None
    error: BindError | None = None

    @property
    def ok(self) -> bool:
        """True if the operation succeeded."""
        return self.error is None

    def __bool__(self) -> bool:
        """Falsy on error, enables the ``if not result:`` pattern."""
        return self.ok

    def unwrap(self) -> T:
        """Return the value, or raise ``BindAbort`` chained to the error."""
        if self.error is not None:
            raise BindAbort(self.error) from self.error
        return self.value  # type: ignore[return-value]
