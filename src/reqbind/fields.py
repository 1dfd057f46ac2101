"""Field annotations for struct binding.

A dataclass field names its request sources in its metadata: the query
key under ``"query"`` and the path key under ``"path"``. ``param()``
builds such a field::

    @dataclass
    class ItemFilter:
        id: int = param(query="id", path="id", default=0)
        tags: list[str] = param(query="tags", default_factory=list)
        page: int = 1  # untagged, never touched by the binder

Structured decoders use ``"json"`` and ``"xml"`` metadata the same way.
"""

from __future__ import annotations

import dataclasses
import inspect
import sys
from collections.abc import Callable, Iterator
from dataclasses import MISSING, dataclass
from typing import Any, ForwardRef, get_type_hints

QUERY_TAG = "query"
PATH_TAG = "path"
JSON_TAG = "json"
XML_TAG = "xml"


def param(
    *,
    query: str | None = None,
    path: str | None = None,
    json: str | None = None,
    xml: str | None = None,
    default: Any = MISSING,
    default_factory: Callable[[], Any] | Any = MISSING,
    **kwargs: Any,
) -> Any:
    """Declare a dataclass field fed by request sources.

    Remaining keyword arguments go to ``dataclasses.field``.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    for tag, key in ((QUERY_TAG, query), (PATH_TAG, path), (JSON_TAG, json), (XML_TAG, xml)):
        if key is not None:
            metadata[tag] = key
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata=metadata,
        **kwargs,
    )


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One dataclass field with its resolved type and source tags."""

    name: str
    type: Any
    metadata: dict[str, Any]

    def tag(self, name: str) -> str:
        """Return the source key for *name*, or ``""`` if untagged."""
        value = self.metadata.get(name)
        return value if isinstance(value, str) else ""


def is_bindable(target: object) -> bool:
    """Return True if *target* is a dataclass instance whose fields can be set."""
    if isinstance(target, type) or not dataclasses.is_dataclass(target):
        return False
    params = getattr(type(target), "__dataclass_params__", None)
    return not (params is not None and params.frozen)


def iter_fields(target: object) -> Iterator[FieldSpec]:
    """Yield the fields of a dataclass instance in declaration order.

    String annotations are resolved with ``get_type_hints``. When one of
    them cannot be resolved, each field is resolved on its own, and only
    the fields that still fail keep their raw annotation.
    """
    cls = type(target)
    hints = _resolve_hints(cls)
    for f in dataclasses.fields(cls):  # type: ignore[arg-type]
        yield FieldSpec(f.name, hints.get(f.name, f.type), dict(f.metadata))


def _resolve_hints(cls: type) -> dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except (NameError, TypeError):
        pass
    hints: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if not dataclasses.is_dataclass(klass):
            continue
        try:
            annotations = inspect.get_annotations(klass)
        except NameError:
            continue
        module = sys.modules.get(klass.__module__)
        globalns = dict(vars(module)) if module is not None else {}
        localns = dict(vars(klass))
        for name, annotation in annotations.items():
            hints[name] = _evaluate(annotation, globalns, localns)
    return hints


def _evaluate(annotation: Any, globalns: dict[str, Any], localns: dict[str, Any]) -> Any:
    if isinstance(annotation, ForwardRef):
        annotation = annotation.__forward_arg__
    if not isinstance(annotation, str):
        return annotation
    try:
        return eval(annotation, globalns, localns)  # noqa: S307
    except (NameError, TypeError, AttributeError, SyntaxError):
        return annotation
