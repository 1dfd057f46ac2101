"""Value conversion: raw wire strings into typed, addressable slots.

The converter never returns values; it writes into a destination the
caller owns. A destination is *addressable* when it is a ``Ref`` (a
typed cell) or a ``FieldRef`` (one attribute of an object). Anything
else is rejected with ``PointerTargetError`` before the raw input is
looked at.

The declared type of the slot picks the kind:

- scalars: ``str``, ``int``, ``float``, ``bool``, ``Decimal``, ``UUID``,
  ``datetime``, ``date``, ``time``, ``bytes``, ``Enum`` subclasses, and
  ``Any`` (kept as the raw string)
- sequences: ``list[X]``, ``tuple[X, ...]``, ``tuple[X, Y]``, ``set[X]``,
  ``frozenset[X]`` and their ``collections.abc`` counterparts

``X | None`` and ``Annotated[X, ...]`` resolve to ``X``.

Usage::

    page = Ref(int)
    convert("3", page)
    page.value  # 3

    tags = Ref(list[str])
    convert(["a", "b"], tags)
    tags.value  # ["a", "b"]
"""

from __future__ import annotations

import collections.abc as cabc
import datetime as dt
import types
import uuid
from collections.abc import Callable, Sequence
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Generic, TypeVar, Union, get_args, get_origin

from reqbind.config import DEFAULT_POLICY, ConversionPolicy
from reqbind.errors import ConversionError, PointerTargetError

_UNSET: Any = object()

T = TypeVar("T")


class Ref(Generic[T]):
    """A writable slot with a declared type.

    Starts at the zero value of *tp* unless an initial *value* is given::

        Ref(int).value        # 0
        Ref(list[str]).value  # []
        Ref(int | None).value # None
    """

    __slots__ = ("type", "value")

    def __init__(self, tp: Any, value: T = _UNSET) -> None:
        self.type = tp
        self.value: T = zero_value(tp) if value is _UNSET else value

    def __repr__(self) -> str:
        return f"Ref({_type_name(self.type)}, {self.value!r})"


class FieldRef:
    """A writable view over one attribute of an object."""

    __slots__ = ("name", "obj", "type")

    def __init__(self, obj: Any, name: str, tp: Any) -> None:
        self.obj = obj
        self.name = name
        self.type = tp

    @property
    def value(self) -> Any:
        return getattr(self.obj, self.name)

    @value.setter
    def value(self, value: Any) -> None:
        setattr(self.obj, self.name, value)

    def __repr__(self) -> str:
        return f"FieldRef({type(self.obj).__name__}.{self.name}: {_type_name(self.type)})"


def is_addressable(target: object) -> bool:
    """Return True if the converter can write into *target*."""
    return isinstance(target, (Ref, FieldRef))


# -- Type resolution --

_SEQUENCE_TYPES: dict[Any, type] = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    cabc.Sequence: list,
    cabc.MutableSequence: list,
    cabc.Iterable: list,
    cabc.Collection: list,
    cabc.Set: frozenset,
    cabc.MutableSet: set,
}


def unwrap(tp: Any) -> Any:
    """Strip ``Annotated`` and a single ``| None`` from *tp*."""
    origin = get_origin(tp)
    if origin is Annotated:
        return unwrap(get_args(tp)[0])
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return unwrap(args[0])
    return tp


def is_optional(tp: Any) -> bool:
    """Return True if *tp* admits ``None``."""
    if get_origin(tp) is Annotated:
        return is_optional(get_args(tp)[0])
    origin = get_origin(tp)
    return (origin is Union or origin is types.UnionType) and type(None) in get_args(tp)


def sequence_info(tp: Any) -> tuple[type, tuple[Any, ...]] | None:
    """Return ``(container, element_types)`` if *tp* is a sequence kind.

    ``element_types`` has one entry for homogeneous sequences and one
    entry per position for fixed-length tuples. Returns ``None`` for
    scalar kinds. ``str`` and ``bytes`` are never sequences here.
    """
    tp = unwrap(tp)
    if tp in _SEQUENCE_TYPES:
        return _SEQUENCE_TYPES[tp], (str,)
    origin = get_origin(tp)
    if origin not in _SEQUENCE_TYPES:
        return None
    args = get_args(tp)
    if origin is tuple and args and args[-1] is not Ellipsis:
        return tuple, args
    elems = tuple(a for a in args if a is not Ellipsis)
    return _SEQUENCE_TYPES[origin], (elems[0] if elems else str,)


def zero_value(tp: Any) -> Any:
    """Return the zero value for *tp* (what an untouched slot holds)."""
    if is_optional(tp):
        return None
    seq = sequence_info(tp)
    if seq is not None:
        return seq[0]()
    base = unwrap(tp)
    if base in _ZEROS:
        return _ZEROS[base]
    return None


_ZEROS: dict[Any, Any] = {
    str: "",
    int: 0,
    float: 0.0,
    bool: False,
    bytes: b"",
    Decimal: Decimal(0),
}


# -- Scalar parsing --

_SCALAR_PARSERS: dict[Any, Callable[[str], Any]] = {
    int: lambda raw: int(raw, 10),
    float: float,
    Decimal: Decimal,
    bytes: lambda raw: raw.encode("utf-8"),
    uuid.UUID: uuid.UUID,
    dt.datetime: dt.datetime.fromisoformat,
    dt.date: dt.date.fromisoformat,
    dt.time: dt.time.fromisoformat,
}


def parse_scalar(raw: str, tp: Any, policy: ConversionPolicy = DEFAULT_POLICY) -> Any:
    """Parse one raw string as the scalar kind of *tp*.

    Raises:
        ConversionError: If *raw* is not a valid literal for the kind, or
            the kind is not supported.
    """
    base = unwrap(tp)
    if base is Any or base is object:
        return raw
    if base is str:
        return raw.strip() if policy.strip_strings else raw
    try:
        if base is bool:
            return policy.parse_bool(raw)
        if isinstance(base, type) and issubclass(base, Enum):
            return _parse_enum(raw, base)
        parser = _SCALAR_PARSERS.get(base)
        if parser is None:
            raise ConversionError(raw, tp, "unsupported destination type")
        return parser(raw)
    except (ValueError, TypeError, ArithmeticError) as exc:
        raise ConversionError(raw, tp, str(exc)) from exc


def _parse_enum(raw: str, enum_type: type[Enum]) -> Enum:
    try:
        return enum_type(raw)
    except ValueError:
        pass
    for member in enum_type:
        if raw == member.name or raw == str(member.value):
            return member
    msg = f"not a valid {enum_type.__name__} member"
    raise ValueError(msg)


def _build_sequence(
    raws: Sequence[str],
    tp: Any,
    policy: ConversionPolicy,
) -> Any:
    seq = sequence_info(tp)
    if seq is None:
        raise ConversionError(list(raws), tp, "destination is not a sequence")
    container, elems = seq
    if container is tuple and len(elems) > 1:
        if len(raws) != len(elems):
            reason = f"expected {len(elems)} values, got {len(raws)}"
            raise ConversionError(list(raws), tp, reason)
        return tuple(parse_scalar(r, e, policy) for r, e in zip(raws, elems, strict=True))
    return container(parse_scalar(r, elems[0], policy) for r in raws)


# -- Public entry points --


def convert_value(
    raw: str,
    target: object,
    policy: ConversionPolicy = DEFAULT_POLICY,
) -> None:
    """Convert one raw string into *target*.

    A sequence destination receives a one-element sequence.
    """
    if not is_addressable(target):
        raise PointerTargetError(target)
    if sequence_info(target.type) is not None:
        target.value = _build_sequence([raw], target.type, policy)
    else:
        target.value = parse_scalar(raw, target.type, policy)


def convert_sequence(
    raws: Sequence[str],
    target: object,
    policy: ConversionPolicy = DEFAULT_POLICY,
) -> None:
    """Convert every raw string into the sequence destination *target*.

    Elements keep input order. Nothing is written unless all convert.
    """
    if not is_addressable(target):
        raise PointerTargetError(target)
    target.value = _build_sequence(raws, target.type, policy)


def convert(
    raw: str | Sequence[str],
    target: object,
    policy: ConversionPolicy = DEFAULT_POLICY,
) -> None:
    """Convert one or many raw strings into *target*.

    - a single string, or a one-item sequence → scalar rule
    - two or more strings → sequence rule (destination must be a sequence)
    - an empty sequence → no-op

    Raises:
        PointerTargetError: If *target* is not addressable.
        ConversionError: If any raw value does not parse.
    """
    if not is_addressable(target):
        raise PointerTargetError(target)
    if isinstance(raw, str):
        convert_value(raw, target, policy)
        return
    values = list(raw)
    if not values:
        return
    if len(values) == 1:
        convert_value(values[0], target, policy)
    else:
        convert_sequence(values, target, policy)


def _type_name(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__name__
    return repr(tp)
