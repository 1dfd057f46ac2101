"""Structured body decoding: JSON and XML into caller-owned targets.

Decoding itself is delegated to the stdlib (``json`` and
``xml.etree.ElementTree``). This module only writes the decoded data
into a destination:

- ``Ref``: the decoded value (or the XML root ``Element``) is assigned
- ``dict``: updated with the decoded object (XML: child tag → text)
- ``list``: extended with the decoded array (JSON only)
- a mutable dataclass instance: fields are populated by name, or by
  the ``"json"``/``"xml"`` field metadata key

Dataclass population converts strings through the value converter, so
``"42"`` lands in an ``int`` field as ``42``. Nested dataclass fields
are populated in place; a ``None`` nested field is built from its
type's defaults first.
"""

from __future__ import annotations

import dataclasses
import json
import types
import xml.etree.ElementTree as ET
from collections.abc import MutableMapping, MutableSequence
from decimal import Decimal
from typing import Any, Union, get_args, get_origin

from reqbind.config import DEFAULT_POLICY, ConversionPolicy
from reqbind.convert import FieldRef, Ref, convert, is_optional, parse_scalar, sequence_info, unwrap
from reqbind.errors import (
    ConversionError,
    DecodeError,
    JsonDecodeError,
    PointerTargetError,
    XmlDecodeError,
)
from reqbind.fields import JSON_TAG, XML_TAG, is_bindable, iter_fields

# -- JSON --


def decode_json(
    payload: bytes | str,
    target: object,
    policy: ConversionPolicy = DEFAULT_POLICY,
) -> None:
    """Decode *payload* as JSON into *target*.

    An empty (or whitespace-only) payload is a no-op.

    Raises:
        PointerTargetError: If *target* cannot be written to.
        JsonDecodeError: If the payload is malformed or does not fit.
    """
    _check_target(target, allow_list=True)
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise JsonDecodeError(f"invalid JSON: {exc}") from exc
    if not payload.strip():
        return
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise JsonDecodeError(f"invalid JSON: {exc}") from exc
    _assign_json(data, target, policy)


def _assign_json(data: Any, target: object, policy: ConversionPolicy) -> None:
    if isinstance(target, (Ref, FieldRef)):
        target.value = data
    elif isinstance(target, MutableMapping):
        if not isinstance(data, dict):
            raise JsonDecodeError(f"cannot decode JSON {type(data).__name__} into dict")
        target.update(data)
    elif isinstance(target, MutableSequence):
        if not isinstance(data, list):
            raise JsonDecodeError(f"cannot decode JSON {type(data).__name__} into list")
        target.extend(data)
    else:
        if not isinstance(data, dict):
            raise JsonDecodeError(
                f"cannot decode JSON {type(data).__name__} into {type(target).__name__}",
            )
        _populate_from_json(data, target, policy)


def _populate_from_json(data: dict[str, Any], obj: object, policy: ConversionPolicy) -> None:
    for spec in iter_fields(obj):
        key = spec.tag(JSON_TAG) or spec.name
        if key == "-" or key not in data:
            continue
        if data[key] is None and not is_optional(spec.type):
            continue
        setattr(obj, spec.name, _coerce_json(data[key], spec.type, spec.name, obj, policy))


def _coerce_json(value: Any, tp: Any, name: str, obj: object, policy: ConversionPolicy) -> Any:
    if value is None:
        return None
    base = unwrap(tp)
    members = _union_members(base)
    if members:
        return _coerce_json_union(value, members, tp, name, obj, policy)
    if dataclasses.is_dataclass(base) and isinstance(base, type):
        if not isinstance(value, dict):
            raise JsonDecodeError(f"field {name!r}: expected object, got {type(value).__name__}")
        nested = getattr(obj, name, None)
        if not is_bindable(nested) or not isinstance(nested, base):
            nested = _instantiate(base, name, JsonDecodeError)
        _populate_from_json(value, nested, policy)
        return nested
    seq = sequence_info(tp)
    if seq is not None:
        if not isinstance(value, list):
            raise JsonDecodeError(f"field {name!r}: expected array, got {type(value).__name__}")
        container, elems = seq
        if container is tuple and len(elems) > 1:
            if len(value) != len(elems):
                raise JsonDecodeError(f"field {name!r}: expected {len(elems)} items")
            return tuple(_coerce_json(v, e, name, obj, policy) for v, e in zip(value, elems, strict=True))
        return container(_coerce_json(v, elems[0], name, obj, policy) for v in value)
    return _coerce_json_scalar(value, tp, name, policy)


def _union_members(tp: Any) -> tuple[Any, ...]:
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return tuple(a for a in get_args(tp) if a is not type(None))
    return ()


def _coerce_json_union(
    value: Any,
    members: tuple[Any, ...],
    tp: Any,
    name: str,
    obj: object,
    policy: ConversionPolicy,
) -> Any:
    # A member matching the JSON type exactly wins over conversion
    for member in members:
        if isinstance(member, type) and get_origin(member) is None and isinstance(value, member):
            if isinstance(value, bool) and member is not bool:
                continue
            return value
    for member in members:
        try:
            return _coerce_json(value, member, name, obj, policy)
        except JsonDecodeError:
            continue
    raise JsonDecodeError(f"field {name!r}: {value!r} does not fit {tp}")


def _coerce_json_scalar(value: Any, tp: Any, name: str, policy: ConversionPolicy) -> Any:
    base = unwrap(tp)
    if base is Any or base is object:
        return value
    if base is bool:
        if isinstance(value, bool):
            return value
    elif base is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif base is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif base is Decimal:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return Decimal(str(value))
    elif base is dict or get_origin(base) is dict:
        return value
    if isinstance(value, str):
        try:
            return parse_scalar(value, tp, policy)
        except ConversionError as exc:
            raise JsonDecodeError(str(exc.for_field(name))) from exc
    if isinstance(value, (dict, list)):
        raise JsonDecodeError(f"field {name!r}: unexpected JSON {type(value).__name__}")
    try:
        return parse_scalar(str(value), tp, policy)
    except ConversionError as exc:
        raise JsonDecodeError(str(exc.for_field(name))) from exc


# -- XML --


def decode_xml(
    payload: bytes | str,
    target: object,
    policy: ConversionPolicy = DEFAULT_POLICY,
) -> None:
    """Decode *payload* as XML into *target*.

    Unlike JSON, an empty payload is an error: there is no root element.

    Raises:
        PointerTargetError: If *target* cannot be written to.
        XmlDecodeError: If the payload is empty, malformed, or does not fit.
    """
    _check_target(target, allow_list=False)
    if not payload or not payload.strip():
        msg = "unexpected end of stream"
        raise XmlDecodeError(msg)
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise XmlDecodeError(f"invalid XML: {exc}") from exc
    if isinstance(target, (Ref, FieldRef)):
        target.value = root
    elif isinstance(target, MutableMapping):
        target.update(_element_to_dict(root))
    else:
        _populate_from_xml(root, target, policy)


def _element_to_dict(elem: ET.Element) -> dict[str, Any]:
    result: dict[str, Any] = dict(elem.attrib)
    for child in elem:
        value: Any = _element_to_dict(child) if len(child) else (child.text or "")
        if child.tag in result:
            existing = result[child.tag]
            if not isinstance(existing, list):
                result[child.tag] = existing = [existing]
            existing.append(value)
        else:
            result[child.tag] = value
    return result


def _populate_from_xml(elem: ET.Element, obj: object, policy: ConversionPolicy) -> None:
    for spec in iter_fields(obj):
        tag = spec.tag(XML_TAG) or spec.name
        if tag == "-":
            continue
        name, _, flags = tag.partition(",")
        base = unwrap(spec.type)

        if flags == "attr":
            raw = elem.get(name)
            if raw is not None:
                _set_converted(obj, spec.name, spec.type, raw, policy)
            continue
        if flags == "chardata":
            _set_converted(obj, spec.name, spec.type, elem.text or "", policy)
            continue

        children = elem.findall(name)
        if not children:
            continue
        if dataclasses.is_dataclass(base) and isinstance(base, type):
            nested = getattr(obj, spec.name, None)
            if not is_bindable(nested) or not isinstance(nested, base):
                nested = _instantiate(base, spec.name, XmlDecodeError)
            _populate_from_xml(children[0], nested, policy)
            setattr(obj, spec.name, nested)
            continue
        texts = [child.text or "" for child in children]
        if sequence_info(spec.type) is not None:
            _set_converted(obj, spec.name, spec.type, texts, policy)
        else:
            _set_converted(obj, spec.name, spec.type, texts[0], policy)


def _set_converted(obj: object, name: str, tp: Any, raw: str | list[str], policy: ConversionPolicy) -> None:
    try:
        convert(raw, FieldRef(obj, name, tp), policy)
    except ConversionError as exc:
        raise XmlDecodeError(str(exc.for_field(name))) from exc


# -- Shared --


def _check_target(target: object, *, allow_list: bool) -> None:
    if isinstance(target, (Ref, FieldRef, MutableMapping)):
        return
    if allow_list and isinstance(target, MutableSequence):
        return
    if is_bindable(target):
        return
    raise PointerTargetError(target)


def _instantiate(cls: type, name: str, error: type[DecodeError]) -> Any:
    try:
        return cls()
    except TypeError as exc:
        msg = f"field {name!r}: {cls.__name__} needs defaults for every field to be decoded into"
        raise error(msg) from exc
