"""Tests for reqbind.decode: JSON and XML into targets."""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

import pytest

from reqbind.convert import Ref
from reqbind.decode import decode_json, decode_xml
from reqbind.errors import JsonDecodeError, PointerTargetError, XmlDecodeError
from reqbind.fields import param


@dataclass
class Address:
    city: str = ""
    zip: str = ""


@dataclass
class User:
    name: str = ""
    age: int = 0
    admin: bool = False
    tags: list[str] = field(default_factory=list)
    address: Address | None = None
    email: str = param(json="mail", xml="mail", default="")


@dataclass
class Item:
    id: int = param(xml="id,attr", default=0)
    label: str = param(xml=",chardata", default="")


class TestDecodeJson:
    def test_into_ref(self) -> None:
        target = Ref(object)
        decode_json(b'{"a": [1, 2]}', target)
        assert target.value == {"a": [1, 2]}

    def test_into_dict_and_list(self) -> None:
        d: dict = {"keep": 1}
        decode_json(b'{"a": 1}', d)
        assert d == {"keep": 1, "a": 1}

        items: list = [0]
        decode_json(b"[1, 2]", items)
        assert items == [0, 1, 2]

    def test_into_dataclass(self) -> None:
        user = User()
        payload = b"""{"name": "ada", "age": 36, "admin": true, "tags": ["x"],
                      "address": {"city": "London"}, "mail": "ada@example.com",
                      "unknown": 1}"""
        decode_json(payload, user)

        assert user.name == "ada"
        assert user.age == 36
        assert user.admin is True
        assert user.tags == ["x"]
        assert user.address == Address(city="London")
        assert user.email == "ada@example.com"

    def test_string_scalars_are_converted(self) -> None:
        user = User()
        decode_json(b'{"age": "41", "admin": "true"}', user)
        assert user.age == 41
        assert user.admin is True

    def test_null_leaves_non_optional_field(self) -> None:
        user = User(age=3, address=Address("Paris"))
        decode_json(b'{"age": null, "address": null}', user)
        assert user.age == 3
        assert user.address is None

    @pytest.mark.parametrize("payload", [b"", b"   \n", ""])
    def test_empty_is_noop(self, payload: bytes | str) -> None:
        user = User(name="kept")
        decode_json(payload, user)
        assert user.name == "kept"

    def test_malformed(self) -> None:
        with pytest.raises(JsonDecodeError, match="invalid JSON"):
            decode_json(b"{nope", {})

    def test_type_mismatch(self) -> None:
        with pytest.raises(JsonDecodeError, match="age"):
            decode_json(b'{"age": "old"}', User())
        with pytest.raises(JsonDecodeError):
            decode_json(b"[1]", User())
        with pytest.raises(JsonDecodeError):
            decode_json(b'{"tags": "x"}', User())

    def test_union_fields(self) -> None:
        @dataclass
        class Mixed:
            v: int | str = 0
            w: int | str = 0
            n: float | None = None

        target = Mixed()
        decode_json(b'{"v": 5, "w": "five", "n": 2}', target)

        assert target.v == 5
        assert target.w == "five"
        assert target.n == 2.0

    def test_union_without_fitting_member(self) -> None:
        @dataclass
        class Numbers:
            v: int | float = 0

        with pytest.raises(JsonDecodeError, match="'v'"):
            decode_json(b'{"v": "abc"}', Numbers())

    @pytest.mark.parametrize("target", [5, "x", User, None])
    def test_not_addressable(self, target: object) -> None:
        with pytest.raises(PointerTargetError):
            decode_json(b"{}", target)


class TestDecodeXml:
    def test_into_ref(self) -> None:
        target = Ref(object)
        decode_xml(b"<root><a>1</a></root>", target)
        assert isinstance(target.value, ET.Element)
        assert target.value.tag == "root"

    def test_into_dict(self) -> None:
        d: dict = {}
        decode_xml(b'<root id="7"><a>1</a><a>2</a><b>x</b></root>', d)
        assert d == {"id": "7", "a": ["1", "2"], "b": "x"}

    def test_into_dataclass(self) -> None:
        user = User()
        payload = b"""<user>
            <name>ada</name><age>36</age><admin>1</admin>
            <tags>x</tags><tags>y</tags>
            <address><city>London</city><zip>N1</zip></address>
            <mail>ada@example.com</mail>
        </user>"""
        decode_xml(payload, user)

        assert user.name == "ada"
        assert user.age == 36
        assert user.admin is True
        assert user.tags == ["x", "y"]
        assert user.address == Address("London", "N1")
        assert user.email == "ada@example.com"

    def test_attr_and_chardata(self) -> None:
        item = Item()
        decode_xml(b'<item id="9">Widget</item>', item)
        assert item.id == 9
        assert item.label == "Widget"

    def test_empty_is_end_of_stream(self) -> None:
        with pytest.raises(XmlDecodeError, match="end of stream"):
            decode_xml(b"", {})

    def test_malformed(self) -> None:
        with pytest.raises(XmlDecodeError, match="invalid XML"):
            decode_xml(b"<a><b></a>", {})

    def test_conversion_failure(self) -> None:
        with pytest.raises(XmlDecodeError, match="age"):
            decode_xml(b"<user><age>old</age></user>", User())

    def test_list_target_not_supported(self) -> None:
        with pytest.raises(PointerTargetError):
            decode_xml(b"<a/>", [])
