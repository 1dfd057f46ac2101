"""reqbind: typed binding of HTTP request data.

Pulls query parameters, path parameters, text/JSON/XML bodies, and
multipart uploads out of an ASGI request and writes them into typed
destinations.

Basic usage::

    from dataclasses import dataclass
    from reqbind import Parser, Ref, param

    @dataclass
    class ItemQuery:
        id: int = param(query="id", path="id", default=0)
        tags: list[str] = param(query="tags", default_factory=list)

    parser = Parser.from_asgi(scope, receive, path_params={"id": "7"})
    item = ItemQuery()
    parser.must_url(item)

    page = Ref(int, 1)
    if not parser.query("page", page):
        ...
"""

__version__ = "0.1.0"
__all__ = [
    "BindAbort",
    "BindError",
    "BindResult",
    "BinderConfig",
    "ConversionError",
    "ConversionPolicy",
    "FilePart",
    "InvalidMultipart",
    "JsonDecodeError",
    "MultipartParseError",
    "OpenFileError",
    "Parse",
    "Parser",
    "PathValueMissing",
    "PointerTargetError",
    "QueryMissing",
    "QueryParamMissing",
    "ReadDataError",
    "Ref",
    "Request",
    "XmlDecodeError",
    "param",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import reqbind`` fast while providing a clean top-level API.
    """
    if name in ("Parser", "Parse"):
        from reqbind import parser as _parser

        return getattr(_parser, name)

    if name == "Request":
        from reqbind.http.request import Request

        return Request

    if name == "Ref":
        from reqbind.convert import Ref

        return Ref

    if name == "param":
        from reqbind.fields import param

        return param

    if name == "FilePart":
        from reqbind.files import FilePart

        return FilePart

    if name == "BindResult":
        from reqbind.result import BindResult

        return BindResult

    if name in ("BinderConfig", "ConversionPolicy"):
        from reqbind import config as _config

        return getattr(_config, name)

    if name in __all__:
        from reqbind import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
