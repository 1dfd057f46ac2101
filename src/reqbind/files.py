"""Uploaded file parts and content-type sniffing.

``FilePart`` is the value the file accessors hand back: the form field
it came from, the client's filename, a content type sniffed from the
bytes themselves (never trusted from the client), the filename suffix,
and the payload.

Sniffing follows the WHATWG MIME sniffing algorithm as implemented by
Go's ``http.DetectContentType``: at most the first 512 bytes are
considered, and the result always names a valid MIME type
(``application/octet-stream`` when nothing matches).
"""

import posixpath
from dataclasses import dataclass
from pathlib import Path

SNIFF_LEN = 512

OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class FilePart:
    """An uploaded file from a multipart form submission.

    The empty ``FilePart()`` stands for "nothing uploaded" and is falsy::

        avatar = await parser.must_file("avatar")
        if avatar:
            await avatar.save(Path("uploads") / avatar.name)
    """

    key: str = ""
    name: str = ""
    type: str = ""
    suffix: str = ""
    data: bytes = b""

    @property
    def size(self) -> int:
        """Payload length in bytes."""
        return len(self.data)

    def __bool__(self) -> bool:
        return bool(self.key or self.name or self.data)

    async def read(self) -> bytes:
        """Return the file content as bytes."""
        return self.data

    async def save(self, path: Path) -> None:
        """Write the file content to disk.

        Args:
            path: Destination file path. Parent directories must exist.
        """
        path.write_bytes(self.data)

    def __repr__(self) -> str:
        return f"FilePart({self.key!r}, {self.name!r}, {self.type!r}, {self.size} bytes)"

    @classmethod
    def from_upload(cls, key: str, filename: str, data: bytes) -> "FilePart":
        """Build a part, sniffing its type and deriving its suffix."""
        return cls(
            key=key,
            name=filename,
            type=detect_content_type(data),
            suffix=filename_suffix(filename),
            data=data,
        )


def filename_suffix(filename: str) -> str:
    """Return the extension of *filename* without the dot (``""`` if none).

    Both ``/`` and ``\\`` separators are honoured since browsers on
    Windows may send full client paths.
    """
    base = posixpath.basename(filename.replace("\\", "/"))
    _, ext = posixpath.splitext(base)
    return ext[1:]


# -- Sniffing --

_WHITESPACE = b"\t\n\x0c\r "

# HTML signatures: case-insensitive, after leading whitespace, followed by
# a tag-terminating byte (space or '>').
_HTML_SIGS: tuple[bytes, ...] = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

# (pattern, mask, content type). A mask byte of 0xFF must match exactly,
# 0x00 is a wildcard. ``None`` means an exact prefix match.
_MASKED_SIGS: tuple[tuple[bytes, bytes | None, str], ...] = (
    (b"%PDF-", None, "application/pdf"),
    (b"%!PS-Adobe-", None, "application/postscript"),
    (b"\xfe\xff", None, "text/plain; charset=utf-16be"),
    (b"\xff\xfe", None, "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", None, TEXT_PLAIN),
    # images
    (b"\x00\x00\x01\x00", None, "image/x-icon"),
    (b"\x00\x00\x02\x00", None, "image/x-icon"),
    (b"BM", None, "image/bmp"),
    (b"GIF87a", None, "image/gif"),
    (b"GIF89a", None, "image/gif"),
    (b"RIFF\x00\x00\x00\x00WEBPVP", b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff", "image/webp"),
    (b"\x89PNG\r\n\x1a\n", None, "image/png"),
    (b"\xff\xd8\xff", None, "image/jpeg"),
    # audio / video
    (b"FORM\x00\x00\x00\x00AIFF", b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff", "audio/aiff"),
    (b"ID3", None, "audio/mpeg"),
    (b"OggS\x00", None, "application/ogg"),
    (b"MThd\x00\x00\x00\x06", None, "audio/midi"),
    (b"RIFF\x00\x00\x00\x00AVI ", b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff", "video/avi"),
    (b"RIFF\x00\x00\x00\x00WAVE", b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff", "audio/wave"),
    (b"\x1a\x45\xdf\xa3", None, "video/webm"),
    # fonts
    (b"OTTO", None, "font/otf"),
    (b"ttcf", None, "font/collection"),
    (b"wOFF", None, "font/woff"),
    (b"wOF2", None, "font/woff2"),
    # archives
    (b"\x1f\x8b\x08", None, "application/x-gzip"),
    (b"PK\x03\x04", None, "application/zip"),
    (b"Rar!\x1a\x07\x00", None, "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", None, "application/x-rar-compressed"),
    (b"\x00asm", None, "application/wasm"),
)

# Bytes that mark content as binary for the plain-text check.
_BINARY_BYTES = frozenset(
    [*range(0x00, 0x09), 0x0B, *range(0x0E, 0x1B), *range(0x1C, 0x20)],
)


def detect_content_type(data: bytes) -> str:
    """Sniff the MIME type of *data*.

    Returns ``text/plain; charset=utf-8`` for empty input.
    """
    head = data[:SNIFF_LEN]
    stripped = head.lstrip(_WHITESPACE)

    upper = stripped.upper()
    for sig in _HTML_SIGS:
        if upper.startswith(sig) and len(stripped) > len(sig) and stripped[len(sig)] in b" >":
            return "text/html; charset=utf-8"
    if upper.startswith(b"<?XML"):
        return "text/xml; charset=utf-8"

    for pattern, mask, content_type in _MASKED_SIGS:
        if _matches(head, pattern, mask):
            return content_type

    if _is_mp4(head):
        return "video/mp4"
    if head[:4] == b"\x00\x01\x00\x00":
        return "font/ttf"

    if not any(b in _BINARY_BYTES for b in head):
        return TEXT_PLAIN
    return OCTET_STREAM


def _matches(data: bytes, pattern: bytes, mask: bytes | None) -> bool:
    if len(data) < len(pattern):
        return False
    if mask is None:
        return data.startswith(pattern)
    return all((d & m) == (p & m) for d, p, m in zip(data, pattern, mask, strict=False))


def _is_mp4(data: bytes) -> bool:
    # ISO base media: a box size, 'ftyp', then brands; any 'mp4' brand wins
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0 or data[4:8] != b"ftyp":
        return False
    for start in range(8, box_size, 4):
        if start == 12:
            continue  # minor version
        if data[start : start + 3] == b"mp4":
            return True
    return False
