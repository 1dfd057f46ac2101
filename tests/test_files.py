"""Tests for reqbind.files: FilePart, sniffing, and suffixes."""

from pathlib import Path

import pytest

from reqbind.files import FilePart, detect_content_type, filename_suffix


class TestDetectContentType:
    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            (b"", "text/plain; charset=utf-8"),
            (b"hello world", "text/plain; charset=utf-8"),
            (b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", "image/png"),
            (b"\xff\xd8\xff\xe0\x00\x10JFIF", "image/jpeg"),
            (b"GIF89a\x01\x00", "image/gif"),
            (b"%PDF-1.7\n", "application/pdf"),
            (b"PK\x03\x04\x14\x00", "application/zip"),
            (b"\x1f\x8b\x08\x00", "application/x-gzip"),
            (b"  <html><body></body></html>", "text/html; charset=utf-8"),
            (b"<!DOCTYPE html>\n<html>", "text/html; charset=utf-8"),
            (b'<?xml version="1.0"?><a/>', "text/xml; charset=utf-8"),
            (b"RIFF\x10\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"RIFF\x10\x00\x00\x00WAVEfmt ", "audio/wave"),
            (b"\x00\x01\x02\x03\x04", "application/octet-stream"),
        ],
    )
    def test_signatures(self, data: bytes, expected: str) -> None:
        assert detect_content_type(data) == expected

    def test_mp4(self) -> None:
        data = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom"
        assert detect_content_type(data) == "video/mp4"

    def test_html_needs_terminator(self) -> None:
        # "<a" followed by a letter is not an anchor tag
        assert detect_content_type(b"<apple") == "text/plain; charset=utf-8"

    def test_only_first_512_bytes_count(self) -> None:
        data = b"a" * 600 + b"\x00"
        assert detect_content_type(data) == "text/plain; charset=utf-8"


class TestFilenameSuffix:
    @pytest.mark.parametrize(
        ("name", "suffix"),
        [
            ("photo.jpg", "jpg"),
            ("archive.tar.gz", "gz"),
            ("README", ""),
            (".bashrc", ""),
            ("C:\\Users\\me\\report.PDF", "PDF"),
            ("dir/notes.txt", "txt"),
            ("", ""),
        ],
    )
    def test_suffix(self, name: str, suffix: str) -> None:
        assert filename_suffix(name) == suffix


class TestFilePart:
    def test_empty_part_is_falsy(self) -> None:
        assert not FilePart()
        assert FilePart().size == 0

    def test_from_upload(self) -> None:
        part = FilePart.from_upload("avatar", "me.png", b"\x89PNG\r\n\x1a\nrest")
        assert part.key == "avatar"
        assert part.name == "me.png"
        assert part.type == "image/png"
        assert part.suffix == "png"
        assert part.size == 12
        assert part

    def test_repr(self) -> None:
        part = FilePart.from_upload("doc", "a.txt", b"hello")
        assert repr(part) == "FilePart('doc', 'a.txt', 'text/plain; charset=utf-8', 5 bytes)"

    async def test_read(self) -> None:
        part = FilePart.from_upload("doc", "a.txt", b"hello")
        assert await part.read() == b"hello"

    async def test_save(self, tmp_path: Path) -> None:
        part = FilePart.from_upload("doc", "a.txt", b"hello")
        dest = tmp_path / "out.txt"
        await part.save(dest)
        assert dest.read_bytes() == b"hello"
