"""
Unit tests for upload persistence and file reading.
"""

from unittest.mock import patch

import pytest

from navigator.core.errors import InvalidUploadError
from navigator.ingest.loader import bytes_to_text, read_file_text
from navigator.services.uploads import sanitize_filename, save_upload


class TestSanitizeFilename:
    """Tests for sanitize_filename()."""

    def test_keeps_plain_names(self) -> None:
        assert sanitize_filename("report-2024.pdf") == "report-2024.pdf"

    def test_strips_directories(self) -> None:
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("C:\\Users\\me\\notes.txt") == "notes.txt"

    def test_replaces_unsafe_characters(self) -> None:
        assert sanitize_filename("my file (1).txt") == "my_file__1_.txt"

    def test_empty_becomes_unnamed(self) -> None:
        assert sanitize_filename("") == "unnamed"
        assert sanitize_filename("   ") == "unnamed"


class TestSaveUpload:
    """Tests for save_upload()."""

    def test_writes_file_under_upload_root(self, tmp_path) -> None:
        with patch("navigator.services.uploads._upload_root", return_value=tmp_path):
            path = save_upload("notes.txt", b"hello")
        assert path.is_absolute()
        assert path.parent == tmp_path.resolve()
        assert path.name.endswith("_notes.txt")
        assert path.read_bytes() == b"hello"

    def test_same_name_does_not_collide(self, tmp_path) -> None:
        with patch("navigator.services.uploads._upload_root", return_value=tmp_path):
            first = save_upload("a.txt", b"1")
            second = save_upload("a.txt", b"2")
        assert first != second
        assert first.read_bytes() == b"1" and second.read_bytes() == b"2"

    def test_empty_file_rejected(self, tmp_path) -> None:
        with patch("navigator.services.uploads._upload_root", return_value=tmp_path):
            with pytest.raises(InvalidUploadError):
                save_upload("empty.txt", b"")
        assert list(tmp_path.iterdir()) == []


class TestLoader:
    """Tests for bytes_to_text() and read_file_text()."""

    def test_text_and_unknown_extensions_decode(self) -> None:
        assert bytes_to_text(b"hello", "a.txt") == "hello"
        assert bytes_to_text(b"a,b\n1,2", "data.csv") == "a,b\n1,2"
        assert bytes_to_text("café".encode(), "") == "café"

    def test_read_file_text(self, tmp_path) -> None:
        f = tmp_path / "upload"
        f.write_bytes(b"no extension")
        assert read_file_text(f) == "no extension"

    def test_missing_file_raises(self, tmp_path) -> None:
        with pytest.raises(OSError):
            read_file_text(tmp_path / "missing.txt")
