"""Tests for file utility functions."""

from __future__ import annotations

from pathlib import Path

import pytest

from recordlens.utils.files import file_size, is_line_delimited_path, iter_lines, read_first_line


class TestIsLineDelimitedPath:
    """Test is_line_delimited_path function."""

    @pytest.mark.parametrize("name", ["data.jsonl", "data.ndjson", "DATA.JSONL"])
    def test_line_delimited_extensions(self, name: str) -> None:
        """Should recognise JSONL extensions regardless of case."""
        assert is_line_delimited_path(Path(name))

    @pytest.mark.parametrize("name", ["data.json", "data.txt", "data"])
    def test_other_extensions(self, name: str) -> None:
        """Other extensions are not forced line-delimited."""
        assert not is_line_delimited_path(Path(name))

    def test_custom_extensions(self) -> None:
        """Should honour a custom extension list."""
        assert is_line_delimited_path(Path("x.log"), [".log"])


class TestIterLines:
    """Test iter_lines function."""

    def test_lengths_include_terminators(self, tmp_path: Path) -> None:
        """Byte lengths include the newline; text does not."""
        source = tmp_path / "data.jsonl"
        source.write_bytes(b'{"a":1}\r\n{"b":2}\n{"c":3}')

        with source.open("rb") as handle:
            lines = list(iter_lines(handle))

        assert lines == [(9, '{"a":1}'), (8, '{"b":2}'), (7, '{"c":3}')]

    def test_multibyte_lengths(self, tmp_path: Path) -> None:
        """Lengths count bytes, not characters."""
        source = tmp_path / "data.jsonl"
        source.write_text('{"a":"é"}\n', encoding="utf-8")

        with source.open("rb") as handle:
            lines = list(iter_lines(handle))

        assert lines == [(11, '{"a":"é"}')]

    def test_strips_byte_order_mark(self, tmp_path: Path) -> None:
        """A leading BOM is removed from the first line's text."""
        source = tmp_path / "data.json"
        source.write_bytes(b'\xef\xbb\xbf[1]\n')

        assert read_first_line(source) == "[1]"


class TestFileHelpers:
    """Test file_size and read_first_line."""

    def test_file_size(self, tmp_path: Path) -> None:
        """Should report the size in bytes."""
        source = tmp_path / "data.jsonl"
        source.write_bytes(b"12345")
        assert file_size(source) == 5

    def test_file_size_missing(self, tmp_path: Path) -> None:
        """Missing files raise OSError."""
        with pytest.raises(OSError):
            file_size(tmp_path / "missing.jsonl")

    def test_read_first_line_empty(self, tmp_path: Path) -> None:
        """Empty files have an empty first line."""
        source = tmp_path / "empty.json"
        source.write_bytes(b"")
        assert read_first_line(source) == ""
