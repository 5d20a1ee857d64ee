"""Utility helpers for working with source files."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Tuple

from recordlens.config import LINE_DELIMITED_EXTENSIONS

_BOM = "\ufeff"


def is_line_delimited_path(path: Path, extensions: Iterable[str] = LINE_DELIMITED_EXTENSIONS) -> bool:
    """True when the extension alone marks the file as JSONL/NDJSON."""
    return path.suffix.lower() in {ext.lower() for ext in extensions}


def file_size(path: Path) -> int:
    """Size of ``path`` in bytes; raises ``OSError`` when it cannot be read."""
    return path.stat().st_size


def iter_lines(handle: BinaryIO) -> Iterator[Tuple[int, str]]:
    """Yield ``(byte_length, text)`` for every line of a binary handle.

    ``byte_length`` includes the line terminator; ``text`` has it removed.
    A UTF-8 byte order mark on the first line is dropped from the text.
    """
    first = True
    for raw in handle:
        text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        if first:
            text = text.lstrip(_BOM)
            first = False
        yield len(raw), text


def read_first_line(path: Path) -> str:
    """Return the first line of ``path`` without its terminator, or ``""``."""
    with path.open("rb") as handle:
        for _, text in iter_lines(handle):
            return text
    return ""
