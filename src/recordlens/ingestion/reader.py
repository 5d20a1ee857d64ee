"""Shape detection and record iteration for JSON and JSONL sources.

Two layouts are supported. Line-delimited files hold one JSON value per
line. Array documents hold a single JSON array, either on one line or
pretty-printed over many. The readers here are plain generators; the async
layer in :mod:`recordlens.ingestion.ingestor` pulls them batch by batch.
"""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from recordlens.config import LINE_DELIMITED_EXTENSIONS
from recordlens.errors import ContentValidityError
from recordlens.models import FileShape, Record
from recordlens.utils.files import is_line_delimited_path, iter_lines, read_first_line
from recordlens.utils.paths import to_json_text

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestCursor:
    """Per-call reading state.

    ``lines_read`` counts every entry examined (non-blank lines or array
    items), ``emitted`` only those that produced a record.
    """

    shape: FileShape = FileShape.LINE_DELIMITED
    next_id: int = 0
    byte_offset: int = 0
    lines_read: int = 0
    emitted: int = 0
    dropped: int = 0


def _looks_like_array(text: str) -> bool:
    return text.strip().startswith("[")


def detect_shape(path: Path, extensions: Iterable[str] = LINE_DELIMITED_EXTENSIONS) -> FileShape:
    """Decide the layout of ``path`` from its extension and first line."""
    path = Path(path)
    if is_line_delimited_path(path, extensions):
        return FileShape.LINE_DELIMITED
    if _looks_like_array(read_first_line(path)):
        return FileShape.ARRAY_DOCUMENT
    return FileShape.LINE_DELIMITED


def _parse_array(text: str) -> Optional[List[Any]]:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, list) else None


def load_array_document(path: Path) -> List[Any]:
    """Parse the whole of ``path`` as one JSON array."""
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ContentValidityError(f"{path} is not valid UTF-8: {exc}") from exc
    try:
        value = json.loads(text)
    except ValueError as exc:
        raise ContentValidityError(f"{path} is neither JSON lines nor a JSON array: {exc}") from exc
    if not isinstance(value, list):
        raise ContentValidityError(f"{path} does not contain a JSON array")
    return value


def _array_records(items: List[Any], cursor: IngestCursor) -> Iterator[Record]:
    cursor.shape = FileShape.ARRAY_DOCUMENT
    for index, item in enumerate(items):
        cursor.lines_read += 1
        cursor.next_id = index + 1
        cursor.emitted += 1
        yield Record(id=index, raw_text=to_json_text(item), value=item, byte_offset=0)


def _line_records(
    lines: Iterable[Tuple[int, str]], cursor: IngestCursor, *, strict: bool
) -> Iterator[Record]:
    for length, text in lines:
        offset = cursor.byte_offset
        cursor.byte_offset += length
        if not text.strip():
            continue
        cursor.lines_read += 1
        try:
            value = json.loads(text)
        except ValueError as exc:
            if strict and cursor.lines_read == 1:
                raise ContentValidityError(f"First line is not valid JSON: {exc}") from exc
            cursor.dropped += 1
            continue
        record = Record(id=cursor.next_id, raw_text=text, value=value, byte_offset=offset)
        cursor.next_id += 1
        cursor.emitted += 1
        yield record


def ingest_records(
    path: Path,
    cursor: IngestCursor,
    *,
    extensions: Iterable[str] = LINE_DELIMITED_EXTENSIONS,
) -> Iterator[Record]:
    """Auto-detect the layout of ``path`` and yield its records.

    JSONL/NDJSON extensions force line-delimited reading, where an invalid
    first line is a :class:`ContentValidityError`. Otherwise a first line
    starting with ``[`` selects array mode: the first line alone is tried as
    a complete array, then the whole file. Everything else is read line by
    line and unparsable lines are dropped.
    """
    path = Path(path)
    strict = is_line_delimited_path(path, extensions)
    with path.open("rb") as handle:
        lines = iter_lines(handle)
        first = next(lines, None)
        if first is None:
            return

        if not strict and _looks_like_array(first[1]):
            items = _parse_array(first[1])
            if items is None:
                LOGGER.debug("First line of %s is not a complete array; parsing whole file", path)
                items = load_array_document(path)
            LOGGER.debug("Reading %s as an array document of %d items", path, len(items))
            yield from _array_records(items, cursor)
            return

        LOGGER.debug("Reading %s as line-delimited (strict=%s)", path, strict)
        yield from _line_records(itertools.chain([first], lines), cursor, strict=strict)

    if cursor.dropped:
        LOGGER.debug("Dropped %d unparsable lines from %s", cursor.dropped, path)


def read_records(path: Path, shape: FileShape, cursor: IngestCursor) -> Iterator[Record]:
    """Yield the records of ``path`` for an already known ``shape``.

    Array documents are parsed whole; line-delimited files are parsed line
    by line, dropping unparsable lines.
    """
    path = Path(path)
    if FileShape(shape) is FileShape.ARRAY_DOCUMENT:
        yield from _array_records(load_array_document(path), cursor)
        return

    with path.open("rb") as handle:
        yield from _line_records(iter_lines(handle), cursor, strict=False)
