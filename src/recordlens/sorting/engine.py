"""Full-memory sorting of records and search results."""

from __future__ import annotations

import asyncio
import json
import logging
from functools import cmp_to_key
from pathlib import Path
from typing import Any, Callable, Iterable, List, Sequence, Tuple, TypeVar

from recordlens.config import RECORD_BATCH_SIZE, SEARCH_BATCH_SIZE
from recordlens.ingestion.reader import IngestCursor, read_records
from recordlens.models import FileShape, Record, SearchResult, SortSpec
from recordlens.sorting.keys import SortKey, compare_keys, extract_sort_key
from recordlens.streaming import BatchChannel, send_sequence

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def sort_keyed(items: Iterable[Tuple[int, T, SortKey]], descending: bool) -> List[T]:
    """Sort ``(sequence, item, key)`` triples, ties broken by ascending sequence."""

    def compare(a: Tuple[int, T, SortKey], b: Tuple[int, T, SortKey]) -> int:
        result = compare_keys(a[2], b[2], descending)
        if result == 0:
            result = (a[0] > b[0]) - (a[0] < b[0])
        return result

    return [item for _, item, _ in sorted(items, key=cmp_to_key(compare))]


def sort_records(records: Iterable[Record], spec: SortSpec) -> List[Record]:
    """Sort records by the value at ``spec.path``, computing each key once."""
    keyed = [(record.id, record, extract_sort_key(record.value, spec.path)) for record in records]
    return sort_keyed(keyed, spec.descending)


def _context_value(context: str) -> Any:
    try:
        return json.loads(context)
    except ValueError:
        return None


def sort_results(results: Sequence[SearchResult], spec: SortSpec) -> List[SearchResult]:
    """Sort search results by re-parsing their stored context text."""
    keyed = [
        (position, result, extract_sort_key(_context_value(result.context), spec.path))
        for position, result in enumerate(results)
    ]
    return sort_keyed(keyed, spec.descending)


def _load_and_sort(path: Path, spec: SortSpec, shape: FileShape) -> List[Record]:
    cursor = IngestCursor()
    ordered = sort_records(read_records(path, shape, cursor), spec)
    if cursor.dropped:
        LOGGER.debug("Ignored %d unparsable lines while sorting %s", cursor.dropped, path)
    return ordered


async def _sort_and_stream(
    work: Callable[[], List[T]], channel: BatchChannel[T], batch_size: int
) -> int:
    try:
        ordered = await asyncio.to_thread(work)
        return await send_sequence(ordered, channel, batch_size)
    finally:
        await channel.finish()


async def sort_file(
    path: Path | str,
    spec: SortSpec,
    shape: FileShape,
    channel: BatchChannel[Record],
    *,
    batch_size: int = RECORD_BATCH_SIZE,
) -> int:
    """Load every record of ``path``, sort it and stream the result.

    Returns the number of records sent.
    """
    source = Path(path)
    total = await _sort_and_stream(lambda: _load_and_sort(source, spec, shape), channel, batch_size)
    LOGGER.info("Sorted %d records of %s by %s (%s)", total, source, spec.path, spec.direction)
    return total


async def sort_search_results(
    results: Sequence[SearchResult],
    spec: SortSpec,
    channel: BatchChannel[SearchResult],
    *,
    batch_size: int = SEARCH_BATCH_SIZE,
) -> int:
    """Re-sort an earlier search's results without re-reading the file."""
    items = list(results)
    total = await _sort_and_stream(lambda: sort_results(items, spec), channel, batch_size)
    LOGGER.info("Sorted %d search results by %s (%s)", total, spec.path, spec.direction)
    return total
