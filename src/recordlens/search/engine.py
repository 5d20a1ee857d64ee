"""Streaming search over a source file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

from recordlens.config import SEARCH_BATCH_SIZE
from recordlens.ingestion.reader import IngestCursor, read_records
from recordlens.models import FileShape, Record, SearchQuery, SearchResult, SearchStats
from recordlens.search.query import QueryMatcher
from recordlens.streaming import BatchChannel, stream_batches

LOGGER = logging.getLogger(__name__)


class Searcher:
    """Applies one query to a stream of records."""

    def __init__(self, query: SearchQuery) -> None:
        self.query = query
        self.matcher = QueryMatcher(query)
        self.stats = SearchStats()

    def iter_matches(self, records: Iterable[Record]) -> Iterator[SearchResult]:
        for record in records:
            matches = self.matcher.match(record)
            if not matches:
                continue
            self.stats.total_matches += 1
            yield SearchResult(record_id=record.id, matches=matches, context=record.raw_text)

    def search_file(self, path: Path, shape: FileShape) -> Iterator[SearchResult]:
        """Yield results for ``path``; ``stats`` is complete once exhausted."""
        cursor = IngestCursor()
        try:
            yield from self.iter_matches(read_records(path, shape, cursor))
        finally:
            self.stats.lines_searched = cursor.lines_read


async def search(
    path: Path | str,
    query: SearchQuery,
    shape: FileShape,
    channel: BatchChannel[SearchResult],
    *,
    batch_size: int = SEARCH_BATCH_SIZE,
) -> SearchStats:
    """Stream the records of ``path`` that match ``query``.

    Unparsable lines never match but still count as searched. Results keep
    ingestion order and are sent in batches of ``batch_size``.
    """
    source = Path(path)
    searcher = Searcher(query)
    try:
        await stream_batches(searcher.search_file(source, shape), channel, batch_size)
    finally:
        await channel.finish()

    LOGGER.info(
        "Search in %s matched %d of %d records",
        source,
        searcher.stats.total_matches,
        searcher.stats.lines_searched,
    )
    return searcher.stats
