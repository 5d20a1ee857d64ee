"""Streaming ingestion of a source file into record batches."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from recordlens.config import LINE_DELIMITED_EXTENSIONS, RECORD_BATCH_SIZE
from recordlens.ingestion.reader import IngestCursor, ingest_records
from recordlens.models import FileMetadata, Record
from recordlens.streaming import BatchChannel, stream_batches
from recordlens.utils.files import file_size

LOGGER = logging.getLogger(__name__)


async def ingest(
    path: Path | str,
    channel: BatchChannel[Record],
    *,
    batch_size: int = RECORD_BATCH_SIZE,
    extensions: Iterable[str] = LINE_DELIMITED_EXTENSIONS,
) -> FileMetadata:
    """Stream every record of ``path`` over ``channel``.

    Records are sent in batches of ``batch_size`` as soon as each batch
    fills, with a final partial batch at the end. The channel is always
    finished, also when ingestion fails.
    """
    source = Path(path)
    cursor = IngestCursor()
    try:
        size = file_size(source)
        await stream_batches(
            ingest_records(source, cursor, extensions=tuple(extensions)), channel, batch_size
        )
    finally:
        await channel.finish()

    LOGGER.info(
        "Ingested %d records from %s (%s, %d bytes)",
        cursor.emitted,
        source,
        cursor.shape.value,
        size,
    )
    return FileMetadata(path=source, total_lines=cursor.emitted, file_size=size, shape=cursor.shape)
