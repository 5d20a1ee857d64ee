from recordlens.ingestion.ingestor import ingest
from recordlens.ingestion.reader import (
    IngestCursor,
    detect_shape,
    ingest_records,
    load_array_document,
    read_records,
)

__all__ = [
    "IngestCursor",
    "detect_shape",
    "ingest",
    "ingest_records",
    "load_array_document",
    "read_records",
]
