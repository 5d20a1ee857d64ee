"""Core RecordLens data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional


class FileShape(str, Enum):
    """Physical layout of a source file."""

    LINE_DELIMITED = "line_delimited"
    ARRAY_DOCUMENT = "array_document"


class ExportFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"
    JSONL = "jsonl"
    JSON = "json"


@dataclass(slots=True)
class Record:
    """One structured value read from a source file."""

    id: int
    raw_text: str
    value: Any
    byte_offset: int = 0


@dataclass(slots=True)
class FileMetadata:
    """Summary returned once a file has been fully ingested."""

    path: Path
    total_lines: int
    file_size: int
    shape: FileShape


@dataclass(slots=True)
class SearchQuery:
    text: Optional[str] = None
    path: Optional[str] = None
    case_sensitive: bool = False
    use_regex: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.path


@dataclass(slots=True)
class SearchResult:
    record_id: int
    matches: List[str]
    context: str


@dataclass(slots=True)
class SearchStats:
    total_matches: int = 0
    lines_searched: int = 0


@dataclass(slots=True)
class SortSpec:
    path: str
    direction: str = "asc"

    def __post_init__(self) -> None:
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort direction: {self.direction!r}")

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass(slots=True)
class ExportFilter:
    """Optional restriction on which records an export writes."""

    record_ids: Optional[List[int]] = None
    query: Optional[SearchQuery] = None


@dataclass(slots=True)
class ExportStats:
    lines_exported: int = 0
    file_size: int = 0
    columns: List[str] = field(default_factory=list)
