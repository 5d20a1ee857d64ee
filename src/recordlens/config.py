"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

RECORD_BATCH_SIZE = 2000
SEARCH_BATCH_SIZE = 100
SCHEMA_SAMPLE_SIZE = 1000
CHANNEL_CAPACITY = 16
LINE_DELIMITED_EXTENSIONS = (".jsonl", ".ndjson")


@dataclass(slots=True)
class AppConfig:
    output_dir: Path | None = None
    record_batch_size: int = RECORD_BATCH_SIZE
    search_batch_size: int = SEARCH_BATCH_SIZE
    schema_sample_size: int = SCHEMA_SAMPLE_SIZE
    channel_capacity: int = CHANNEL_CAPACITY
    line_delimited_extensions: tuple[str, ...] = LINE_DELIMITED_EXTENSIONS

    def __post_init__(self) -> None:
        if self.output_dir is None:
            self.output_dir = Path.cwd()

    def resolve_output_path(self, output: Path, base_dir: Path | None = None) -> Path:
        """Place a relative export target under the configured output directory."""
        if Path(output).is_absolute():
            return Path(output)
        root = Path(self.output_dir) if self.output_dir is not None else Path.cwd()
        if not root.is_absolute() and base_dir is not None:
            root = base_dir / root
        return root / output
