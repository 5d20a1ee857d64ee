"""RecordLens - streaming search, sort and export for large JSON/JSONL files."""

__version__ = "0.1.0"
