"""Tests for core data models."""

from __future__ import annotations

from pathlib import Path

import pytest

from recordlens.models import (
    ExportFilter,
    ExportFormat,
    ExportStats,
    FileMetadata,
    FileShape,
    Record,
    SearchQuery,
    SearchStats,
    SortSpec,
)


class TestRecord:
    """Test Record dataclass."""

    def test_create_record(self) -> None:
        record = Record(id=3, raw_text='{"a":1}', value={"a": 1}, byte_offset=42)

        assert record.id == 3
        assert record.value == {"a": 1}
        assert record.byte_offset == 42

    def test_default_offset(self) -> None:
        """Array items carry offset 0."""
        assert Record(id=0, raw_text="1", value=1).byte_offset == 0

    def test_record_equality(self) -> None:
        assert Record(id=0, raw_text="1", value=1) == Record(id=0, raw_text="1", value=1)


class TestFileMetadata:
    """Test FileMetadata dataclass."""

    def test_create_metadata(self) -> None:
        metadata = FileMetadata(
            path=Path("/data/x.jsonl"),
            total_lines=10,
            file_size=512,
            shape=FileShape.LINE_DELIMITED,
        )

        assert metadata.total_lines == 10
        assert metadata.shape.value == "line_delimited"


class TestSearchQuery:
    """Test SearchQuery dataclass."""

    def test_defaults(self) -> None:
        query = SearchQuery()

        assert query.text is None
        assert query.path is None
        assert not query.case_sensitive
        assert not query.use_regex
        assert query.is_empty

    @pytest.mark.parametrize(
        "query, empty",
        [
            (SearchQuery(text=""), True),
            (SearchQuery(text="a"), False),
            (SearchQuery(path="a_b"), False),
        ],
    )
    def test_is_empty(self, query: SearchQuery, empty: bool) -> None:
        assert query.is_empty is empty


class TestSortSpec:
    """Test SortSpec dataclass."""

    def test_default_ascending(self) -> None:
        spec = SortSpec(path="age")
        assert spec.direction == "asc"
        assert not spec.descending

    def test_descending(self) -> None:
        assert SortSpec(path="age", direction="desc").descending

    def test_invalid_direction(self) -> None:
        with pytest.raises(ValueError):
            SortSpec(path="age", direction="DESC")


class TestStats:
    """Test stats defaults."""

    def test_search_stats(self) -> None:
        stats = SearchStats()
        assert (stats.total_matches, stats.lines_searched) == (0, 0)

    def test_export_stats_columns_not_shared(self) -> None:
        first = ExportStats()
        first.columns.append("a")
        assert ExportStats().columns == []

    def test_export_filter_defaults(self) -> None:
        export_filter = ExportFilter()
        assert export_filter.record_ids is None
        assert export_filter.query is None


class TestEnums:
    """Test enum values."""

    def test_export_format_from_value(self) -> None:
        assert ExportFormat("xlsx") is ExportFormat.XLSX
        assert [fmt.value for fmt in ExportFormat] == ["csv", "xlsx", "jsonl", "json"]

    def test_file_shape_values(self) -> None:
        assert FileShape("array_document") is FileShape.ARRAY_DOCUMENT
