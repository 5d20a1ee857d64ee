"""Tests for the sort engine."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from recordlens.models import FileShape, Record, SearchResult, SortSpec
from recordlens.sorting import sort_file, sort_records, sort_results, sort_search_results
from recordlens.streaming import BatchChannel, collect


def _record(record_id: int, value) -> Record:
    return Record(id=record_id, raw_text=json.dumps(value), value=value)


def _sort_file(path: Path, spec: SortSpec, shape: FileShape, batch_size: int = 2000):
    async def run():
        channel = BatchChannel()
        return await collect(sort_file(path, spec, shape, channel, batch_size=batch_size), channel)

    return asyncio.run(run())


class TestSortSpec:
    """Test SortSpec validation."""

    def test_rejects_unknown_direction(self) -> None:
        with pytest.raises(ValueError):
            SortSpec(path="a", direction="up")


class TestSortRecords:
    """Test in-memory record sorting."""

    def test_mixed_types_ascending(self) -> None:
        """Numbers precede strings and nulls come last."""
        records = [_record(0, {"a": 1}), _record(1, {"a": None}), _record(2, {"a": "b"})]

        ordered = sort_records(records, SortSpec(path="a"))

        assert [record.id for record in ordered] == [0, 2, 1]

    def test_missing_path_sorts_last(self) -> None:
        """Records without the path behave like null."""
        records = [_record(0, {}), _record(1, {"a": 5}), _record(2, {"a": 3})]

        asc = sort_records(records, SortSpec(path="a"))
        desc = sort_records(records, SortSpec(path="a", direction="desc"))

        assert [record.id for record in asc] == [2, 1, 0]
        assert [record.id for record in desc] == [1, 2, 0]

    @pytest.mark.parametrize("direction", ["asc", "desc"])
    def test_ties_keep_original_order(self, direction: str) -> None:
        """Equal keys are ordered by ascending id in both directions."""
        records = [
            _record(0, {"k": "x"}),
            _record(1, {"k": "y"}),
            _record(2, {"k": "X"}),
            _record(3, {"k": "y"}),
        ]

        ordered = sort_records(records, SortSpec(path="k", direction=direction))

        ids = [record.id for record in ordered]
        expected = [0, 2, 1, 3] if direction == "asc" else [1, 3, 0, 2]
        assert ids == expected

    def test_idempotent(self) -> None:
        """Sorting a sorted sequence again keeps the same order."""
        values = [3, "b", None, "2024-01-01", 1, "a", None, 2.5, True]
        records = [_record(index, {"v": value}) for index, value in enumerate(values)]
        spec = SortSpec(path="v", direction="desc")

        once = sort_records(records, spec)
        twice = sort_records(once, spec)

        assert [record.id for record in twice] == [record.id for record in once]

    def test_nested_path_with_index(self) -> None:
        """Sort paths may index into arrays."""
        records = [_record(0, {"xs": [{"n": 2}]}), _record(1, {"xs": [{"n": 1}]})]

        ordered = sort_records(records, SortSpec(path="xs_0_n"))

        assert [record.id for record in ordered] == [1, 0]


class TestSortFile:
    """Test sort_file streaming."""

    def test_single_line_array(self, tmp_path: Path) -> None:
        """Number before string before null."""
        source = tmp_path / "data.json"
        source.write_text('[{"a":1},{"a":null},{"a":"b"}]')

        batches, total = _sort_file(source, SortSpec(path="a"), FileShape.ARRAY_DOCUMENT)

        values = [record.value for batch in batches for record in batch]
        assert values == [{"a": 1}, {"a": "b"}, {"a": None}]
        assert total == 3

    def test_dates_compare_chronologically(self, tmp_path: Path) -> None:
        """Date strings sort by time, not lexicographically."""
        source = tmp_path / "data.jsonl"
        source.write_text('{"t":"2024-01-15T10:30:00Z"}\n{"t":"2023-06-01"}\n')

        batches, _ = _sort_file(source, SortSpec(path="t"), FileShape.LINE_DELIMITED)

        records = [record for batch in batches for record in batch]
        assert [record.value["t"] for record in records] == ["2023-06-01", "2024-01-15T10:30:00Z"]
        assert [record.id for record in records] == [1, 0]

    def test_nanosecond_dates_sort_among_dates(self, tmp_path: Path) -> None:
        """High-precision timestamps still sort as dates, before numbers."""
        source = tmp_path / "data.jsonl"
        source.write_text('{"t":"2024-01-15T10:30:00.123456789Z"}\n{"t":"2023-06-01"}\n{"t":5}\n')

        batches, _ = _sort_file(source, SortSpec(path="t"), FileShape.LINE_DELIMITED)

        assert [record.id for batch in batches for record in batch] == [1, 0, 2]

    def test_unparsable_lines_ignored(self, tmp_path: Path) -> None:
        """Broken lines are left out of the sorted output."""
        source = tmp_path / "data.jsonl"
        source.write_text('{"n":2}\nnope\n{"n":1}\n')

        batches, total = _sort_file(source, SortSpec(path="n"), FileShape.LINE_DELIMITED)

        assert [record.value["n"] for batch in batches for record in batch] == [1, 2]
        assert total == 2

    def test_batches(self, tmp_path: Path) -> None:
        """Sorted output is streamed in fixed-size batches."""
        source = tmp_path / "data.jsonl"
        source.write_text("".join(json.dumps({"n": n}) + "\n" for n in [5, 4, 3, 2, 1]))

        batches, total = _sort_file(source, SortSpec(path="n"), FileShape.LINE_DELIMITED, batch_size=2)

        assert [[record.value["n"] for record in batch] for batch in batches] == [[1, 2], [3, 4], [5]]
        assert total == 5


class TestSortSearchResults:
    """Test re-sorting of search results."""

    def test_sort_results_by_context(self) -> None:
        """Results are ordered by the value parsed from their context."""
        results = [
            SearchResult(record_id=10, matches=["x"], context='{"n": 3}'),
            SearchResult(record_id=11, matches=["x"], context="not json"),
            SearchResult(record_id=12, matches=["x"], context='{"n": 1}'),
        ]

        ordered = sort_results(results, SortSpec(path="n"))

        assert [result.record_id for result in ordered] == [12, 10, 11]

    def test_sort_search_results_streams(self) -> None:
        """Should stream sorted results in batches."""
        results = [
            SearchResult(record_id=i, matches=["m"], context=json.dumps({"n": -i})) for i in range(5)
        ]

        async def run():
            channel = BatchChannel()
            producer = sort_search_results(results, SortSpec(path="n"), channel, batch_size=2)
            return await collect(producer, channel)

        batches, total = asyncio.run(run())

        assert total == 5
        assert [len(batch) for batch in batches] == [2, 2, 1]
        assert [result.record_id for batch in batches for result in batch] == [4, 3, 2, 1, 0]
