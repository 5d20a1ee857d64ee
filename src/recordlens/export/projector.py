"""Tabular and JSON export of a source file.

Tabular exports discover their columns from a bounded sample at the start
of the stream: every leaf path of the sampled records, sorted. Records
outside the sample are projected onto that fixed schema, so fields that
only appear later are not exported.
"""

from __future__ import annotations

import asyncio
import csv
import itertools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from recordlens.config import LINE_DELIMITED_EXTENSIONS, SCHEMA_SAMPLE_SIZE
from recordlens.errors import RecordLensError
from recordlens.ingestion.reader import IngestCursor, ingest_records
from recordlens.models import ExportFilter, ExportFormat, ExportStats, Record
from recordlens.search.query import QueryMatcher
from recordlens.utils.paths import PATH_DELIMITER, collect_columns, flat_value, to_json_text

LOGGER = logging.getLogger(__name__)

XLSX_MAX_ROWS = 1_048_576
XLSX_MAX_COLUMNS = 16_384
# Rows are 1-based; two header rows precede the data.
XLSX_DATA_START_ROW = 3

HEADER_FILL = PatternFill(fill_type="solid", fgColor="C0C0C0")
SUBHEADER_FILL = PatternFill(fill_type="solid", fgColor="808080")
_THIN = Side(style="thin")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_CENTERED = Alignment(horizontal="center", vertical="center")


@dataclass(slots=True)
class HeaderGroup:
    """A run of adjacent columns sharing the same top-level key."""

    prefix: str
    start: int
    end: int


def top_level_prefix(column: str) -> str:
    """Part of ``column`` before the first ``_``, or ``""`` when there is none."""
    head, sep, _ = column.partition(PATH_DELIMITER)
    return head if sep else ""


def header_groups(columns: List[str]) -> List[HeaderGroup]:
    groups: List[HeaderGroup] = []
    indexed = enumerate(columns)
    for prefix, run in itertools.groupby(indexed, key=lambda item: top_level_prefix(item[1])):
        positions = [index for index, _ in run]
        groups.append(HeaderGroup(prefix=prefix, start=positions[0], end=positions[-1]))
    return groups


def sub_path(column: str, prefix: str) -> str:
    return column[len(prefix) + len(PATH_DELIMITER) :] if prefix else column


def project_row(record: Record, columns: List[str]) -> List[str]:
    return [flat_value(record.value, column) for column in columns]


def _write_text(worksheet, row: int, col: int, text: str):
    """Store ``text`` as a literal string cell, never as a formula."""
    cell = worksheet.cell(row=row, column=col, value=ILLEGAL_CHARACTERS_RE.sub("", text))
    cell.data_type = "s"
    return cell


def _style_header(cell, fill: PatternFill = HEADER_FILL, alignment: Alignment = _CENTERED) -> None:
    cell.font = Font(bold=True)
    cell.border = _BORDER
    cell.fill = fill
    cell.alignment = alignment


def _filter_records(records: Iterable[Record], export_filter: Optional[ExportFilter]) -> Iterator[Record]:
    if export_filter is None:
        yield from records
        return

    wanted = set(export_filter.record_ids) if export_filter.record_ids is not None else None
    matcher = QueryMatcher(export_filter.query) if export_filter.query is not None else None
    for record in records:
        if wanted is not None and record.id not in wanted:
            continue
        if matcher is not None and not matcher.match(record):
            continue
        yield record


class RecordExporter:
    """Writes the records of one source file into an export artifact."""

    def __init__(
        self,
        *,
        sample_size: int = SCHEMA_SAMPLE_SIZE,
        extensions: Iterable[str] = LINE_DELIMITED_EXTENSIONS,
    ) -> None:
        self.sample_size = sample_size
        self.extensions = tuple(extensions)

    def export(
        self,
        path: Path,
        output_path: Path,
        fmt: ExportFormat,
        export_filter: Optional[ExportFilter] = None,
    ) -> ExportStats:
        fmt = ExportFormat(fmt)
        source = Path(path)
        output = Path(output_path)
        if output.resolve() == source.resolve():
            raise RecordLensError(f"Refusing to export {source} onto itself")
        output.parent.mkdir(parents=True, exist_ok=True)

        cursor = IngestCursor()
        records = _filter_records(
            ingest_records(source, cursor, extensions=self.extensions), export_filter
        )

        columns: List[str] = []
        if fmt in (ExportFormat.CSV, ExportFormat.XLSX):
            sample = list(itertools.islice(records, self.sample_size))
            columns = collect_columns(record.value for record in sample)
            records = itertools.chain(sample, records)
            LOGGER.debug("Discovered %d columns from %d sampled records", len(columns), len(sample))

        if fmt is ExportFormat.CSV:
            written = self._write_csv(output, columns, records)
        elif fmt is ExportFormat.XLSX:
            written = self._write_xlsx(output, columns, records)
        elif fmt is ExportFormat.JSONL:
            written = self._write_jsonl(output, records)
        else:
            written = self._write_json(output, records)

        stats = ExportStats(lines_exported=written, file_size=output.stat().st_size, columns=columns)
        LOGGER.info("Exported %d records from %s to %s (%s)", written, source, output, fmt.value)
        return stats

    def _write_csv(self, output: Path, columns: List[str], records: Iterable[Record]) -> int:
        written = 0
        with output.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle, lineterminator="\n")
            writer.writerow(columns)
            for record in records:
                writer.writerow(project_row(record, columns))
                written += 1
        return written

    def _write_xlsx(self, output: Path, columns: List[str], records: Iterable[Record]) -> int:
        if len(columns) > XLSX_MAX_COLUMNS:
            raise RecordLensError(f"{len(columns)} columns exceed the XLSX limit of {XLSX_MAX_COLUMNS}")

        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = "Records"
        self._write_header_bands(worksheet, columns)

        row = XLSX_DATA_START_ROW
        for record in records:
            if row > XLSX_MAX_ROWS:
                raise RecordLensError(f"Too many records for one XLSX sheet ({XLSX_MAX_ROWS} rows)")
            for col, value in enumerate(project_row(record, columns), start=1):
                if value:
                    _write_text(worksheet, row, col, value)
            row += 1

        workbook.save(str(output))
        return row - XLSX_DATA_START_ROW

    @staticmethod
    def _write_header_bands(worksheet, columns: List[str]) -> None:
        # Row 1 holds group names, row 2 the sub-paths.
        for group in header_groups(columns):
            first, last = group.start + 1, group.end + 1
            if not group.prefix:
                for col in range(first, last + 1):
                    _style_header(_write_text(worksheet, 1, col, columns[col - 1]))
                    worksheet.merge_cells(start_row=1, start_column=col, end_row=2, end_column=col)
                continue

            _style_header(_write_text(worksheet, 1, first, group.prefix))
            if last > first:
                worksheet.merge_cells(start_row=1, start_column=first, end_row=1, end_column=last)
            for col in range(first, last + 1):
                cell = _write_text(worksheet, 2, col, sub_path(columns[col - 1], group.prefix))
                _style_header(cell, SUBHEADER_FILL, Alignment(horizontal="left"))

    def _write_jsonl(self, output: Path, records: Iterable[Record]) -> int:
        written = 0
        with output.open("w", encoding="utf-8") as handle:
            for record in records:
                handle.write(record.raw_text)
                handle.write("\n")
                written += 1
        return written

    def _write_json(self, output: Path, records: Iterable[Record]) -> int:
        written = 0
        with output.open("w", encoding="utf-8") as handle:
            handle.write("[")
            for record in records:
                handle.write(",\n  " if written else "\n  ")
                handle.write(to_json_text(record.value))
                written += 1
            handle.write("\n]\n" if written else "]\n")
        return written


async def export_records(
    path: Path | str,
    output_path: Path | str,
    fmt: ExportFormat,
    export_filter: Optional[ExportFilter] = None,
    *,
    sample_size: int = SCHEMA_SAMPLE_SIZE,
) -> ExportStats:
    exporter = RecordExporter(sample_size=sample_size)
    return await asyncio.to_thread(exporter.export, Path(path), Path(output_path), fmt, export_filter)


async def export_csv(
    path: Path | str, output_path: Path | str, export_filter: Optional[ExportFilter] = None
) -> ExportStats:
    return await export_records(path, output_path, ExportFormat.CSV, export_filter)


async def export_grid(
    path: Path | str, output_path: Path | str, export_filter: Optional[ExportFilter] = None
) -> ExportStats:
    return await export_records(path, output_path, ExportFormat.XLSX, export_filter)
