"""Command line interface for RecordLens."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from recordlens.config import AppConfig
from recordlens.errors import RecordLensError
from recordlens.export import export_records
from recordlens.ingestion import detect_shape, ingest
from recordlens.models import ExportFilter, ExportFormat, Record, SearchQuery, SortSpec
from recordlens.search import search as search_file
from recordlens.sorting import sort_file
from recordlens.streaming import BatchChannel, collect

console = Console()
app = typer.Typer(help="RecordLens - search, sort and export large JSON/JSONL files")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_source(path: Path) -> None:
    if not path.is_file():
        raise typer.BadParameter(f"File not found: {path}")


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


def _snippet(text: str, width: int = 120) -> str:
    return text.replace("\n", " ")[:width]


def _records_table(records: List[Record]) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Id")
    table.add_column("Offset")
    table.add_column("Record")
    for record in records:
        table.add_row(str(record.id), str(record.byte_offset), _snippet(record.raw_text))
    return table


def _parse_ids(ids: Optional[str]) -> Optional[List[int]]:
    if not ids:
        return None
    try:
        return [int(part) for part in ids.split(",") if part.strip()]
    except ValueError as exc:
        raise typer.BadParameter(f"Record ids must be comma separated integers: {ids}") from exc


@app.command()
def info(
    path: Path = typer.Argument(..., help="JSON or JSONL file", resolve_path=True),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Ingest a file and print its metadata."""
    _setup_logging(verbose)
    _ensure_source(path)
    config = AppConfig()

    async def run():
        channel: BatchChannel[Record] = BatchChannel(config.channel_capacity)
        return await collect(ingest(path, channel, batch_size=config.record_batch_size), channel)

    try:
        batches, metadata = asyncio.run(run())
    except (RecordLensError, OSError) as exc:
        _fail(exc)

    console.print(f"File: [bold]{metadata.path}[/bold]")
    console.print(f"Shape: {metadata.shape.value}")
    console.print(f"Records: {metadata.total_lines} in {len(batches)} batches")
    console.print(f"Size: {metadata.file_size} bytes")


@app.command()
def show(
    path: Path = typer.Argument(..., help="JSON or JSONL file", resolve_path=True),
    limit: int = typer.Option(20, help="Number of records to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Print the first records of a file."""
    _setup_logging(verbose)
    _ensure_source(path)
    config = AppConfig()

    async def run():
        channel: BatchChannel[Record] = BatchChannel(config.channel_capacity)
        return await collect(ingest(path, channel, batch_size=config.record_batch_size), channel)

    try:
        batches, metadata = asyncio.run(run())
    except (RecordLensError, OSError) as exc:
        _fail(exc)

    records = [record for batch in batches for record in batch][:limit]
    if not records:
        console.print("[yellow]No records found.[/yellow]")
        return
    console.print(_records_table(records))
    console.print(f"Showing {len(records)} of {metadata.total_lines} records.")


@app.command()
def search(
    path: Path = typer.Argument(..., help="JSON or JSONL file", resolve_path=True),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Text or pattern to find"),
    json_path: Optional[str] = typer.Option(
        None, "--path", "-p", help="Flattened path (user_name) or JSONPath ($.user.name)"
    ),
    regex: bool = typer.Option(False, "--regex", help="Treat --text as a regular expression"),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", help="Match case exactly"),
    limit: int = typer.Option(50, help="Number of results to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Search the records of a file."""
    _setup_logging(verbose)
    _ensure_source(path)
    query = SearchQuery(text=text, path=json_path, case_sensitive=case_sensitive, use_regex=regex)
    if query.is_empty:
        raise typer.BadParameter("Provide --text and/or --path")
    config = AppConfig()

    async def run():
        channel = BatchChannel(config.channel_capacity)
        shape = detect_shape(path, config.line_delimited_extensions)
        producer = search_file(path, query, shape, channel, batch_size=config.search_batch_size)
        return await collect(producer, channel)

    try:
        batches, stats = asyncio.run(run())
    except (RecordLensError, OSError) as exc:
        _fail(exc)

    results = [result for batch in batches for result in batch]
    if not results:
        console.print(f"[yellow]No matches found.[/yellow] Searched {stats.lines_searched} records.")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Id")
    table.add_column("Matches")
    table.add_column("Context")
    for result in results[:limit]:
        table.add_row(str(result.record_id), ", ".join(result.matches)[:60], _snippet(result.context))
    console.print(table)
    console.print(f"Matched {stats.total_matches} of {stats.lines_searched} records.")


@app.command()
def sort(
    path: Path = typer.Argument(..., help="JSON or JSONL file", resolve_path=True),
    by: str = typer.Option(..., "--by", help="Flattened path to sort by, e.g. user_age"),
    desc: bool = typer.Option(False, "--desc", help="Sort in descending order"),
    limit: int = typer.Option(20, help="Number of records to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Sort the records of a file by one field."""
    _setup_logging(verbose)
    _ensure_source(path)
    spec = SortSpec(path=by, direction="desc" if desc else "asc")
    config = AppConfig()

    async def run():
        channel: BatchChannel[Record] = BatchChannel(config.channel_capacity)
        shape = detect_shape(path, config.line_delimited_extensions)
        producer = sort_file(path, spec, shape, channel, batch_size=config.record_batch_size)
        return await collect(producer, channel)

    try:
        batches, total = asyncio.run(run())
    except (RecordLensError, OSError) as exc:
        _fail(exc)

    records = [record for batch in batches for record in batch][:limit]
    if not records:
        console.print("[yellow]No records found.[/yellow]")
        return
    console.print(_records_table(records))
    console.print(f"Sorted {total} records by {spec.path} ({spec.direction}).")


@app.command()
def export(
    path: Path = typer.Argument(..., help="JSON or JSONL file", resolve_path=True),
    output: Path = typer.Argument(..., help="Output file"),
    fmt: ExportFormat = typer.Option(ExportFormat.CSV, "--format", "-f", help="Output format"),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Only export records containing text"),
    json_path: Optional[str] = typer.Option(None, "--path", "-p", help="Only export records with this path"),
    ids: Optional[str] = typer.Option(None, "--ids", help="Comma separated record ids to export"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Export the records of a file as CSV, XLSX, JSONL or JSON."""
    _setup_logging(verbose)
    _ensure_source(path)
    config = AppConfig()
    target = config.resolve_output_path(output, Path.cwd())

    export_filter = None
    record_ids = _parse_ids(ids)
    query = SearchQuery(text=text, path=json_path) if (text or json_path) else None
    if record_ids is not None or query is not None:
        export_filter = ExportFilter(record_ids=record_ids, query=query)

    console.print(f"Exporting [bold]{path}[/bold] to [bold]{target}[/bold]...")
    try:
        stats = asyncio.run(
            export_records(path, target, fmt, export_filter, sample_size=config.schema_sample_size)
        )
    except (RecordLensError, OSError) as exc:
        _fail(exc)

    console.print(f"Exported {stats.lines_exported} records ({stats.file_size} bytes).")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from recordlens.web.app import app as web_app

    console.print(f"Starting RecordLens API on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
