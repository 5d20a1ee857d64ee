"""FastAPI application exposing the RecordLens operations.

Streaming endpoints answer with newline-delimited JSON: one ``{"batch": [...]}``
line per delivered batch followed by a single summary line. A client that
disconnects closes the batch channel, which aborts the running operation.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, List, Literal

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from recordlens import __version__
from recordlens.config import AppConfig
from recordlens.errors import ContentValidityError, DeliveryError, RecordLensError
from recordlens.export import export_records
from recordlens.ingestion import detect_shape, ingest
from recordlens.models import (
    ExportFilter,
    ExportFormat,
    FileShape,
    SearchQuery,
    SearchResult,
    SortSpec,
)
from recordlens.search import search
from recordlens.sorting import sort_file, sort_search_results
from recordlens.streaming import BatchChannel

LOGGER = logging.getLogger(__name__)

NDJSON = "application/x-ndjson"

app = FastAPI(title="RecordLens API", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class IngestPayload(BaseModel):
    path: Path


class SearchPayload(BaseModel):
    path: Path
    text: str | None = None
    json_path: str | None = None
    case_sensitive: bool = False
    regex: bool = False
    shape: FileShape | None = None


class SortPayload(BaseModel):
    path: Path
    column: str
    direction: Literal["asc", "desc"] = "asc"
    shape: FileShape | None = None


class SearchResultPayload(BaseModel):
    record_id: int
    matches: List[str]
    context: str


class SortResultsPayload(BaseModel):
    results: List[SearchResultPayload]
    column: str
    direction: Literal["asc", "desc"] = "asc"


class QueryPayload(BaseModel):
    text: str | None = None
    json_path: str | None = None
    case_sensitive: bool = False
    regex: bool = False


class ExportPayload(BaseModel):
    path: Path
    output_path: Path
    format: ExportFormat = ExportFormat.CSV
    line_ids: List[int] | None = None
    search_query: QueryPayload | None = None


def _encode(payload: Any) -> bytes:
    return (json.dumps(payload, ensure_ascii=False, default=str) + "\n").encode("utf-8")


def _jsonable(item: Any) -> Any:
    return dataclasses.asdict(item) if dataclasses.is_dataclass(item) else item


def _require_file(path: Path) -> Path:
    resolved = path.expanduser()
    if not resolved.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {resolved}")
    return resolved


def _resolve_shape(path: Path, shape: FileShape | None) -> FileShape:
    if shape is not None:
        return shape
    return detect_shape(path, AppConfig().line_delimited_extensions)


def _retrieve_outcome(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if isinstance(exc, DeliveryError):
        LOGGER.info("Client went away: %s", exc)
    elif exc is not None:
        LOGGER.error("Streaming operation failed: %s", exc)


async def _stream(
    start: Callable[[BatchChannel], Awaitable[Any]],
    summary_key: str,
) -> AsyncIterator[bytes]:
    channel: BatchChannel = BatchChannel(AppConfig().channel_capacity)
    task = asyncio.ensure_future(start(channel))
    finished = False
    try:
        async for batch in channel:
            yield _encode({"batch": [_jsonable(item) for item in batch]})
        try:
            result = await task
        except (RecordLensError, OSError) as exc:
            yield _encode({"error": str(exc)})
        else:
            yield _encode({summary_key: _jsonable(result)})
        finished = True
    finally:
        if not finished:
            channel.close()
            task.add_done_callback(_retrieve_outcome)


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.post("/ingest")
async def ingest_file(payload: IngestPayload) -> StreamingResponse:
    path = _require_file(payload.path)
    batch_size = AppConfig().record_batch_size
    return StreamingResponse(
        _stream(lambda channel: ingest(path, channel, batch_size=batch_size), "metadata"),
        media_type=NDJSON,
    )


@app.post("/search")
async def search_file(payload: SearchPayload) -> StreamingResponse:
    query = SearchQuery(
        text=payload.text,
        path=payload.json_path,
        case_sensitive=payload.case_sensitive,
        use_regex=payload.regex,
    )
    if query.is_empty:
        raise HTTPException(status_code=400, detail="Empty query")

    path = _require_file(payload.path)
    shape = await asyncio.to_thread(_resolve_shape, path, payload.shape)
    batch_size = AppConfig().search_batch_size
    return StreamingResponse(
        _stream(lambda channel: search(path, query, shape, channel, batch_size=batch_size), "stats"),
        media_type=NDJSON,
    )


@app.post("/sort")
async def sort_lines(payload: SortPayload) -> StreamingResponse:
    path = _require_file(payload.path)
    spec = SortSpec(path=payload.column, direction=payload.direction)
    shape = await asyncio.to_thread(_resolve_shape, path, payload.shape)
    batch_size = AppConfig().record_batch_size
    return StreamingResponse(
        _stream(lambda channel: sort_file(path, spec, shape, channel, batch_size=batch_size), "total"),
        media_type=NDJSON,
    )


@app.post("/sort/results")
async def sort_results(payload: SortResultsPayload) -> StreamingResponse:
    spec = SortSpec(path=payload.column, direction=payload.direction)
    results = [
        SearchResult(record_id=item.record_id, matches=list(item.matches), context=item.context)
        for item in payload.results
    ]
    batch_size = AppConfig().search_batch_size
    return StreamingResponse(
        _stream(lambda channel: sort_search_results(results, spec, channel, batch_size=batch_size), "total"),
        media_type=NDJSON,
    )


@app.post("/export")
async def export_file(payload: ExportPayload) -> dict[str, Any]:
    path = _require_file(payload.path)

    export_filter = None
    if payload.line_ids is not None or payload.search_query is not None:
        query = None
        if payload.search_query is not None:
            query = SearchQuery(
                text=payload.search_query.text,
                path=payload.search_query.json_path,
                case_sensitive=payload.search_query.case_sensitive,
                use_regex=payload.search_query.regex,
            )
        export_filter = ExportFilter(record_ids=payload.line_ids, query=query)

    config = AppConfig()
    target = config.resolve_output_path(payload.output_path.expanduser(), Path.cwd())
    if target.resolve() == path.resolve():
        raise HTTPException(status_code=400, detail="Invalid output path: same as source file")
    try:
        stats = await export_records(
            path, target, payload.format, export_filter, sample_size=config.schema_sample_size
        )
    except ContentValidityError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except (RecordLensError, OSError) as exc:
        LOGGER.exception("Export failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return {"status": "ok", "output_path": str(target), "stats": dataclasses.asdict(stats)}
