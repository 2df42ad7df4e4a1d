"""shc2es application entrypoint.

Serves health and ingestion counters. With SHC2ES_WATCH=true the app also
tails the NDJSON event files and indexes new records as they arrive.
"""

import asyncio
import logging
from typing import Any, Optional

from fastapi import FastAPI

from shc2es.adapters.ndjson_file import NdjsonFileAdapter
from shc2es.config import Settings, get_settings
from shc2es.ingest.pipeline import IngestPipeline, IngestStats
from shc2es.ingest.writer import IndexWriter
from shc2es.registry import load_registry
from shc2es.utils.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("shc2es")

app = FastAPI(
    title="shc2es",
    description="Smart Home Controller to Elasticsearch",
    version=settings.version,
)

_runtime: dict[str, Any] = {
    "pipeline": None,
    "adapter": None,
    "writer": None,
    "task": None,
}


async def start_watch(settings: Settings) -> IngestPipeline:
    """Wire the file adapter, pipeline and writer, and start tailing."""
    writer = IndexWriter(settings.to_writer_config())
    await writer.connect()

    pipeline = IngestPipeline(
        writer,
        settings.es_index_prefix,
        registry=load_registry(settings.data_dir),
        batch_size=settings.batch_size,
    )
    adapter = NdjsonFileAdapter("ndjson", settings.to_adapter_config())
    await adapter.connect()

    _runtime.update(
        pipeline=pipeline,
        adapter=adapter,
        writer=writer,
        task=asyncio.create_task(pipeline.watch(adapter)),
    )
    return pipeline


async def stop_watch() -> None:
    task: Optional[asyncio.Task] = _runtime["task"]
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    if _runtime["adapter"] is not None:
        await _runtime["adapter"].disconnect()
    if _runtime["writer"] is not None:
        await _runtime["writer"].close()
    _runtime.update(adapter=None, writer=None, task=None)


@app.on_event("startup")
async def startup():
    logger.info(
        "shc2es v%s starting - Smart Home Controller to Elasticsearch",
        settings.version,
    )
    logger.info("Log level: %s", settings.log_level)
    logger.info("Data dir: %s", settings.data_dir)
    logger.info("Elasticsearch: %s", settings.es_node)
    if settings.watch:
        await start_watch(settings)


@app.on_event("shutdown")
async def shutdown():
    await stop_watch()


@app.get("/health")
async def health():
    adapter = _runtime["adapter"]
    return {
        "status": "ok",
        "version": settings.version,
        "watching": _runtime["task"] is not None and not _runtime["task"].done(),
        "source": adapter.health().state.value if adapter is not None else None,
    }


@app.get("/stats")
async def stats():
    pipeline: Optional[IngestPipeline] = _runtime["pipeline"]
    current = pipeline.stats if pipeline is not None else IngestStats()
    return current.to_dict()
