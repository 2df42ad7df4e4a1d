"""Ingestion pipeline orchestration.

Connects a record source (NDJSON files, a tailing adapter) to the
IndexWriter through the normalization core. Records are independent:
a rejected record is logged, counted and skipped, and never stops the
rest of its batch.

Unknown event types are counted per raw ``@type`` value so new upstream
kinds are visible in /stats as well as in the log.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol, Sequence

from shc2es.adapters.base import BaseAdapter
from shc2es.errors import IndexingError
from shc2es.ingest.utils import extract_date_from_filename, index_name, parse_line
from shc2es.normalize.classify import ClassificationError, ErrorKind
from shc2es.normalize.transform import NormalizedDocument, transform_record
from shc2es.registry import DeviceRegistry

logger = logging.getLogger("shc2es.ingest.pipeline")


class DocumentSink(Protocol):
    async def write(self, index: str, documents: Sequence[NormalizedDocument]) -> int:
        ...


@dataclass
class IngestStats:
    """Running counters for one pipeline."""
    accepted: int = 0
    indexed: int = 0
    malformed: int = 0
    failed_batches: int = 0
    unknown_types: Counter = field(default_factory=Counter)

    @property
    def unknown(self) -> int:
        return sum(self.unknown_types.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "accepted": self.accepted,
            "indexed": self.indexed,
            "malformed": self.malformed,
            "unknown": self.unknown,
            "unknown_types": dict(self.unknown_types),
            "failed_batches": self.failed_batches,
        }


@dataclass
class BatchResult:
    documents: list[NormalizedDocument] = field(default_factory=list)
    errors: list[ClassificationError] = field(default_factory=list)


class IngestPipeline:
    """Normalize raw records and write them to daily indices."""

    def __init__(
        self,
        sink: DocumentSink,
        index_prefix: str,
        registry: Optional[DeviceRegistry] = None,
        batch_size: int = 500,
    ):
        self.sink = sink
        self.index_prefix = index_prefix
        self.registry = registry
        self.batch_size = batch_size
        self.stats = IngestStats()

    def _report(self, error: ClassificationError) -> None:
        if error.kind is ErrorKind.UNKNOWN_EVENT_TYPE:
            self.stats.unknown_types[error.type_tag] += 1
            logger.warning(
                "Unknown event type encountered: %s. Record skipped.",
                error.type_tag,
                extra={"event_type": error.type_tag, "error_kind": error.kind.value},
            )
        else:
            self.stats.malformed += 1
            logger.warning(
                "Malformed event skipped: %s", error.message,
                extra={
                    "event_type": error.type_tag,
                    "error_kind": error.kind.value,
                    "details": list(error.details),
                },
            )

    def process(self, records: Iterable[Any]) -> BatchResult:
        """Transform a batch of raw records, reporting every rejection."""
        result = BatchResult()
        for raw in records:
            out = transform_record(raw, self.registry)
            if isinstance(out, ClassificationError):
                self._report(out)
                result.errors.append(out)
            else:
                self.stats.accepted += 1
                result.documents.append(out)
        return result

    async def _flush(self, index: str, documents: list[NormalizedDocument]) -> int:
        if not documents:
            return 0
        try:
            indexed = await self.sink.write(index, documents)
        except IndexingError as e:
            self.stats.failed_batches += 1
            logger.error(
                "Batch of %d documents dropped: %s", len(documents), e,
                extra={"index": index, "error_code": e.code},
            )
            return 0
        self.stats.indexed += indexed
        return indexed

    async def ingest(self, index: str, records: Iterable[Any]) -> int:
        """Normalize records and write them to one index in batches."""
        indexed = 0
        pending: list[Any] = []
        for raw in records:
            pending.append(raw)
            if len(pending) >= self.batch_size:
                indexed += await self._flush(index, self.process(pending).documents)
                pending = []
        indexed += await self._flush(index, self.process(pending).documents)
        return indexed

    async def import_file(self, path: str | Path) -> int:
        """Import one NDJSON file into the index for its date."""
        path = Path(path)
        index = index_name(self.index_prefix, extract_date_from_filename(path))
        logger.info("Importing %s to index %s", path, index, extra={"index": index})

        def records():
            with path.open("r", encoding="utf-8", errors="replace") as fh:
                for line in fh:
                    record = parse_line(line)
                    if record is not None:
                        yield record

        return await self.ingest(index, records())

    async def import_files(self, data_dir: str | Path, pattern: str = "events-*.ndjson") -> int:
        """Import every matching file, oldest first. Returns documents indexed."""
        data_dir = Path(data_dir).expanduser()
        files = sorted(data_dir.glob(pattern))
        if not files:
            logger.info("No NDJSON files matching %s in %s", pattern, data_dir)
            return 0

        logger.info("Found %d files to import", len(files))
        total = 0
        for path in files:
            total += await self.import_file(path)
        logger.info("Batch import complete: indexed %d documents", total)
        return total

    async def watch(self, adapter: BaseAdapter) -> int:
        """Ingest an adapter's stream until it ends or is cancelled.

        Each batch the adapter delivers is grouped by target index and
        written before the next one is awaited. Returns documents indexed.
        """
        indexed = 0
        logger.info("Watch mode started for [%s]", adapter.source_id)
        try:
            async for events in adapter.stream_batches():
                groups: dict[str, list[Any]] = {}
                for event in events:
                    index = index_name(
                        self.index_prefix, extract_date_from_filename(event.origin)
                    )
                    groups.setdefault(index, []).append(event.payload)
                for index, records in groups.items():
                    indexed += await self.ingest(index, records)
        finally:
            logger.info("Watch mode stopped for [%s]", adapter.source_id)
        return indexed
