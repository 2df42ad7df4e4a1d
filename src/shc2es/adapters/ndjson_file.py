"""NDJSON file adapter.

The hub poller appends one JSON record per line to a daily file
``events-YYYY-MM-DD.ndjson`` in the data directory. This adapter samples
those files and tails them for new lines, wrapping each parsed record in
a RawEvent. Lines that are not JSON objects are counted as errors and
skipped; classification is left to the pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Iterator

from shc2es.adapters.base import BaseAdapter, ConnectionState
from shc2es.ingest.utils import parse_line
from shc2es.models.events import RawEvent, SampleBatch

logger = logging.getLogger("shc2es.adapters.ndjson_file")

DEFAULT_GLOB = "events-*.ndjson"


class NdjsonFileAdapter(BaseAdapter):
    """Source adapter over NDJSON event files.

    Required config keys:
        path: str           - Directory holding the event files

    Optional config keys:
        pattern: str        - Glob for event files (default: 'events-*.ndjson')
        poll_interval: int  - Seconds between tail polls (default: 2)
        from_start: bool    - Stream existing lines first (default: False)
    """

    def __init__(self, source_id: str, config: dict[str, Any]):
        super().__init__(source_id, config)
        self._dir = Path(str(config.get("path", ""))).expanduser()
        self._pattern = str(config.get("pattern", DEFAULT_GLOB))
        self._poll_interval = float(config.get("poll_interval", 2))
        self._from_start = bool(config.get("from_start", False))
        # file path -> byte offset already consumed
        self._offsets: dict[Path, int] = {}
        self._seq = 0

    @property
    def adapter_type(self) -> str:
        return "ndjson_file"

    def files(self) -> list[Path]:
        """Event files in the directory, oldest first."""
        return sorted(self._dir.glob(self._pattern))

    async def connect(self) -> ConnectionState:
        self._state = ConnectionState.CONNECTING
        if not self._dir.is_dir():
            self._state = ConnectionState.FAILED
            self._record_error(f"Data directory not found: {self._dir}")
            return self._state

        if not self._from_start:
            # Tail only what is written from now on
            for path in self.files():
                self._offsets[path] = path.stat().st_size

        self._state = ConnectionState.CONNECTED
        logger.info(
            "NDJSON adapter [%s] connected: %d files match '%s' in %s",
            self.source_id, len(self.files()), self._pattern, self._dir,
        )
        return self._state

    def _wrap(self, record: dict[str, Any], path: Path) -> RawEvent:
        event = RawEvent(
            source_id=self.source_id,
            payload=record,
            origin=str(path),
            sequence=self._seq,
        )
        self._seq += 1
        self._record_event()
        return event

    def _read_new_lines(self, path: Path) -> Iterator[str]:
        """Yield complete lines appended since the last read."""
        offset = self._offsets.get(path, 0)
        size = path.stat().st_size
        if size < offset:
            # Truncated or rotated in place
            offset = 0
        with path.open("rb") as fh:
            fh.seek(offset)
            chunk = fh.read()
        # A trailing partial line is left for the next poll
        end = chunk.rfind(b"\n") + 1
        self._offsets[path] = offset + end
        for raw_line in chunk[:end].splitlines():
            yield raw_line.decode("utf-8", errors="replace")

    async def sample(self, n: int = 100) -> SampleBatch:
        """Read up to n records from the start of the files, oldest first."""
        events: list[RawEvent] = []
        for path in self.files():
            with path.open("r", encoding="utf-8", errors="replace") as fh:
                for line in fh:
                    record = parse_line(line)
                    if record is None:
                        continue
                    events.append(RawEvent(
                        source_id=self.source_id,
                        payload=record,
                        origin=str(path),
                        sequence=len(events),
                    ))
                    if len(events) >= n:
                        return SampleBatch(source_id=self.source_id, events=events)
        return SampleBatch(source_id=self.source_id, events=events)

    def poll(self) -> list[RawEvent]:
        """Collect every complete record appended since the previous poll."""
        events: list[RawEvent] = []
        for path in self.files():
            try:
                for line in self._read_new_lines(path):
                    if not line.strip():
                        continue
                    record = parse_line(line)
                    if record is None:
                        self._record_error(f"Unparseable line in {path.name}")
                        continue
                    events.append(self._wrap(record, path))
            except OSError as e:
                self._record_error(f"Read failed for {path}: {e}")
        return events

    async def stream_batches(self) -> AsyncIterator[list[RawEvent]]:
        """Tail the event files, yielding each poll's new records together."""
        if self._state != ConnectionState.CONNECTED:
            logger.error("Cannot stream: adapter not connected")
            return

        logger.info("Tailing started for [%s]", self.source_id)
        while self._state == ConnectionState.CONNECTED:
            events = self.poll()
            if events:
                yield events
            else:
                await asyncio.sleep(self._poll_interval)

    async def stream(self) -> AsyncIterator[RawEvent]:
        """Tail the event files, yielding new records as they are written."""
        async for events in self.stream_batches():
            for event in events:
                yield event

    async def disconnect(self) -> None:
        self._state = ConnectionState.DISCONNECTED
        logger.info("NDJSON adapter [%s] disconnected", self.source_id)
