"""Abstract source adapter interface.

Source adapters have exactly two responsibilities: transport (how to get
raw records) and health (is the source alive). Adapters do NOT classify,
normalize or enrich; records leave an adapter exactly as they were read.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator

from shc2es.models.events import RawEvent, SampleBatch

logger = logging.getLogger("shc2es.adapters")


class ConnectionState(str, Enum):
    """Adapter connection states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class AdapterHealth:
    """Health snapshot for an adapter."""
    state: ConnectionState = ConnectionState.DISCONNECTED
    source_id: str = ""
    adapter_type: str = ""
    location: str = ""
    last_event_at: datetime | None = None
    events_delivered: int = 0
    errors: int = 0
    checked_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class BaseAdapter(ABC):
    """Abstract base for all shc2es source adapters.

    The contract:
    - connect(): validate the source is reachable
    - sample(n): read up to n records without consuming the stream
    - stream(): yield records continuously as an async iterator
    - health(): report current state
    - disconnect(): release resources
    """

    def __init__(self, source_id: str, config: dict[str, Any]):
        self.source_id = source_id
        self.config = config
        self._state = ConnectionState.DISCONNECTED
        self._events_delivered = 0
        self._errors = 0
        self._last_event_at: datetime | None = None

    @property
    @abstractmethod
    def adapter_type(self) -> str:
        """Return the adapter type identifier (e.g. 'ndjson_file')."""
        ...

    @abstractmethod
    async def connect(self) -> ConnectionState:
        """Validate the source. Must not raise -- failures return FAILED."""
        ...

    @abstractmethod
    async def sample(self, n: int = 100) -> SampleBatch:
        """Read up to n records in source order."""
        ...

    @abstractmethod
    def stream(self) -> AsyncIterator[RawEvent]:
        """Yield records continuously as they become available."""
        ...

    async def stream_batches(self) -> AsyncIterator[list[RawEvent]]:
        """Yield records in groups. Override when the source reads in bulk."""
        async for event in self.stream():
            yield [event]

    @abstractmethod
    async def disconnect(self) -> None:
        """Release all resources."""
        ...

    @property
    def state(self) -> ConnectionState:
        return self._state

    def health(self) -> AdapterHealth:
        """Report current adapter health."""
        return AdapterHealth(
            state=self._state,
            source_id=self.source_id,
            adapter_type=self.adapter_type,
            location=str(self.config.get("path", "")),
            last_event_at=self._last_event_at,
            events_delivered=self._events_delivered,
            errors=self._errors,
        )

    def _record_event(self) -> None:
        """Track delivery. Call from subclass on each record."""
        self._events_delivered += 1
        self._last_event_at = datetime.now(timezone.utc)

    def _record_error(self, msg: str) -> None:
        """Track errors. Call from subclass on failures."""
        self._errors += 1
        logger.warning(
            "Adapter %s error [%s]: %s",
            self.adapter_type, self.source_id, msg,
        )
