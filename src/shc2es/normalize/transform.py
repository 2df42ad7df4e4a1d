"""Raw record -> Elasticsearch document.

Drives one record through classification, registry enrichment, metric
extraction and id generation. The result is either a NormalizedDocument
ready for indexing or the ClassificationError explaining the rejection.
Nothing here raises for bad input; the caller decides whether to skip,
count or abort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from shc2es.models.events import (
    BaseEvent,
    ClientEvent,
    DeviceEvent,
    DeviceServiceDataEvent,
    MessageEvent,
    RoomEvent,
)
from shc2es.normalize.classify import ClassificationError, classify
from shc2es.normalize.doc_id import generate_doc_id
from shc2es.normalize.metrics import Metric, extract_metric
from shc2es.registry import DeviceRegistry

logger = logging.getLogger("shc2es.normalize.transform")

_TRACE_FIELDS = ("trace_id", "span_id", "trace_flags")


@dataclass(frozen=True)
class NormalizedDocument:
    """An accepted event in its storage shape."""
    doc_id: str
    timestamp: str
    type_tag: str
    entity_id: str
    metric: Optional[Metric] = None
    device_id: Optional[str] = None
    path: Optional[str] = None
    device: Optional[dict[str, str]] = None
    room: Optional[dict[str, str]] = None
    trace: dict[str, str] = field(default_factory=dict)

    def to_source(self) -> dict[str, Any]:
        """Build the ``_source`` body sent to Elasticsearch."""
        source: dict[str, Any] = {
            "@timestamp": self.timestamp,
            "@type": self.type_tag,
            "id": self.entity_id,
        }
        if self.device_id is not None:
            source["deviceId"] = self.device_id
        if self.path is not None:
            source["path"] = self.path
        if self.device:
            source["device"] = dict(self.device)
        if self.room:
            source["room"] = dict(self.room)
        if self.metric is not None:
            source["metric"] = self.metric.to_dict()
        source.update(self.trace)
        return source


TransformResult = Union[NormalizedDocument, ClassificationError]


def _room_block(registry: DeviceRegistry, room_id: Optional[str]) -> Optional[dict[str, str]]:
    if not room_id:
        return None
    info = registry.room(room_id)
    if info is None:
        return None
    return {"id": room_id, "name": info.name}


def _enrich(
    event: BaseEvent, registry: Optional[DeviceRegistry]
) -> tuple[Optional[dict[str, str]], Optional[dict[str, str]]]:
    """Return (device, room) blocks for an event from the registry."""
    if registry is None:
        return None, None

    if isinstance(event, DeviceServiceDataEvent):
        info = registry.device(event.deviceId)
        if info is None:
            return None, None
        device = {"name": info.name}
        if info.type:
            device["type"] = info.type
        return device, _room_block(registry, info.roomId)

    if isinstance(event, RoomEvent):
        return None, _room_block(registry, event.id)

    if isinstance(event, (DeviceEvent, MessageEvent, ClientEvent)):
        return None, None

    tag = getattr(event, "type_tag", None)
    logger.warning(
        "Unknown event type in enrichment: %s", tag,
        extra={"event_type": tag, "error_kind": "UnknownEventType"},
    )
    return None, None


def normalize_event(
    event: BaseEvent, registry: Optional[DeviceRegistry] = None
) -> NormalizedDocument:
    """Build the storage document for an already classified event."""
    device, room = _enrich(event, registry)
    is_service = isinstance(event, DeviceServiceDataEvent)
    return NormalizedDocument(
        doc_id=generate_doc_id(event),
        timestamp=event.time,
        type_tag=event.type_tag,
        entity_id=event.id,
        metric=extract_metric(event),
        device_id=event.deviceId if is_service else None,
        path=event.path if is_service else None,
        device=device,
        room=room,
        trace={
            name: getattr(event, name)
            for name in _TRACE_FIELDS
            if getattr(event, name) is not None
        },
    )


def transform_record(
    raw: Any, registry: Optional[DeviceRegistry] = None
) -> TransformResult:
    """Classify and normalize one raw record."""
    result = classify(raw)
    if isinstance(result, ClassificationError):
        return result
    return normalize_event(result, registry)
