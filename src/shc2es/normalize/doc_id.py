"""Deterministic document ids for Elasticsearch.

Ids are built from the event tag, the entity id(s) and the event time, so
re-ingesting the same file overwrites instead of duplicating, and two
readings of one service at the same instant collapse into one document.

Every component goes through ``stringify`` before joining. Elasticsearch
rejects non-scalar ``_id`` values, and a missing or structured value must
never reach it as anything but plain text.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from shc2es.models.events import (
    BaseEvent,
    ClientEvent,
    DeviceEvent,
    DeviceServiceDataEvent,
    MessageEvent,
    RoomEvent,
    check_exhaustive,
)

logger = logging.getLogger("shc2es.normalize.doc_id")

SENTINEL = "unknown"
SEPARATOR = "-"


def stringify(val: Any) -> str:
    """Convert any value to id-safe text.

    None becomes the sentinel, strings pass through, scalars use their
    JSON text and structured values are serialized as compact JSON with
    sorted keys. Never raises.
    """
    if val is None:
        return SENTINEL
    if isinstance(val, str):
        return val if val else SENTINEL
    if isinstance(val, (bool, int, float)):
        return json.dumps(val)
    try:
        return json.dumps(
            val, sort_keys=True, separators=(",", ":"), default=str
        )
    except (TypeError, ValueError):
        return str(val)


def _join(*parts: Any) -> str:
    return SEPARATOR.join(stringify(p) for p in parts)


def _service_data_id(event: DeviceServiceDataEvent) -> str:
    return _join(
        "DeviceServiceData",
        getattr(event, "deviceId", None),
        getattr(event, "id", None),
        getattr(event, "time", None),
    )


def _entity_id(tag: str) -> Callable[[BaseEvent], str]:
    def build(event: BaseEvent) -> str:
        return _join(tag, getattr(event, "id", None), getattr(event, "time", None))
    return build


_HANDLERS: dict[type, Callable[[Any], str]] = {
    DeviceServiceDataEvent: _service_data_id,
    DeviceEvent: _entity_id("device"),
    RoomEvent: _entity_id("room"),
    MessageEvent: _entity_id("message"),
    ClientEvent: _entity_id("client"),
}

check_exhaustive(_HANDLERS, "generate_doc_id")


def generate_doc_id(event: BaseEvent) -> str:
    """Return the storage id for an event.

    Format is ``<tag>-<entity id(s)>-<time>``; DeviceServiceData uses both
    the device id and the service id. Objects outside the event union are
    logged as an unknown event type and get a best-effort id from their
    ``id`` or ``deviceId`` attribute.
    """
    handler = _HANDLERS.get(type(event))
    if handler is not None:
        return handler(event)

    tag = getattr(event, "type_tag", None)
    logger.warning(
        "Unknown event type in generate_doc_id: %s", tag,
        extra={"event_type": tag, "error_kind": "UnknownEventType"},
    )
    entity = getattr(event, "id", None) or getattr(event, "deviceId", None)
    return _join(tag, entity, getattr(event, "time", None))
