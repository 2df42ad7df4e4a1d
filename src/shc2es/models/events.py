"""Smart home event model.

The hub's long-poll API emits loosely typed JSON records. Every record
carries an ``@type`` discriminator, and the set of recognized values is
closed: anything else is reported as an unknown event type rather than
coerced into one of the known shapes.

Fields the hub sends that are not modeled here are kept on the event as
extra attributes, so the raw record survives classification intact.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field


class BaseEvent(BaseModel):
    """Envelope shared by every event variant.

    The trace fields are attached by the instrumentation layer that wrote
    the record. They are opaque and only passed through.
    """
    time: str = Field(
        description="ISO-8601 timestamp at which the hub emitted the event"
    )
    trace_id: Optional[str] = Field(default=None)
    span_id: Optional[str] = Field(default=None)
    trace_flags: Optional[str] = Field(default=None)

    class Config:
        frozen = True
        extra = "allow"
        populate_by_name = True


class DeviceServiceDataEvent(BaseEvent):
    """Sensor reading or state update from a single device service.

    ``state`` is tagged with its own ``@type`` (humidityLevelState,
    valveTappetState, ...). The vocabulary is controlled by the hub, so it
    stays a plain mapping.
    """
    type_tag: Literal["DeviceServiceData"] = Field(alias="@type")
    id: str = Field(description="Service id, e.g. 'HumidityLevel'")
    deviceId: str
    path: str
    state: Optional[dict[str, Any]] = None
    operations: Optional[list[str]] = None
    faults: Optional[dict[str, Any]] = None


class DeviceEvent(BaseEvent):
    """Device metadata and configuration."""
    type_tag: Literal["device"] = Field(alias="@type")
    id: str
    name: Optional[str] = None
    deviceModel: Optional[str] = None
    manufacturer: Optional[str] = None
    serial: Optional[str] = None
    status: Optional[str] = None
    rootDeviceId: Optional[str] = None
    parentDeviceId: Optional[str] = None
    roomId: Optional[str] = None
    deviceServiceIds: Optional[list[str]] = None
    childDeviceIds: Optional[list[str]] = None


class RoomEvent(BaseEvent):
    """Room metadata update.

    ``extProperties`` is absent on a small share of real events, so every
    consumer has to cope without it.
    """
    type_tag: Literal["room"] = Field(alias="@type")
    id: str
    name: Optional[str] = None
    iconId: Optional[str] = None
    extProperties: Optional[dict[str, Any]] = None


class MessageEvent(BaseEvent):
    """System message, notification or device error."""
    type_tag: Literal["message"] = Field(alias="@type")
    id: str
    sourceId: Optional[str] = None
    sourceType: Optional[str] = None
    sourceName: Optional[str] = None
    messageCode: Optional[dict[str, Any]] = None
    flags: Optional[list[str]] = None
    arguments: Optional[dict[str, Any]] = None
    timestamp: Optional[int] = None


class ClientEvent(BaseEvent):
    """Client application paired with the controller (mobile app etc.)."""
    type_tag: Literal["client"] = Field(alias="@type")
    id: str
    name: Optional[str] = None
    clientType: Optional[str] = None
    primaryRole: Optional[str] = None
    roles: Optional[list[str]] = None
    appVersion: Optional[str] = None
    os: Optional[str] = None
    osVersion: Optional[str] = None


SmartHomeEvent = Annotated[
    Union[
        DeviceServiceDataEvent,
        DeviceEvent,
        RoomEvent,
        MessageEvent,
        ClientEvent,
    ],
    Field(discriminator="type_tag"),
]

# Discriminator value -> variant. Consumers that dispatch per variant are
# checked against this table.
EVENT_MODELS: dict[str, type[BaseEvent]] = {
    "DeviceServiceData": DeviceServiceDataEvent,
    "device": DeviceEvent,
    "room": RoomEvent,
    "message": MessageEvent,
    "client": ClientEvent,
}


def is_known_event_type(tag: object) -> bool:
    return isinstance(tag, str) and tag in EVENT_MODELS


def check_exhaustive(handlers: dict[type, Any], consumer: str) -> None:
    """Fail loudly when a per-variant handler table misses a variant.

    Called at import time by every module that dispatches on the event
    variant, so a new entry in EVENT_MODELS cannot be silently ignored.
    """
    missing = [
        tag for tag, model in EVENT_MODELS.items() if model not in handlers
    ]
    extra = [
        cls.__name__ for cls in handlers
        if cls not in EVENT_MODELS.values()
    ]
    if missing or extra:
        raise TypeError(
            f"{consumer} does not match the event union: "
            f"missing={missing} unexpected={extra}"
        )


class RawEvent(BaseModel):
    """Immutable envelope around one record read from a source.

    The payload is the record exactly as read. Classification happens
    downstream; the envelope only carries routing metadata.
    """
    source_id: str = Field(
        description="Which adapter produced this record"
    )
    payload: dict[str, Any] = Field(
        description="The raw record exactly as read -- never modified"
    )
    origin: str = Field(
        default="",
        description="File or stream the record came from"
    )
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When shc2es read this record (not the event's own time)"
    )
    sequence: Optional[int] = Field(
        default=None,
        description="Adapter-assigned sequence number for ordering"
    )

    class Config:
        frozen = True


class SampleBatch(BaseModel):
    """A batch of raw records sampled from a source, in read order."""
    source_id: str
    events: list[RawEvent] = Field(default_factory=list)
    sampled_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def size(self) -> int:
        return len(self.events)

    def payloads(self) -> list[dict[str, Any]]:
        """Extract just the raw payloads."""
        return [e.payload for e in self.events]
