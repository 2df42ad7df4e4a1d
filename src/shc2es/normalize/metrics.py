"""Metric extraction from classified events.

A metric is a single named observation (humidity, temperature, valve
position, ...) lifted out of an event so it can be charted without
knowing the event's shape. Only two variants carry measurements:
DeviceServiceData in its ``state`` payload and room events in
``extProperties``. Device, message and client events are metadata and
never yield a metric.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from shc2es.models.events import (
    BaseEvent,
    ClientEvent,
    DeviceEvent,
    DeviceServiceDataEvent,
    MessageEvent,
    RoomEvent,
    check_exhaustive,
)

logger = logging.getLogger("shc2es.normalize.metrics")

# Units for measurement keys the hub is known to report.
KNOWN_UNITS: dict[str, str] = {
    "humidity": "%",
    "temperature": "°C",
    "setpointTemperature": "°C",
    "position": "%",
    "valvePosition": "%",
    "level": "%",
    "illuminance": "lx",
    "powerConsumption": "W",
    "energyConsumption": "Wh",
}


@dataclass(frozen=True)
class Metric:
    """One named measurement extracted from an event."""
    name: str
    value: Union[float, int, bool]
    unit: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "value": self.value}
        if self.unit is not None:
            out["unit"] = self.unit
        return out


def _metric(name: str, value: Union[float, int, bool]) -> Metric:
    return Metric(name=name, value=value, unit=KNOWN_UNITS.get(name))


def _from_service_state(event: DeviceServiceDataEvent) -> Optional[Metric]:
    state = event.state
    if not isinstance(state, dict):
        return None

    first_bool: Optional[tuple[str, bool]] = None
    for key, val in state.items():
        if key == "@type":
            continue
        # bool is an int subclass; keep it apart so numbers win
        if isinstance(val, bool):
            if first_bool is None:
                first_bool = (key, val)
            continue
        # ints beyond float range parse to None and are skipped
        if isinstance(val, (int, float)) and _parse_number(val) is not None:
            return _metric(key, val)

    if first_bool is not None:
        return _metric(*first_bool)
    return None


def _parse_number(val: Any) -> Optional[float]:
    if isinstance(val, bool) or val is None:
        return None
    try:
        num = float(val)
    except (TypeError, ValueError, OverflowError):
        return None
    return num if math.isfinite(num) else None


def _from_room_properties(event: RoomEvent) -> Optional[Metric]:
    props = event.extProperties
    if not props:
        return None
    # Values arrive as strings, e.g. {"humidity": "42.71"}
    for key, val in props.items():
        num = _parse_number(val)
        if num is not None:
            return _metric(key, num)
    return None


def _no_metric(event: BaseEvent) -> Optional[Metric]:
    return None


_HANDLERS: dict[type, Callable[[Any], Optional[Metric]]] = {
    DeviceServiceDataEvent: _from_service_state,
    RoomEvent: _from_room_properties,
    DeviceEvent: _no_metric,
    MessageEvent: _no_metric,
    ClientEvent: _no_metric,
}

check_exhaustive(_HANDLERS, "extract_metric")


def extract_metric(event: BaseEvent) -> Optional[Metric]:
    """Extract at most one metric from an event.

    Returns None when the event carries no measurement. Never raises for
    an event of the union; anything else is logged as an unknown event
    type and also yields None.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        tag = getattr(event, "type_tag", None)
        logger.warning(
            "Unknown event type in extract_metric: %s", tag,
            extra={"event_type": tag, "error_kind": "UnknownEventType"},
        )
        return None
    return handler(event)
