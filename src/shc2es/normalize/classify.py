"""Classification of raw hub records into typed events.

``classify`` is the only place untrusted wire data enters the typed
world. It never raises: a record either becomes one of the five event
variants or a ClassificationError describing why it did not.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from shc2es.models.events import (
    EVENT_MODELS,
    BaseEvent,
    SmartHomeEvent,
    is_known_event_type,
)

DISCRIMINATOR = "@type"

_event_adapter: TypeAdapter = TypeAdapter(SmartHomeEvent)


class ErrorKind(str, Enum):
    """Why a record could not be classified."""
    UNKNOWN_EVENT_TYPE = "UnknownEventType"
    MALFORMED_EVENT = "MalformedEvent"


@dataclass(frozen=True)
class ClassificationError:
    """A record that did not classify into a known event.

    ``type_tag`` holds the discriminator exactly as received for unknown
    types, so new upstream event kinds show up in reports verbatim.
    """
    kind: ErrorKind
    type_tag: Optional[str]
    message: str
    details: tuple[str, ...] = ()
    record: Any = field(default=None, repr=False, compare=False)


ClassifyResult = Union[BaseEvent, ClassificationError]


def _malformed(
    tag: Optional[str], message: str, record: Any, details: tuple[str, ...] = ()
) -> ClassificationError:
    return ClassificationError(
        kind=ErrorKind.MALFORMED_EVENT,
        type_tag=tag,
        message=message,
        details=details,
        record=record,
    )


def _format_errors(exc: PydanticValidationError) -> tuple[str, ...]:
    """Flatten pydantic errors to 'field: message' strings."""
    lines = []
    for err in exc.errors():
        # Discriminated unions prefix the location with the tag value
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in EVENT_MODELS:
            loc = loc[1:]
        lines.append(f"{'.'.join(loc) or '<record>'}: {err.get('msg', '')}")
    return tuple(lines)


def classify(raw: Any) -> ClassifyResult:
    """Classify one raw record.

    Args:
        raw: A decoded JSON record. No type guarantee.

    Returns:
        The matching event variant, or a ClassificationError with kind
        UNKNOWN_EVENT_TYPE (tag not in the closed set) or MALFORMED_EVENT
        (not an event envelope, or required fields missing/invalid).
    """
    if not isinstance(raw, Mapping):
        return _malformed(
            None, f"record is not an object (got {type(raw).__name__})", raw
        )

    if DISCRIMINATOR not in raw:
        return _malformed(None, f"record has no '{DISCRIMINATOR}' field", raw)

    tag = raw[DISCRIMINATOR]
    if not isinstance(tag, str):
        return _malformed(
            None,
            f"'{DISCRIMINATOR}' must be a string (got {tag!r})",
            raw,
        )

    if not is_known_event_type(tag):
        return ClassificationError(
            kind=ErrorKind.UNKNOWN_EVENT_TYPE,
            type_tag=tag,
            message=f"unknown event type: {tag}",
            record=raw,
        )

    try:
        return _event_adapter.validate_python(dict(raw))
    except PydanticValidationError as e:
        details = _format_errors(e)
        return _malformed(
            tag,
            f"invalid {tag} event: {len(details)} field error(s)",
            raw,
            details,
        )
