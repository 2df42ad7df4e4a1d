"""Device registry used to enrich events with human-readable names.

The registry is a JSON snapshot of the controller's devices and rooms,
written to ``device-registry.json`` in the data directory:

    {
      "fetchedAt": "2025-12-15T09:00:00Z",
      "devices": {"hdm:ZigBee:...": {"name": "...", "roomId": "hz_1", "type": "..."}},
      "rooms": {"hz_1": {"name": "Living Room", "iconId": "..."}}
    }

Enrichment is optional. A missing or unreadable registry is logged and
events are indexed without names.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from shc2es.errors import RegistryError

logger = logging.getLogger("shc2es.registry")

REGISTRY_FILENAME = "device-registry.json"


class DeviceInfo(BaseModel):
    name: str
    roomId: Optional[str] = None
    type: Optional[str] = None


class RoomInfo(BaseModel):
    name: str
    iconId: Optional[str] = None


class DeviceRegistry(BaseModel):
    """Snapshot of devices and rooms keyed by id."""
    fetchedAt: str = ""
    devices: dict[str, DeviceInfo] = Field(default_factory=dict)
    rooms: dict[str, RoomInfo] = Field(default_factory=dict)

    class Config:
        frozen = True

    def device(self, device_id: str) -> Optional[DeviceInfo]:
        return self.devices.get(device_id)

    def room(self, room_id: str) -> Optional[RoomInfo]:
        return self.rooms.get(room_id)


def registry_path(data_dir: str | Path) -> Path:
    return Path(data_dir).expanduser() / REGISTRY_FILENAME


def read_registry(path: str | Path) -> DeviceRegistry:
    """Parse a registry file.

    Raises:
        RegistryError: If the file cannot be read, is not JSON, or does
            not have the registry shape.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
        return DeviceRegistry.model_validate(json.loads(content))
    except OSError as e:
        raise RegistryError(
            f"Cannot read registry {path}: {e}", str(path), "FILE_READ_FAILED"
        ) from e
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RegistryError(
            f"Registry {path} is not valid JSON: {e}", str(path), "MALFORMED_REGISTRY"
        ) from e
    except PydanticValidationError as e:
        raise RegistryError(
            f"Registry {path} has an unexpected shape: {e.error_count()} error(s)",
            str(path),
            "MALFORMED_REGISTRY",
        ) from e


def load_registry(data_dir: str | Path) -> Optional[DeviceRegistry]:
    """Load the registry from the data directory, or None if unavailable."""
    path = registry_path(data_dir)
    if not path.exists():
        logger.warning(
            "Registry file not found at %s. Events will be indexed "
            "without device/room names.", path,
        )
        return None

    try:
        registry = read_registry(path)
    except RegistryError as e:
        logger.warning(
            "Failed to load device registry: %s. Events will be indexed "
            "without device/room names.", e,
            extra={"error_code": e.code},
        )
        return None

    logger.info(
        "Loaded device registry: %d devices, %d rooms (fetched at %s)",
        len(registry.devices), len(registry.rooms), registry.fetchedAt,
    )
    return registry
