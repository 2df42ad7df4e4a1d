"""Tests for device registry loading."""

import json

import pytest

from shc2es.errors import RegistryError
from shc2es.registry import load_registry, read_registry, registry_path


def _write(tmp_path, content):
    path = registry_path(tmp_path)
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadRegistry:

    def test_loads_devices_and_rooms(self, tmp_path):
        _write(tmp_path, json.dumps({
            "fetchedAt": "2025-12-15T09:00:00Z",
            "devices": {"d1": {"name": "Thermostat", "roomId": "hz_1"}},
            "rooms": {"hz_1": {"name": "Living Room", "iconId": "icon"}},
        }))
        registry = load_registry(tmp_path)
        assert registry.device("d1").roomId == "hz_1"
        assert registry.room("hz_1").name == "Living Room"
        assert registry.device("missing") is None

    def test_missing_file(self, tmp_path):
        assert load_registry(tmp_path) is None

    def test_invalid_json_logged_not_raised(self, tmp_path, caplog):
        _write(tmp_path, "{not json")
        assert load_registry(tmp_path) is None
        assert "Failed to load device registry" in caplog.text

    def test_undecodable_bytes_logged_not_raised(self, tmp_path, caplog):
        registry_path(tmp_path).write_bytes(b'{"devices": {"\xff\xfe": 1}}')
        assert load_registry(tmp_path) is None
        assert caplog.records[-1].error_code == "MALFORMED_REGISTRY"


class TestReadRegistry:

    def test_invalid_json(self, tmp_path):
        path = _write(tmp_path, "{not json")
        with pytest.raises(RegistryError) as exc:
            read_registry(path)
        assert exc.value.code == "MALFORMED_REGISTRY"
        assert exc.value.path == str(path)

    def test_not_utf8(self, tmp_path):
        path = registry_path(tmp_path)
        path.write_bytes(b"\xff\xfe{}")
        with pytest.raises(RegistryError) as exc:
            read_registry(path)
        assert exc.value.code == "MALFORMED_REGISTRY"

    def test_wrong_shape(self, tmp_path):
        path = _write(tmp_path, json.dumps({"devices": {"d1": {"roomId": 3}}}))
        with pytest.raises(RegistryError, match="unexpected shape"):
            read_registry(path)

    def test_unreadable(self, tmp_path):
        with pytest.raises(RegistryError) as exc:
            read_registry(tmp_path / "nope.json")
        assert exc.value.code == "FILE_READ_FAILED"
