"""Pytest configuration for the shc2es test suite."""

import copy
import logging
import os

import pytest

# Ensure test environment variables are set before any imports
os.environ.setdefault("SHC2ES_LOG_LEVEL", "warning")
os.environ.setdefault("SHC2ES_ES_NODE", "http://localhost:9200")
os.environ.setdefault("SHC2ES_WATCH", "false")


TRACE = {
    "trace_id": "4bf92f3577b34da6a3ce929d0e0e4736",
    "span_id": "00f067aa0ba902b7",
    "trace_flags": "01",
}

RAW_EVENTS = {
    "DeviceServiceData": {
        "@type": "DeviceServiceData",
        "id": "HumidityLevel",
        "deviceId": "hdm:ZigBee:001e5e0902b94515",
        "path": "/devices/hdm:ZigBee:001e5e0902b94515/services/HumidityLevel",
        "state": {"@type": "humidityLevelState", "humidity": 42.71},
        "time": "2025-12-15T09:39:40.003Z",
        **TRACE,
    },
    "device": {
        "@type": "device",
        "id": "hdm:ZigBee:f0fd45fffe557345",
        "name": "EG WZ Thermostat 3",
        "deviceModel": "TRV_GEN2_DUAL",
        "manufacturer": "BOSCH",
        "serial": "F0FD45FFFE557345",
        "status": "AVAILABLE",
        "rootDeviceId": "64-da-a0-40-1e-ab",
        "profile": "GENERIC",
        "deviceServiceIds": ["ValveTappet", "TemperatureLevel"],
        "childDeviceIds": [],
        "installationTimestamp": 1733843212456,
        "roomId": "hz_1",
        "time": "2025-12-15T09:41:15.523Z",
        **TRACE,
    },
    "room": {
        "@type": "room",
        "id": "hz_1",
        "name": "EG Wohnzimmer",
        "iconId": "icon_room_living_room",
        "extProperties": {"humidity": "39.8"},
        "time": "2025-12-15T09:39:40.038Z",
        **TRACE,
    },
    "message": {
        "@type": "message",
        "id": "d88624d2-a2c4-49a9-9169-6591b395a141",
        "sourceId": "hdm:ZigBee:f0fd45fffe51fa08",
        "sourceType": "DEVICE",
        "sourceName": "UG Fitness Thermostat",
        "messageCode": {"name": "VALVE_NO_BODY_ERROR", "category": "ERROR"},
        "flags": ["STATUS", "STICKY"],
        "arguments": {},
        "timestamp": 1765791587147,
        "time": "2025-12-15T09:39:47.139Z",
        **TRACE,
    },
    "client": {
        "@type": "client",
        "id": "64D3FCCA-7AD5-4786-BDE6-F533EB989C92",
        "name": "iPhone Walter",
        "clientType": "MOBILE",
        "primaryRole": "ROLE_DEFAULT_CLIENT",
        "roles": ["ROLE_DEFAULT_CLIENT"],
        "dynamicRoles": [],
        "appVersion": "10.21.1",
        "os": "IOS",
        "osVersion": "18.1",
        "createdDate": "2024-11-02T10:11:12Z",
        "suppressedNotifications": [],
        "time": "2025-12-12T15:28:40.929Z",
        **TRACE,
    },
}


@pytest.fixture
def raw_events():
    """Fresh copies of one raw record per event type, keyed by @type."""
    return copy.deepcopy(RAW_EVENTS)


@pytest.fixture(params=sorted(RAW_EVENTS))
def any_raw_event(request):
    """Parametrized over every event type."""
    return copy.deepcopy(RAW_EVENTS[request.param])


@pytest.fixture(autouse=True)
def _propagate_shc2es_logs():
    """configure_logging stops propagation; caplog listens on the root."""
    log = logging.getLogger("shc2es")
    previous = log.propagate
    log.propagate = True
    yield
    log.propagate = previous
