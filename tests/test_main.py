"""Tests for the status API and watch-mode wiring."""

import asyncio

from fastapi.testclient import TestClient

from shc2es import main
from shc2es.config import Settings


class FakeWriter:
    instances = []

    def __init__(self, config):
        self.config = config
        self.closed = False
        FakeWriter.instances.append(self)

    async def connect(self):
        return "8.15.0"

    async def write(self, index, documents):
        return len(documents)

    async def close(self):
        self.closed = True


def test_health():
    with TestClient(main.app) as client:
        resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["version"] == "0.1.0"
    assert body["watching"] is False


def test_stats_without_pipeline():
    with TestClient(main.app) as client:
        resp = client.get("/stats")
    assert resp.json() == {
        "accepted": 0,
        "indexed": 0,
        "malformed": 0,
        "unknown": 0,
        "unknown_types": {},
        "failed_batches": 0,
    }


def test_start_and_stop_watch(monkeypatch, tmp_path):
    monkeypatch.setattr(main, "IndexWriter", FakeWriter)
    monkeypatch.setenv("SHC2ES_DATA_DIR", str(tmp_path))
    settings = Settings()

    async def scenario():
        pipeline = await main.start_watch(settings)
        assert main._runtime["task"] is not None
        pipeline.process([{"@type": "light", "id": "l1", "time": "t"}])
        stats = await main.stats()
        await main.stop_watch()
        return stats

    stats = asyncio.run(scenario())
    assert stats["unknown_types"] == {"light": 1}
    assert FakeWriter.instances[-1].closed
    assert main._runtime["task"] is None
    main._runtime["pipeline"] = None
