"""Tests for the ingestion pipeline against an in-memory sink."""

import asyncio
import json

from shc2es.adapters.ndjson_file import NdjsonFileAdapter
from shc2es.errors import IndexingError
from shc2es.ingest.pipeline import IngestPipeline
from shc2es.normalize.classify import ErrorKind


class MemorySink:
    """Collects writes per index."""

    def __init__(self, fail_on=None):
        self.writes: dict[str, list] = {}
        self.calls = 0
        self.fail_on = fail_on

    async def write(self, index, documents):
        self.calls += 1
        if self.fail_on == index:
            raise IndexingError("cluster unavailable", index, "BULK_FAILED")
        self.writes.setdefault(index, []).extend(documents)
        return len(documents)


def _ndjson(path, records):
    path.write_text(
        "".join(json.dumps(r) + "\n" for r in records), encoding="utf-8"
    )


class TestProcess:
    """One bad record never blocks the rest of a batch."""

    def test_mixed_batch(self, raw_events):
        pipeline = IngestPipeline(MemorySink(), "shc")
        broken = dict(raw_events["message"])
        del broken["id"]
        records = [
            raw_events["room"],
            {"@type": "unexpected_future_type", "time": "t"},
            broken,
            raw_events["client"],
        ]
        result = pipeline.process(records)
        assert [d.type_tag for d in result.documents] == ["room", "client"]
        assert [e.kind for e in result.errors] == [
            ErrorKind.UNKNOWN_EVENT_TYPE, ErrorKind.MALFORMED_EVENT,
        ]
        assert pipeline.stats.accepted == 2
        assert pipeline.stats.malformed == 1
        assert pipeline.stats.unknown_types == {"unexpected_future_type": 1}

    def test_unknown_type_is_logged(self, caplog):
        pipeline = IngestPipeline(MemorySink(), "shc")
        pipeline.process([{"@type": "light", "id": "l1", "time": "t"}])
        assert "Unknown event type encountered: light" in caplog.text
        assert pipeline.stats.to_dict()["unknown_types"] == {"light": 1}

    def test_oversized_number_does_not_drop_batch(self, raw_events):
        pipeline = IngestPipeline(MemorySink(), "shc")
        room = dict(raw_events["room"], extProperties={"humidity": 10 ** 400})
        result = pipeline.process([room, raw_events["client"]])
        assert [d.type_tag for d in result.documents] == ["room", "client"]
        assert result.documents[0].metric is None
        assert pipeline.stats.accepted == 2

    def test_same_records_same_output(self, raw_events):
        records = list(raw_events.values())
        first = IngestPipeline(MemorySink(), "shc").process(records)
        second = IngestPipeline(MemorySink(), "shc").process(records)
        assert first.documents == second.documents


class TestIngest:

    def test_batches_by_size(self, raw_events):
        sink = MemorySink()
        pipeline = IngestPipeline(sink, "shc", batch_size=2)
        indexed = asyncio.run(pipeline.ingest("shc-x", list(raw_events.values())))
        assert indexed == 5
        assert sink.calls == 3
        assert pipeline.stats.indexed == 5

    def test_failed_batch_counted(self, raw_events):
        sink = MemorySink(fail_on="shc-x")
        pipeline = IngestPipeline(sink, "shc")
        indexed = asyncio.run(pipeline.ingest("shc-x", [raw_events["room"]]))
        assert indexed == 0
        assert pipeline.stats.failed_batches == 1


class TestImportFiles:

    def test_daily_indices(self, tmp_path, raw_events):
        _ndjson(tmp_path / "events-2025-12-14.ndjson", [raw_events["room"]])
        _ndjson(tmp_path / "events-2025-12-15.ndjson", [
            raw_events["DeviceServiceData"],
            {"@type": "light", "id": "l1", "time": "t"},
        ])
        with (tmp_path / "events-2025-12-15.ndjson").open("a") as fh:
            fh.write("{broken\n\n")

        sink = MemorySink()
        pipeline = IngestPipeline(sink, "smart-home-events")
        total = asyncio.run(pipeline.import_files(tmp_path))

        assert total == 2
        assert sorted(sink.writes) == [
            "smart-home-events-2025-12-14",
            "smart-home-events-2025-12-15",
        ]
        doc = sink.writes["smart-home-events-2025-12-15"][0]
        assert doc.metric.value == 42.71
        assert pipeline.stats.unknown_types == {"light": 1}

    def test_no_files(self, tmp_path):
        sink = MemorySink()
        assert asyncio.run(IngestPipeline(sink, "shc").import_files(tmp_path)) == 0
        assert sink.calls == 0


class TestWatch:

    def test_tails_new_records(self, tmp_path, raw_events):
        path = tmp_path / "events-2025-12-15.ndjson"
        _ndjson(path, [raw_events["device"]])
        sink = MemorySink()
        pipeline = IngestPipeline(sink, "shc")
        adapter = NdjsonFileAdapter("ndjson", {"path": str(tmp_path), "poll_interval": 0.01})

        async def scenario():
            await adapter.connect()
            task = asyncio.create_task(pipeline.watch(adapter))
            await asyncio.sleep(0.05)
            with path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(raw_events["room"]) + "\n")
            for _ in range(100):
                if sink.writes:
                    break
                await asyncio.sleep(0.01)
            await adapter.disconnect()
            await asyncio.wait_for(task, timeout=1)

        asyncio.run(scenario())
        # The pre-existing device record is not replayed
        docs = sink.writes["shc-2025-12-15"]
        assert [d.type_tag for d in docs] == ["room"]
