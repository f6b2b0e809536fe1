import pytest

from deltakit.common.enums import SnapshotSource, Tier
from deltakit.common.errors import (
    PayloadTooLargeError,
    PayloadValidationError,
    RateLimitExceededError,
    StorageError,
)
from deltakit.common.hashes import content_hash
from deltakit.delta_worker.determinism import deterministic_job_id
from deltakit.ingestion.service import IngestionPipeline
from deltakit.snapshot_store.service import SnapshotStoreService


class BrokenStore(SnapshotStoreService):
    def create_snapshot(self, **fields):
        raise StorageError("database unavailable")


def _event_types(observability):
    return [event.event_type for event in observability.events()]


def test_first_snapshot_is_stored_without_delta_job(pipeline, store, queue):
    data = {"price": 100, "tags": ["a"]}

    result = pipeline.ingest("endpoint-1", data, SnapshotSource.sdk, {"run": 1})

    assert result.is_duplicate is False
    assert result.queued_for_delta is False
    assert result.snapshot.content_hash == content_hash(data)
    assert result.snapshot.size_bytes == len(b'{"price":100,"tags":["a"]}')
    assert result.snapshot.metadata == {"run": 1}
    assert store.get_latest_snapshot("endpoint-1") == result.snapshot
    assert queue.list() == []


def test_identical_payload_within_window_is_duplicate(pipeline, store, queue):
    first = pipeline.ingest("endpoint-1", {"foo": 1})
    second = pipeline.ingest("endpoint-1", {"foo": 1})

    assert second.is_duplicate is True
    assert second.queued_for_delta is False
    assert second.snapshot.snapshot_id == first.snapshot.snapshot_id
    _, total = store.list_snapshots(endpoint_id="endpoint-1")
    assert total == 1
    assert queue.list() == []


def test_key_order_does_not_defeat_dedup(pipeline):
    pipeline.ingest("endpoint-1", {"a": 1, "b": {"c": 2, "d": 3}})
    result = pipeline.ingest("endpoint-1", {"b": {"d": 3, "c": 2}, "a": 1})

    assert result.is_duplicate is True


def test_identical_payload_after_window_creates_snapshot_and_job(pipeline, clock, queue):
    first = pipeline.ingest("endpoint-1", {"foo": 1})
    clock.advance(3600)
    second = pipeline.ingest("endpoint-1", {"foo": 1})

    assert second.is_duplicate is False
    assert second.queued_for_delta is True
    assert second.snapshot.snapshot_id != first.snapshot.snapshot_id
    assert len(queue.list()) == 1


def test_changed_payload_enqueues_delta_job(pipeline, queue, clock):
    first = pipeline.ingest("endpoint-1", {"foo": "bar"})
    second = pipeline.ingest("endpoint-1", {"foo": "baz"})

    assert second.queued_for_delta is True
    expected_job_id = deterministic_job_id(
        endpoint_id="endpoint-1",
        previous_snapshot_id=first.snapshot.snapshot_id,
        snapshot_id=second.snapshot.snapshot_id,
    )
    items = queue.list()
    assert [item.job_id for item in items] == [expected_job_id]
    assert items[0].scheduled_at == clock.now()
    job = queue.get(expected_job_id)
    assert job.previous_snapshot_id == first.snapshot.snapshot_id
    assert job.snapshot_id == second.snapshot.snapshot_id
    assert job.max_attempts == 3


def test_dedup_is_per_endpoint(pipeline):
    pipeline.ingest("endpoint-1", {"foo": 1})
    other = pipeline.ingest("endpoint-2", {"foo": 1})

    assert other.is_duplicate is False
    assert other.queued_for_delta is False


def test_oversized_payload_rejected_before_storage(store, queue, clock):
    pipeline = IngestionPipeline(storage=store, queue=queue, max_snapshot_bytes=64, clock=clock)

    with pytest.raises(PayloadTooLargeError) as excinfo:
        pipeline.ingest("endpoint-1", {"blob": "x" * 100})

    assert excinfo.value.max_bytes == 64
    assert excinfo.value.size_bytes > 64
    assert store.get_latest_snapshot("endpoint-1") is None


def test_non_object_payload_rejected(pipeline):
    with pytest.raises(PayloadValidationError):
        pipeline.ingest("endpoint-1", ["not", "an", "object"])


def test_enqueue_failure_is_swallowed(pipeline, queue, store, observability):
    pipeline.ingest("endpoint-1", {"foo": 1})
    queue.close()

    result = pipeline.ingest("endpoint-1", {"foo": 2})

    assert result.is_duplicate is False
    assert result.queued_for_delta is False
    assert store.get_latest_snapshot("endpoint-1").snapshot_id == result.snapshot.snapshot_id
    assert "enqueue_failed" in _event_types(observability)


def test_storage_failure_is_surfaced(queue, clock):
    pipeline = IngestionPipeline(storage=BrokenStore(clock=clock), queue=queue, clock=clock)

    with pytest.raises(StorageError):
        pipeline.ingest("endpoint-1", {"foo": 1})
    assert queue.list() == []


def test_rate_limit_gates_ingest_before_any_work(pipeline, store):
    for index in range(3):
        pipeline.ingest("endpoint-1", {"n": index}, tenant_id="tenant-1", tier=Tier.free)

    with pytest.raises(RateLimitExceededError) as excinfo:
        pipeline.ingest("endpoint-1", {"n": 99}, tenant_id="tenant-1", tier=Tier.free)

    assert excinfo.value.limit == 3
    assert excinfo.value.remaining == 0
    assert excinfo.value.reset_at is not None
    _, total = store.list_snapshots(endpoint_id="endpoint-1")
    assert total == 3


def test_ingest_without_tenant_skips_rate_limit(pipeline):
    for index in range(5):
        pipeline.ingest("endpoint-1", {"n": index})


def test_source_and_events_recorded(pipeline, observability):
    result = pipeline.ingest("endpoint-1", {"foo": 1}, "webhook")
    pipeline.ingest("endpoint-1", {"foo": 1})

    assert result.snapshot.source == SnapshotSource.webhook
    assert _event_types(observability) == ["snapshot_created", "duplicate"]
