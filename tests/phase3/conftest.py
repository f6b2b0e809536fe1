from datetime import datetime, timezone

import pytest

from deltakit.common.clock import FrozenClock
from deltakit.delta_worker.audit import AuditLogger
from deltakit.delta_worker.factory import DeltaJobFactory
from deltakit.delta_worker.queue import InMemoryDeltaQueue
from deltakit.delta_worker.repository import AuditLogRepository, DeltaJobRepository
from deltakit.delta_worker.throttle import ThroughputThrottle
from deltakit.delta_worker.worker import DeltaWorker
from deltakit.deltas.service import DeltaService
from deltakit.ingestion.service import IngestionPipeline
from deltakit.snapshot_store.service import SnapshotStoreService


FIXED_TIME = datetime(2026, 1, 28, tzinfo=timezone.utc)


class FakeTimer:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FrozenClock(FIXED_TIME)


@pytest.fixture
def store(clock):
    return SnapshotStoreService(clock=clock)


@pytest.fixture
def queue():
    return InMemoryDeltaQueue()


@pytest.fixture
def job_repo():
    return DeltaJobRepository()


@pytest.fixture
def audit_repo():
    return AuditLogRepository()


@pytest.fixture
def audit_logger(audit_repo):
    return AuditLogger(audit_repo)


@pytest.fixture
def job_factory():
    return DeltaJobFactory(max_attempts=3)


@pytest.fixture
def fake_timer():
    return FakeTimer()


@pytest.fixture
def make_worker(queue, job_repo, audit_logger, clock, fake_timer):
    workers = []

    def _make(storage, *, concurrency=5, rate_limit=100, backoff_seconds=1.0):
        worker = DeltaWorker(
            delta_service=storage if hasattr(storage, "compute_delta") else DeltaService(storage),
            queue=queue,
            repository=job_repo,
            audit_logger=audit_logger,
            clock=clock,
            concurrency=concurrency,
            backoff_seconds=backoff_seconds,
            throttle=ThroughputThrottle(rate_limit, timer=fake_timer, sleep=fake_timer.sleep),
        )
        workers.append(worker)
        return worker

    yield _make
    for worker in workers:
        worker.close()


@pytest.fixture
def pipeline(store, queue, job_factory, clock):
    return IngestionPipeline(storage=store, queue=queue, job_factory=job_factory, clock=clock)
