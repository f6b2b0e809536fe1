from datetime import datetime, timezone

import pytest

from deltakit.common.clock import FrozenClock
from deltakit.common.enums import Tier
from deltakit.delta_worker.queue import InMemoryDeltaQueue
from deltakit.ingestion.service import IngestionObservability, IngestionPipeline
from deltakit.rate_limit.counter_store import InMemoryCounterStore
from deltakit.rate_limit.limiter import FixedWindowRateLimiter, RateLimitPolicy
from deltakit.snapshot_store.service import SnapshotStoreService


FIXED_TIME = datetime(2026, 1, 28, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FrozenClock(FIXED_TIME)


@pytest.fixture
def counter_store(clock):
    return InMemoryCounterStore(clock)


@pytest.fixture
def rate_policy():
    return RateLimitPolicy(limits={Tier.free: 3, Tier.pro: 5, Tier.enterprise: 10})


@pytest.fixture
def rate_limiter(counter_store, rate_policy, clock):
    return FixedWindowRateLimiter(counter_store, rate_policy, clock)


@pytest.fixture
def store(clock):
    return SnapshotStoreService(clock=clock)


@pytest.fixture
def queue():
    return InMemoryDeltaQueue()


@pytest.fixture
def observability(clock):
    return IngestionObservability(clock)


@pytest.fixture
def pipeline(store, queue, rate_limiter, clock, observability):
    return IngestionPipeline(
        storage=store,
        queue=queue,
        rate_limiter=rate_limiter,
        clock=clock,
        observability=observability,
    )
