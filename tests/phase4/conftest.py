from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from deltakit.api.app import create_app
from deltakit.api.components import build_components
from deltakit.common.clock import FrozenClock
from deltakit.common.config import DeltakitConfig


FIXED_TIME = datetime(2026, 1, 28, 9, 15, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FrozenClock(FIXED_TIME)


@pytest.fixture
def config():
    return DeltakitConfig(max_snapshot_size_mb=0.001, rate_limit_free=3, rate_limit_pro=50)


@pytest.fixture
def components(config, clock):
    built = build_components(config=config, clock=clock)
    yield built
    built.close()


@pytest.fixture
def client(components):
    return TestClient(create_app(components))


@pytest.fixture
def tenant_headers():
    return {"X-Tenant-Id": "tenant-1", "X-Tenant-Tier": "pro"}
