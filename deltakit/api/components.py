from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from deltakit.common.clock import Clock
from deltakit.common.config import DeltakitConfig, load_config
from deltakit.delta_worker.audit import AuditLogger
from deltakit.delta_worker.factory import DeltaJobFactory
from deltakit.delta_worker.queue import InMemoryDeltaQueue
from deltakit.delta_worker.repository import AuditLogRepository, DeltaJobRepository
from deltakit.delta_worker.throttle import ThroughputThrottle
from deltakit.delta_worker.worker import DeltaWorker
from deltakit.deltas.service import DeltaService
from deltakit.ingestion.service import IngestionPipeline
from deltakit.rate_limit.counter_store import CounterStore, InMemoryCounterStore, RedisCounterStore
from deltakit.rate_limit.limiter import FixedWindowRateLimiter, RateLimitPolicy
from deltakit.snapshot_store.service import SnapshotStoreService


@dataclass
class Components:
    config: DeltakitConfig
    store: SnapshotStoreService
    queue: InMemoryDeltaQueue
    counter_store: CounterStore
    rate_limiter: FixedWindowRateLimiter
    pipeline: IngestionPipeline
    delta_service: DeltaService
    worker: DeltaWorker
    audit_repository: AuditLogRepository

    def close(self) -> None:
        self.worker.close()
        self.queue.close()
        self.counter_store.close()


def build_components(
    *,
    config: Optional[DeltakitConfig] = None,
    clock: Optional[Clock] = None,
    counter_store: Optional[CounterStore] = None,
) -> Components:
    """Wire the in-process pipeline.

    The counter store moves to Redis when ``REDIS_URL`` is set; snapshots,
    deltas and the delta queue stay in process so the worker can consume
    them directly.
    """
    cfg = config or load_config()
    clock = clock or Clock()
    if counter_store is None:
        if cfg.redis_url:
            counter_store = RedisCounterStore.from_url(cfg.redis_url)
        else:
            counter_store = InMemoryCounterStore(clock)

    store = SnapshotStoreService(clock=clock)
    queue = InMemoryDeltaQueue(dead_letter_retention=cfg.dead_letter_retention)
    rate_limiter = FixedWindowRateLimiter(
        counter_store,
        RateLimitPolicy(limits=cfg.tier_limits(), window_seconds=cfg.rate_limit_window_seconds),
        clock,
    )
    pipeline = IngestionPipeline(
        storage=store,
        queue=queue,
        job_factory=DeltaJobFactory(max_attempts=cfg.job_max_attempts),
        rate_limiter=rate_limiter,
        max_snapshot_bytes=cfg.max_snapshot_bytes,
        dedup_interval=cfg.dedup_interval,
        clock=clock,
    )
    delta_service = DeltaService(store, similarity_max_chars=cfg.similarity_max_chars)
    audit_repository = AuditLogRepository()
    worker = DeltaWorker(
        delta_service=delta_service,
        queue=queue,
        repository=DeltaJobRepository(),
        audit_logger=AuditLogger(audit_repository),
        clock=clock,
        concurrency=cfg.worker_concurrency,
        backoff_seconds=cfg.job_backoff_seconds,
        throttle=ThroughputThrottle(cfg.worker_rate_limit),
    )
    return Components(
        config=cfg,
        store=store,
        queue=queue,
        counter_store=counter_store,
        rate_limiter=rate_limiter,
        pipeline=pipeline,
        delta_service=delta_service,
        worker=worker,
        audit_repository=audit_repository,
    )

