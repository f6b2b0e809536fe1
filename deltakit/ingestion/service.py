from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from deltakit.common.clock import Clock
from deltakit.common.enums import SnapshotSource, Tier
from deltakit.common.errors import PayloadTooLargeError, PayloadValidationError, RateLimitExceededError
from deltakit.common.hashes import content_hash, json_size_bytes
from deltakit.delta_worker.factory import DeltaJobFactory
from deltakit.delta_worker.queue import DeltaQueue
from deltakit.ingestion.models import IngestionEvent, IngestionResult
from deltakit.rate_limit.limiter import FixedWindowRateLimiter, RateLimitDecision
from deltakit.snapshot_store.service import SnapshotStorage

logger = logging.getLogger(__name__)

DEFAULT_MAX_SNAPSHOT_BYTES = 10 * 1024 * 1024
DEFAULT_DEDUP_INTERVAL = timedelta(hours=1)


class IngestionObservability:
    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or Clock()
        self._events: List[IngestionEvent] = []

    def record(self, event_type: str, **details: Any) -> None:
        self._events.append(
            IngestionEvent(
                event_type=event_type,
                details=details,
                recorded_at=self._clock.now(),
            )
        )

    def events(self) -> List[IngestionEvent]:
        return list(self._events)


class IngestionPipeline:
    def __init__(
        self,
        *,
        storage: SnapshotStorage,
        queue: DeltaQueue,
        job_factory: Optional[DeltaJobFactory] = None,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        max_snapshot_bytes: int = DEFAULT_MAX_SNAPSHOT_BYTES,
        dedup_interval: timedelta = DEFAULT_DEDUP_INTERVAL,
        clock: Optional[Clock] = None,
        observability: Optional[IngestionObservability] = None,
    ) -> None:
        if max_snapshot_bytes <= 0:
            raise ValueError("max_snapshot_bytes must be positive")
        self._storage = storage
        self._queue = queue
        self._job_factory = job_factory or DeltaJobFactory()
        self._rate_limiter = rate_limiter
        self._max_snapshot_bytes = max_snapshot_bytes
        self._dedup_interval = dedup_interval
        self._clock = clock or Clock()
        self._observability = observability or IngestionObservability(self._clock)

    def _enforce_rate_limit(self, tenant_id: str, tier: Tier) -> RateLimitDecision:
        decision = self._rate_limiter.check(tenant_id, tier)
        if decision.allowed:
            return decision
        self._observability.record("rate_limited", tenant_id=tenant_id, limit=decision.limit)
        raise RateLimitExceededError(
            f"Rate limit exceeded. Limit: {decision.limit} requests per window. "
            f"Resets at {decision.reset_at.isoformat()}",
            limit=decision.limit,
            remaining=decision.remaining,
            reset_at=decision.reset_at,
        )

    def ingest(
        self,
        endpoint_id: str,
        data: Dict[str, Any],
        source: SnapshotSource = SnapshotSource.sdk,
        metadata: Optional[Dict[str, Any]] = None,
        *,
        tenant_id: Optional[str] = None,
        tier: Tier = Tier.free,
    ) -> IngestionResult:
        decision = None
        if self._rate_limiter is not None and tenant_id is not None:
            decision = self._enforce_rate_limit(tenant_id, tier)

        if not isinstance(data, dict):
            raise PayloadValidationError("snapshot data must be a JSON object")
        size_bytes = json_size_bytes(data)
        if size_bytes > self._max_snapshot_bytes:
            raise PayloadTooLargeError(
                f"Snapshot data exceeds maximum size of {self._max_snapshot_bytes} bytes",
                size_bytes=size_bytes,
                max_bytes=self._max_snapshot_bytes,
            )

        digest = content_hash(data)
        previous = self._storage.get_latest_snapshot(endpoint_id)
        now = self._clock.now()
        if (
            previous is not None
            and previous.content_hash == digest
            and now - previous.timestamp < self._dedup_interval
        ):
            self._observability.record(
                "duplicate",
                endpoint_id=endpoint_id,
                snapshot_id=previous.snapshot_id,
                content_hash=digest,
            )
            return IngestionResult(
                snapshot=previous,
                is_duplicate=True,
                queued_for_delta=False,
                rate_limit=decision,
            )

        snapshot = self._storage.create_snapshot(
            endpoint_id=endpoint_id,
            data=data,
            content_hash=digest,
            size_bytes=size_bytes,
            source=SnapshotSource(source),
            metadata=metadata,
        )
        self._observability.record(
            "snapshot_created",
            endpoint_id=endpoint_id,
            snapshot_id=snapshot.snapshot_id,
            size_bytes=size_bytes,
        )

        queued = False
        if previous is not None:
            queued = self._enqueue_delta(previous.snapshot_id, snapshot.snapshot_id, endpoint_id)
        return IngestionResult(
            snapshot=snapshot,
            is_duplicate=False,
            queued_for_delta=queued,
            rate_limit=decision,
        )

    def _enqueue_delta(self, previous_snapshot_id: str, snapshot_id: str, endpoint_id: str) -> bool:
        now = self._clock.now()
        job = self._job_factory.create_job(
            endpoint_id=endpoint_id,
            previous_snapshot_id=previous_snapshot_id,
            snapshot_id=snapshot_id,
            scheduled_at=now,
            created_at=now,
        )
        try:
            self._queue.enqueue(job, now)
        except Exception as exc:
            logger.warning("failed to queue delta computation for snapshot %s: %s", snapshot_id, exc)
            self._observability.record(
                "enqueue_failed",
                endpoint_id=endpoint_id,
                snapshot_id=snapshot_id,
                error_class=exc.__class__.__name__,
            )
            return False
        self._observability.record("delta_queued", endpoint_id=endpoint_id, job_id=job.job_id)
        return True
