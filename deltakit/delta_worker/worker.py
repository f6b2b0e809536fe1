from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any, Dict, List, Optional

from deltakit.common.clock import Clock
from deltakit.common.errors import NotFoundError, QueueError, StorageError
from deltakit.delta_worker.audit import AuditLogger
from deltakit.delta_worker.models import DeltaJob, DeltaJobStatus
from deltakit.delta_worker.queue import DeltaQueue
from deltakit.delta_worker.repository import DeltaJobRepository
from deltakit.delta_worker.throttle import ThroughputThrottle
from deltakit.deltas.service import DeltaService

logger = logging.getLogger(__name__)


class DeltaWorker:
    """Consumes delta jobs from the queue.

    A job moves ``received -> processing`` and then ends ``completed`` or
    ``dead_lettered``; a ``StorageError`` sends it through ``retrying`` back
    onto the queue with exponential backoff until ``max_attempts`` is spent.
    Missing snapshots are dead-lettered on the first attempt.
    """

    def __init__(
        self,
        *,
        delta_service: DeltaService,
        queue: DeltaQueue,
        repository: DeltaJobRepository,
        audit_logger: AuditLogger,
        clock: Optional[Clock] = None,
        concurrency: int = 5,
        rate_limit_per_second: int = 100,
        backoff_seconds: float = 1.0,
        throttle: Optional[ThroughputThrottle] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._delta_service = delta_service
        self._queue = queue
        self._repository = repository
        self._audit_logger = audit_logger
        self._clock = clock or Clock()
        self._concurrency = concurrency
        self._backoff_seconds = backoff_seconds
        self._throttle = throttle or ThroughputThrottle(rate_limit_per_second)
        self._executor = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="delta-worker")

    def _track(self, job: DeltaJob) -> DeltaJob:
        tracked = self._repository.get(job.job_id)
        if tracked is None:
            self._repository.add(job)
            return job
        return tracked

    def _params(self, job: DeltaJob, **extra: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "previous_snapshot_id": job.previous_snapshot_id,
            "snapshot_id": job.snapshot_id,
        }
        params.update(extra)
        return params

    def backoff_for(self, attempt: int) -> timedelta:
        return timedelta(seconds=self._backoff_seconds * (2 ** (attempt - 1)))

    def _schedule_retry(self, job: DeltaJob, exc: Exception, attempt: int) -> DeltaJobStatus:
        now = self._clock.now()
        retry_at = now + self.backoff_for(attempt)
        try:
            self._queue.enqueue(job, retry_at)
        except QueueError as enqueue_exc:
            logger.error("could not requeue delta job %s: %s", job.job_id, enqueue_exc)
            return self._dead_letter(job, enqueue_exc)
        self._repository.update_status(job.job_id, DeltaJobStatus.retrying, now)
        self._audit_logger.log(
            job=job,
            outcome="retrying",
            error_class=exc.__class__.__name__,
            params=self._params(job, reason=str(exc), retry_at=retry_at.isoformat()),
            created_at=now,
        )
        logger.info("delta job %s attempt %d failed, retrying at %s", job.job_id, attempt, retry_at.isoformat())
        return DeltaJobStatus.retrying

    def _dead_letter(self, job: DeltaJob, exc: Exception) -> DeltaJobStatus:
        now = self._clock.now()
        self._repository.update_status(job.job_id, DeltaJobStatus.dead_lettered, now)
        self._queue.dead_letter(job, error_class=exc.__class__.__name__, reason=str(exc), now=now)
        self._audit_logger.log(
            job=job,
            outcome="dead_lettered",
            error_class=exc.__class__.__name__,
            params=self._params(job, reason=str(exc)),
            created_at=now,
        )
        logger.error("delta job %s dead-lettered after %d attempt(s): %s", job.job_id, job.attempt, exc)
        return DeltaJobStatus.dead_lettered

    def process_job(self, job: DeltaJob) -> DeltaJobStatus:
        job = self._track(job)
        if job.status in (DeltaJobStatus.completed, DeltaJobStatus.dead_lettered):
            return job.status

        self._repository.update_status(job.job_id, DeltaJobStatus.processing, self._clock.now())
        attempt = self._repository.increment_attempt(job.job_id)

        try:
            delta = self._delta_service.compute_delta(job.previous_snapshot_id, job.snapshot_id, job.endpoint_id)
        except NotFoundError as exc:
            return self._dead_letter(job, exc)
        except StorageError as exc:
            if attempt < job.max_attempts:
                return self._schedule_retry(job, exc, attempt)
            return self._dead_letter(job, exc)
        except Exception as exc:
            logger.exception("unexpected failure in delta job %s", job.job_id)
            return self._dead_letter(job, exc)

        now = self._clock.now()
        self._repository.update_status(job.job_id, DeltaJobStatus.completed, now)
        self._audit_logger.log(
            job=job,
            outcome="completed",
            params=self._params(
                job,
                delta_id=delta.delta_id,
                changes_count=delta.changes_count,
                similarity_score=delta.similarity_score,
            ),
            created_at=now,
        )
        logger.info(
            "delta job %s completed: %d changes, similarity %.2f",
            job.job_id,
            delta.changes_count,
            delta.similarity_score,
        )
        return DeltaJobStatus.completed

    def run_pending(self) -> List[DeltaJobStatus]:
        jobs = self._queue.pop_due(self._clock.now())
        futures = []
        for job in jobs:
            self._throttle.acquire()
            futures.append((job, self._executor.submit(self.process_job, job)))
        statuses = []
        for job, future in futures:
            try:
                statuses.append(future.result())
            except Exception:
                logger.exception("delta job %s failed outside the retry policy", job.job_id)
        return statuses

    def run_forever(self, stop_event: threading.Event, *, poll_interval: float = 1.0) -> None:
        logger.info("delta worker started (concurrency=%d)", self._concurrency)
        while not stop_event.is_set():
            try:
                processed = self.run_pending()
                purged = self._queue.purge_dead_letters(self._clock.now())
            except Exception:
                logger.exception("delta worker poll failed")
                stop_event.wait(poll_interval)
                continue
            if purged:
                logger.info("purged %d expired dead letter(s)", purged)
            if not processed:
                stop_event.wait(poll_interval)
        logger.info("delta worker stopped")

    def close(self) -> None:
        self._executor.shutdown(wait=True)
