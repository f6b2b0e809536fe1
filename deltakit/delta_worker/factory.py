from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from deltakit.delta_worker.determinism import deterministic_job_id
from deltakit.delta_worker.models import DeltaJob, DeltaJobStatus


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


class DeltaJobFactory:
    def __init__(self, *, max_attempts: int = 3) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts

    def create_job(
        self,
        *,
        endpoint_id: str,
        previous_snapshot_id: str,
        snapshot_id: str,
        scheduled_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> DeltaJob:
        return DeltaJob(
            job_id=deterministic_job_id(
                endpoint_id=endpoint_id,
                previous_snapshot_id=previous_snapshot_id,
                snapshot_id=snapshot_id,
            ),
            endpoint_id=endpoint_id,
            previous_snapshot_id=previous_snapshot_id,
            snapshot_id=snapshot_id,
            status=DeltaJobStatus.received,
            attempt=0,
            max_attempts=self._max_attempts,
            scheduled_at=scheduled_at or _now(),
            created_at=created_at or _now(),
        )
