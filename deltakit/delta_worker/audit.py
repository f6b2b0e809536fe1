from datetime import datetime, timezone
from typing import Any, Dict, Optional

from deltakit.delta_worker.models import DeltaJob, JobAuditRecord
from deltakit.delta_worker.repository import AuditLogRepository


class AuditLogger:
    def __init__(self, repository: AuditLogRepository) -> None:
        self._repository = repository

    def log(
        self,
        *,
        job: DeltaJob,
        outcome: str,
        params: Dict[str, Any],
        error_class: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> JobAuditRecord:
        record = JobAuditRecord(
            audit_id=self._repository.new_id(),
            job_id=job.job_id,
            endpoint_id=job.endpoint_id,
            outcome=outcome,
            params=params,
            error_class=error_class,
            attempt=job.attempt,
            created_at=created_at or datetime.now(tz=timezone.utc),
        )
        self._repository.add(record)
        return record
