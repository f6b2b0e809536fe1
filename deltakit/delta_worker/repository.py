from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

from deltakit.delta_worker.models import DeltaJob, DeltaJobStatus, JobAuditRecord, JobTransition


class DeltaJobRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: Dict[str, DeltaJob] = {}
        self._transitions: List[JobTransition] = []

    def add(self, job: DeltaJob) -> None:
        with self._lock:
            self._jobs[job.job_id] = job

    def get(self, job_id: str) -> Optional[DeltaJob]:
        return self._jobs.get(job_id)

    def list(self) -> List[DeltaJob]:
        with self._lock:
            return list(self._jobs.values())

    def update_status(self, job_id: str, status: DeltaJobStatus, changed_at: datetime) -> None:
        with self._lock:
            job = self._jobs[job_id]
            from_status = job.status
            job.status = status
            self._transitions.append(
                JobTransition(
                    job_id=job_id,
                    from_status=from_status,
                    to_status=status,
                    changed_at=changed_at,
                )
            )

    def increment_attempt(self, job_id: str) -> int:
        with self._lock:
            job = self._jobs[job_id]
            job.attempt += 1
            return job.attempt

    def transitions(self, job_id: Optional[str] = None) -> List[JobTransition]:
        with self._lock:
            return [item for item in self._transitions if job_id is None or item.job_id == job_id]


class AuditLogRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: List[JobAuditRecord] = []

    def add(self, record: JobAuditRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list(self) -> List[JobAuditRecord]:
        with self._lock:
            return list(self._records)

    def new_id(self) -> str:
        return str(uuid4())
