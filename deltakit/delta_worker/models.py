from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class DeltaJobStatus(str, Enum):
    received = "received"
    processing = "processing"
    completed = "completed"
    retrying = "retrying"
    dead_lettered = "dead_lettered"


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class DeltaJob:
    job_id: str
    endpoint_id: str
    previous_snapshot_id: str
    snapshot_id: str
    status: DeltaJobStatus = DeltaJobStatus.received
    attempt: int = 0
    max_attempts: int = 3
    scheduled_at: datetime = field(default_factory=_now)
    created_at: datetime = field(default_factory=_now)

    def payload(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "endpoint_id": self.endpoint_id,
            "previous_snapshot_id": self.previous_snapshot_id,
            "snapshot_id": self.snapshot_id,
            "max_attempts": self.max_attempts,
        }


@dataclass(frozen=True)
class JobTransition:
    job_id: str
    from_status: DeltaJobStatus
    to_status: DeltaJobStatus
    changed_at: datetime


@dataclass(frozen=True)
class JobAuditRecord:
    audit_id: str
    job_id: str
    endpoint_id: str
    outcome: str
    params: Dict[str, Any]
    error_class: Optional[str]
    attempt: int
    created_at: datetime


@dataclass(frozen=True)
class DeadLetterEntry:
    job: DeltaJob
    error_class: str
    reason: str
    dead_lettered_at: datetime
    retain_until: datetime
