from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from deltakit.common.enums import SnapshotSource
from deltakit.rate_limit.limiter import RateLimitDecision
from deltakit.snapshot_store.models import SnapshotRecord


class SnapshotIngestRequest(BaseModel):
    endpoint_id: str = Field(min_length=1)
    data: Dict[str, Any]
    source: SnapshotSource = SnapshotSource.sdk
    metadata: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class IngestionResult:
    snapshot: SnapshotRecord
    is_duplicate: bool
    queued_for_delta: bool
    rate_limit: Optional[RateLimitDecision] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot": self.snapshot.summary(),
            "is_duplicate": self.is_duplicate,
            "queued_for_delta": self.queued_for_delta,
        }


@dataclass(frozen=True)
class IngestionEvent:
    event_type: str
    details: Dict[str, Any]
    recorded_at: datetime
