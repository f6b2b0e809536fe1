from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from deltakit.common.enums import SnapshotSource


class SnapshotRecord(BaseModel):
    snapshot_id: str
    endpoint_id: str
    timestamp: datetime
    data: Dict[str, Any]
    content_hash: str
    size_bytes: int
    source: SnapshotSource
    metadata: Dict[str, Any] = Field(default_factory=dict)
    immutable: bool = True

    def summary(self) -> Dict[str, Any]:
        return {
            "snapshot_id": self.snapshot_id,
            "endpoint_id": self.endpoint_id,
            "timestamp": self.timestamp.isoformat(),
            "content_hash": self.content_hash,
            "size_bytes": self.size_bytes,
            "source": self.source.value,
        }


class DeltaRecord(BaseModel):
    delta_id: str
    endpoint_id: str
    from_snapshot_id: str
    to_snapshot_id: str
    timestamp: datetime
    operations: List[Dict[str, Any]]
    changes_count: int
    similarity_score: float = Field(ge=0.0, le=1.0)
    immutable: bool = True


@dataclass(frozen=True)
class SnapshotStats:
    total_count: int
    total_bytes: int
    unique_hashes: int
    oldest_timestamp: Optional[datetime]
    latest_timestamp: Optional[datetime]


@dataclass(frozen=True)
class DeltaStats:
    total_count: int
    avg_changes: float
    avg_similarity: float
    max_changes: int
    min_changes: int
