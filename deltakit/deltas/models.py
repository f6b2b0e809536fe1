from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from deltakit.diff.models import ChangeSummary, PatchOperation
from deltakit.snapshot_store.models import SnapshotRecord


@dataclass(frozen=True)
class DiffResult:
    from_snapshot: SnapshotRecord
    to_snapshot: SnapshotRecord
    operations: List[PatchOperation]
    changes_count: int
    similarity_score: float
    summary: ChangeSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_snapshot": self.from_snapshot.summary(),
            "to_snapshot": self.to_snapshot.summary(),
            "diff": [operation.to_dict() for operation in self.operations],
            "changes_count": self.changes_count,
            "similarity_score": self.similarity_score,
            "summary": self.summary.to_dict(),
        }
