from __future__ import annotations

from typing import Optional, Tuple

from deltakit.common.errors import SnapshotNotFoundError
from deltakit.deltas.models import DiffResult
from deltakit.diff import calculate_similarity, categorize_changes, compute_diff, count_changes
from deltakit.diff.similarity import DEFAULT_MAX_CHARS
from deltakit.snapshot_store.models import DeltaRecord, SnapshotRecord
from deltakit.snapshot_store.service import SnapshotStorage


class DeltaService:
    def __init__(
        self,
        storage: SnapshotStorage,
        *,
        similarity_max_chars: Optional[int] = DEFAULT_MAX_CHARS,
    ) -> None:
        self._storage = storage
        self._similarity_max_chars = similarity_max_chars

    def _load_pair(
        self,
        endpoint_id: str,
        from_snapshot_id: str,
        to_snapshot_id: str,
    ) -> Tuple[SnapshotRecord, SnapshotRecord]:
        from_snapshot = self._storage.get_snapshot(endpoint_id, from_snapshot_id)
        to_snapshot = self._storage.get_snapshot(endpoint_id, to_snapshot_id)
        missing = [
            snapshot_id
            for snapshot_id, snapshot in ((from_snapshot_id, from_snapshot), (to_snapshot_id, to_snapshot))
            if snapshot is None
        ]
        if missing:
            raise SnapshotNotFoundError(
                f"snapshot(s) {', '.join(missing)} not found for endpoint {endpoint_id}"
            )
        return from_snapshot, to_snapshot

    def compare_snapshots(self, endpoint_id: str, from_snapshot_id: str, to_snapshot_id: str) -> DiffResult:
        from_snapshot, to_snapshot = self._load_pair(endpoint_id, from_snapshot_id, to_snapshot_id)
        operations = compute_diff(from_snapshot.data, to_snapshot.data)
        return DiffResult(
            from_snapshot=from_snapshot,
            to_snapshot=to_snapshot,
            operations=operations,
            changes_count=count_changes(operations),
            similarity_score=calculate_similarity(
                from_snapshot.data,
                to_snapshot.data,
                max_chars=self._similarity_max_chars,
            ),
            summary=categorize_changes(operations),
        )

    def compute_delta(self, from_snapshot_id: str, to_snapshot_id: str, endpoint_id: str) -> DeltaRecord:
        result = self.compare_snapshots(endpoint_id, from_snapshot_id, to_snapshot_id)
        return self._storage.create_delta(
            endpoint_id=endpoint_id,
            from_snapshot_id=from_snapshot_id,
            to_snapshot_id=to_snapshot_id,
            timestamp=result.to_snapshot.timestamp,
            operations=[operation.to_dict() for operation in result.operations],
            changes_count=result.changes_count,
            similarity_score=result.similarity_score,
        )
