from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Tuple
from uuid import uuid4

from deltakit.common.clock import Clock
from deltakit.common.enums import SnapshotSource
from deltakit.snapshot_store.models import DeltaRecord, DeltaStats, SnapshotRecord, SnapshotStats
from deltakit.snapshot_store.repository import DeltaRepository, SnapshotRepository

STATS_SAMPLE_LIMIT = 1000


class SnapshotStorage(Protocol):
    def get_latest_snapshot(self, endpoint_id: str) -> Optional[SnapshotRecord]: ...

    def create_snapshot(
        self,
        *,
        endpoint_id: str,
        data: Dict[str, Any],
        content_hash: str,
        size_bytes: int,
        source: SnapshotSource,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SnapshotRecord: ...

    def get_snapshot(self, endpoint_id: str, snapshot_id: str) -> Optional[SnapshotRecord]: ...

    def create_delta(
        self,
        *,
        endpoint_id: str,
        from_snapshot_id: str,
        to_snapshot_id: str,
        timestamp: datetime,
        operations: List[Dict[str, Any]],
        changes_count: int,
        similarity_score: float,
    ) -> DeltaRecord: ...


def _page(records: list, limit: int, offset: int) -> list:
    if limit <= 0:
        raise ValueError("limit must be positive")
    if offset < 0:
        raise ValueError("offset must not be negative")
    return records[offset : offset + limit]


class SnapshotStoreService:
    """In-process storage for snapshots and deltas.

    Snapshots are immutable once written. Deltas are unique per ordered
    ``(from_snapshot_id, to_snapshot_id)`` pair; writing the same pair twice
    returns the row created first.
    """

    def __init__(
        self,
        snapshots: Optional[SnapshotRepository] = None,
        deltas: Optional[DeltaRepository] = None,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        self._snapshots = snapshots or SnapshotRepository()
        self._deltas = deltas or DeltaRepository()
        self._clock = clock or Clock()

    def get_latest_snapshot(self, endpoint_id: str) -> Optional[SnapshotRecord]:
        return self._snapshots.latest_for_endpoint(endpoint_id)

    def create_snapshot(
        self,
        *,
        endpoint_id: str,
        data: Dict[str, Any],
        content_hash: str,
        size_bytes: int,
        source: SnapshotSource,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SnapshotRecord:
        record = SnapshotRecord(
            snapshot_id=str(uuid4()),
            endpoint_id=endpoint_id,
            timestamp=self._clock.now(),
            data=data,
            content_hash=content_hash,
            size_bytes=size_bytes,
            source=source,
            metadata=metadata or {},
        )
        self._snapshots.add(record)
        return record

    def get_snapshot(self, endpoint_id: str, snapshot_id: str) -> Optional[SnapshotRecord]:
        snapshot = self._snapshots.get(snapshot_id)
        if snapshot is None or snapshot.endpoint_id != endpoint_id:
            return None
        return snapshot

    def create_delta(
        self,
        *,
        endpoint_id: str,
        from_snapshot_id: str,
        to_snapshot_id: str,
        timestamp: datetime,
        operations: List[Dict[str, Any]],
        changes_count: int,
        similarity_score: float,
    ) -> DeltaRecord:
        record = DeltaRecord(
            delta_id=str(uuid4()),
            endpoint_id=endpoint_id,
            from_snapshot_id=from_snapshot_id,
            to_snapshot_id=to_snapshot_id,
            timestamp=timestamp,
            operations=operations,
            changes_count=changes_count,
            similarity_score=similarity_score,
        )
        stored, _ = self._deltas.add_if_absent(record)
        return stored

    def get_delta(self, from_snapshot_id: str, to_snapshot_id: str) -> Optional[DeltaRecord]:
        return self._deltas.get_by_pair(from_snapshot_id, to_snapshot_id)

    def list_snapshots(
        self,
        *,
        endpoint_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[SnapshotRecord], int]:
        records = self._snapshots.query(endpoint_id=endpoint_id, start=start, end=end)
        records.sort(key=lambda record: (record.timestamp, record.snapshot_id), reverse=True)
        return _page(records, limit, offset), len(records)

    def list_deltas(
        self,
        *,
        endpoint_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[DeltaRecord], int]:
        records = self._deltas.query(endpoint_id=endpoint_id, start=start, end=end)
        records.sort(key=lambda record: (record.timestamp, record.delta_id), reverse=True)
        return _page(records, limit, offset), len(records)

    def snapshot_stats(self, endpoint_id: str) -> SnapshotStats:
        snapshots, total = self.list_snapshots(endpoint_id=endpoint_id, limit=STATS_SAMPLE_LIMIT)
        if not snapshots:
            return SnapshotStats(
                total_count=0,
                total_bytes=0,
                unique_hashes=0,
                oldest_timestamp=None,
                latest_timestamp=None,
            )
        timestamps = [snapshot.timestamp for snapshot in snapshots]
        return SnapshotStats(
            total_count=total,
            total_bytes=sum(snapshot.size_bytes for snapshot in snapshots),
            unique_hashes=len({snapshot.content_hash for snapshot in snapshots}),
            oldest_timestamp=min(timestamps),
            latest_timestamp=max(timestamps),
        )

    def delta_stats(self, endpoint_id: str) -> DeltaStats:
        deltas, _ = self.list_deltas(endpoint_id=endpoint_id, limit=STATS_SAMPLE_LIMIT)
        if not deltas:
            return DeltaStats(total_count=0, avg_changes=0.0, avg_similarity=0.0, max_changes=0, min_changes=0)
        changes = [delta.changes_count for delta in deltas]
        return DeltaStats(
            total_count=len(deltas),
            avg_changes=sum(changes) / len(deltas),
            avg_similarity=sum(delta.similarity_score for delta in deltas) / len(deltas),
            max_changes=max(changes),
            min_changes=min(changes),
        )
