from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from deltakit.snapshot_store.models import DeltaRecord, SnapshotRecord


def _in_range(timestamp: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is not None and timestamp < start:
        return False
    if end is not None and timestamp > end:
        return False
    return True


class SnapshotRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: Dict[str, SnapshotRecord] = {}
        self._by_endpoint: Dict[str, List[str]] = {}

    def add(self, snapshot: SnapshotRecord) -> None:
        with self._lock:
            if snapshot.snapshot_id in self._snapshots:
                raise ValueError(f"snapshot {snapshot.snapshot_id} already exists")
            self._snapshots[snapshot.snapshot_id] = snapshot
            self._by_endpoint.setdefault(snapshot.endpoint_id, []).append(snapshot.snapshot_id)

    def get(self, snapshot_id: str) -> Optional[SnapshotRecord]:
        return self._snapshots.get(snapshot_id)

    def latest_for_endpoint(self, endpoint_id: str) -> Optional[SnapshotRecord]:
        with self._lock:
            ids = self._by_endpoint.get(endpoint_id)
            if not ids:
                return None
            return self._snapshots[ids[-1]]

    def query(
        self,
        *,
        endpoint_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[SnapshotRecord]:
        with self._lock:
            if endpoint_id is not None:
                records = [self._snapshots[sid] for sid in self._by_endpoint.get(endpoint_id, [])]
            else:
                records = list(self._snapshots.values())
        return [record for record in records if _in_range(record.timestamp, start, end)]


class DeltaRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._deltas: Dict[str, DeltaRecord] = {}
        self._by_pair: Dict[Tuple[str, str], str] = {}

    def add_if_absent(self, delta: DeltaRecord) -> Tuple[DeltaRecord, bool]:
        key = (delta.from_snapshot_id, delta.to_snapshot_id)
        with self._lock:
            existing_id = self._by_pair.get(key)
            if existing_id is not None:
                return self._deltas[existing_id], False
            self._deltas[delta.delta_id] = delta
            self._by_pair[key] = delta.delta_id
            return delta, True

    def get(self, delta_id: str) -> Optional[DeltaRecord]:
        return self._deltas.get(delta_id)

    def get_by_pair(self, from_snapshot_id: str, to_snapshot_id: str) -> Optional[DeltaRecord]:
        delta_id = self._by_pair.get((from_snapshot_id, to_snapshot_id))
        return self._deltas.get(delta_id) if delta_id else None

    def query(
        self,
        *,
        endpoint_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[DeltaRecord]:
        with self._lock:
            records = list(self._deltas.values())
        return [
            record
            for record in records
            if (endpoint_id is None or record.endpoint_id == endpoint_id)
            and _in_range(record.timestamp, start, end)
        ]
