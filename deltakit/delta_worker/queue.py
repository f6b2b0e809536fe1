from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Protocol

from deltakit.common.errors import QueueError
from deltakit.delta_worker.models import DeadLetterEntry, DeltaJob

DEAD_LETTER_RETENTION = timedelta(hours=24)


@dataclass(frozen=True)
class QueueItem:
    job_id: str
    scheduled_at: datetime


class DeltaQueue(Protocol):
    def enqueue(self, job: DeltaJob, scheduled_at: datetime) -> str: ...

    def list(self) -> List[QueueItem]: ...

    def pop_due(self, now: datetime) -> List[DeltaJob]: ...

    def dead_letter(self, job: DeltaJob, *, error_class: str, reason: str, now: datetime) -> DeadLetterEntry: ...

    def dead_letters(self) -> List[DeadLetterEntry]: ...

    def purge_dead_letters(self, now: datetime) -> int: ...

    def close(self) -> None: ...


class InMemoryDeltaQueue:
    def __init__(self, *, dead_letter_retention: timedelta = DEAD_LETTER_RETENTION) -> None:
        if dead_letter_retention < DEAD_LETTER_RETENTION:
            raise ValueError("dead letters must be retained for at least 24 hours")
        self._lock = threading.Lock()
        self._items: List[QueueItem] = []
        self._jobs: Dict[str, DeltaJob] = {}
        self._dead_letters: List[DeadLetterEntry] = []
        self._retention = dead_letter_retention
        self._closed = False

    def enqueue(self, job: DeltaJob, scheduled_at: datetime) -> str:
        with self._lock:
            if self._closed:
                raise QueueError("queue is closed")
            self._items = [item for item in self._items if item.job_id != job.job_id]
            job.scheduled_at = scheduled_at
            self._jobs[job.job_id] = job
            self._items.append(QueueItem(job_id=job.job_id, scheduled_at=scheduled_at))
            self._items.sort(key=lambda item: (item.scheduled_at, item.job_id))
        return job.job_id

    def list(self) -> List[QueueItem]:
        with self._lock:
            return list(self._items)

    def get(self, job_id: str) -> Optional[DeltaJob]:
        return self._jobs.get(job_id)

    def pop_due(self, now: datetime) -> List[DeltaJob]:
        with self._lock:
            due = [item for item in self._items if item.scheduled_at <= now]
            self._items = [item for item in self._items if item.scheduled_at > now]
            return [self._jobs[item.job_id] for item in due]

    def dead_letter(self, job: DeltaJob, *, error_class: str, reason: str, now: datetime) -> DeadLetterEntry:
        entry = DeadLetterEntry(
            job=job,
            error_class=error_class,
            reason=reason,
            dead_lettered_at=now,
            retain_until=now + self._retention,
        )
        with self._lock:
            self._dead_letters.append(entry)
        return entry

    def dead_letters(self) -> List[DeadLetterEntry]:
        with self._lock:
            return list(self._dead_letters)

    def purge_dead_letters(self, now: datetime) -> int:
        with self._lock:
            kept = [entry for entry in self._dead_letters if entry.retain_until > now]
            purged = len(self._dead_letters) - len(kept)
            self._dead_letters = kept
        return purged

    def close(self) -> None:
        with self._lock:
            self._closed = True

