from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Protocol

from deltakit.common.clock import Clock
from deltakit.common.errors import CounterStoreError


class CounterStore(Protocol):
    def incr(self, key: str) -> int: ...

    def expire(self, key: str, seconds: int) -> None: ...

    def close(self) -> None: ...


@dataclass
class _Counter:
    value: int = 0
    expires_at: Optional[datetime] = None


class InMemoryCounterStore:
    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or Clock()
        self._lock = threading.Lock()
        self._counters: Dict[str, _Counter] = {}

    def _live(self, key: str, now: datetime) -> _Counter:
        counter = self._counters.get(key)
        if counter is None or (counter.expires_at is not None and counter.expires_at <= now):
            counter = _Counter()
            self._counters[key] = counter
        return counter

    def incr(self, key: str) -> int:
        with self._lock:
            counter = self._live(key, self._clock.now())
            counter.value += 1
            return counter.value

    def expire(self, key: str, seconds: int) -> None:
        with self._lock:
            now = self._clock.now()
            counter = self._live(key, now)
            counter.expires_at = now + timedelta(seconds=seconds)

    def get(self, key: str) -> int:
        with self._lock:
            return self._live(key, self._clock.now()).value

    def close(self) -> None:
        with self._lock:
            self._counters.clear()


class RedisCounterStore:
    def __init__(self, *, connection) -> None:
        self._connection = connection

    @classmethod
    def from_url(cls, url: str) -> "RedisCounterStore":
        from redis import Redis

        return cls(connection=Redis.from_url(url))

    def incr(self, key: str) -> int:
        from redis.exceptions import RedisError

        try:
            return int(self._connection.incr(key))
        except RedisError as exc:
            raise CounterStoreError(f"incr failed for {key}: {exc}") from exc

    def expire(self, key: str, seconds: int) -> None:
        from redis.exceptions import RedisError

        try:
            self._connection.expire(key, seconds)
        except RedisError as exc:
            raise CounterStoreError(f"expire failed for {key}: {exc}") from exc

    def close(self) -> None:
        self._connection.close()
