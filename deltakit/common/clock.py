from __future__ import annotations

from datetime import datetime, timedelta, timezone


class Clock:
    """UTC wall clock read by ingestion, the rate limiter and the delta worker."""

    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


class FrozenClock(Clock):
    """A clock that only moves when ``advance`` is called."""

    def __init__(self, start: datetime) -> None:
        if start.tzinfo is None:
            raise ValueError("FrozenClock requires a timezone-aware start")
        self._current = start.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 0.0, *, hours: float = 0.0) -> datetime:
        self._current += timedelta(seconds=seconds, hours=hours)
        return self._current
