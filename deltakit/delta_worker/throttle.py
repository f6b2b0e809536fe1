from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Optional


class ThroughputThrottle:
    """Admits at most ``max_per_period`` starts in any sliding ``period``."""

    def __init__(
        self,
        max_per_period: int,
        *,
        period: float = 1.0,
        timer: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        if max_per_period < 1:
            raise ValueError("max_per_period must be at least 1")
        if period <= 0:
            raise ValueError("period must be positive")
        self._max = max_per_period
        self._period = period
        self._timer = timer or time.monotonic
        self._sleep = sleep or time.sleep
        self._starts: Deque[float] = deque()
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """Block until a slot is free; return the seconds spent waiting."""
        waited = 0.0
        while True:
            with self._lock:
                now = self._timer()
                while self._starts and now - self._starts[0] >= self._period:
                    self._starts.popleft()
                if len(self._starts) < self._max:
                    self._starts.append(now)
                    return waited
                delay = self._period - (now - self._starts[0])
            self._sleep(delay)
            waited += delay
