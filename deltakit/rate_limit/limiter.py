from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from deltakit.common.clock import Clock
from deltakit.common.enums import Tier
from deltakit.common.errors import CounterStoreError
from deltakit.rate_limit.counter_store import CounterStore

logger = logging.getLogger(__name__)

DEFAULT_TIER_LIMITS = {
    Tier.free: 100,
    Tier.pro: 1000,
    Tier.enterprise: 10000,
}


@dataclass(frozen=True)
class RateLimitPolicy:
    limits: Dict[Tier, int] = field(default_factory=lambda: dict(DEFAULT_TIER_LIMITS))
    window_seconds: int = 3600

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        missing = set(Tier) - set(self.limits)
        if missing:
            raise ValueError(f"limits missing for tier(s): {sorted(tier.value for tier in missing)}")

    def limit_for(self, tier: Tier) -> int:
        return self.limits[tier]


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    limit: int
    reset_at: datetime

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_at.isoformat(),
        }


class FixedWindowRateLimiter:
    """Per-tenant request counter over wall-clock aligned windows.

    Each check performs one atomic increment against the counter store. The
    first increment in a window sets the key's expiry. When the store fails
    the request is allowed.
    """

    def __init__(
        self,
        store: CounterStore,
        policy: Optional[RateLimitPolicy] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._policy = policy or RateLimitPolicy()
        self._clock = clock or Clock()

    @property
    def policy(self) -> RateLimitPolicy:
        return self._policy

    def window_bounds(self, now: datetime) -> tuple[datetime, datetime]:
        window = self._policy.window_seconds
        epoch = int(now.timestamp())
        start = datetime.fromtimestamp(epoch - epoch % window, tz=timezone.utc)
        return start, start + timedelta(seconds=window)

    def window_key(self, tenant_key: str, now: datetime) -> str:
        return f"ratelimit:{tenant_key}:{int(now.timestamp()) // self._policy.window_seconds}"

    def check(self, tenant_key: str, tier: Tier) -> RateLimitDecision:
        tier = Tier(tier)
        limit = self._policy.limit_for(tier)
        now = self._clock.now()
        _, reset_at = self.window_bounds(now)
        key = self.window_key(tenant_key, now)
        try:
            count = self._store.incr(key)
            if count == 1:
                self._store.expire(key, self._policy.window_seconds)
        except (CounterStoreError, ConnectionError, TimeoutError) as exc:
            logger.warning("rate limit check failed open for %s: %s", tenant_key, exc)
            return RateLimitDecision(allowed=True, remaining=limit, limit=limit, reset_at=reset_at)
        return RateLimitDecision(
            allowed=count <= limit,
            remaining=max(0, limit - count),
            limit=limit,
            reset_at=reset_at,
        )
