from deltakit.rate_limit.counter_store import CounterStore, InMemoryCounterStore, RedisCounterStore
from deltakit.rate_limit.limiter import FixedWindowRateLimiter, RateLimitDecision, RateLimitPolicy

__all__ = [
    "CounterStore",
    "FixedWindowRateLimiter",
    "InMemoryCounterStore",
    "RateLimitDecision",
    "RateLimitPolicy",
    "RedisCounterStore",
]
