from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional

from deltakit.common.enums import Tier


@dataclass(frozen=True)
class DeltakitConfig:
    max_snapshot_size_mb: float = 10.0
    dedup_interval_seconds: int = 3600
    rate_limit_free: int = 100
    rate_limit_pro: int = 1000
    rate_limit_enterprise: int = 10000
    rate_limit_window_seconds: int = 3600
    worker_concurrency: int = 5
    worker_rate_limit: int = 100
    job_max_attempts: int = 3
    job_backoff_seconds: float = 1.0
    dead_letter_retention_hours: int = 24
    similarity_max_chars: int = 5000
    redis_url: Optional[str] = None
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    @property
    def max_snapshot_bytes(self) -> int:
        return int(self.max_snapshot_size_mb * 1024 * 1024)

    @property
    def dedup_interval(self) -> timedelta:
        return timedelta(seconds=self.dedup_interval_seconds)

    @property
    def dead_letter_retention(self) -> timedelta:
        return timedelta(hours=self.dead_letter_retention_hours)

    def tier_limits(self) -> Dict[Tier, int]:
        return {
            Tier.free: self.rate_limit_free,
            Tier.pro: self.rate_limit_pro,
            Tier.enterprise: self.rate_limit_enterprise,
        }


def load_config() -> DeltakitConfig:
    return DeltakitConfig(
        max_snapshot_size_mb=float(os.getenv("MAX_SNAPSHOT_SIZE_MB", "10")),
        dedup_interval_seconds=int(os.getenv("DEDUP_INTERVAL_SECONDS", "3600")),
        rate_limit_free=int(os.getenv("RATE_LIMIT_FREE", "100")),
        rate_limit_pro=int(os.getenv("RATE_LIMIT_PRO", "1000")),
        rate_limit_enterprise=int(os.getenv("RATE_LIMIT_ENTERPRISE", "10000")),
        rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "3600")),
        worker_concurrency=int(os.getenv("DELTA_WORKER_CONCURRENCY", "5")),
        worker_rate_limit=int(os.getenv("DELTA_WORKER_RATE_LIMIT", "100")),
        job_max_attempts=int(os.getenv("DELTA_JOB_MAX_ATTEMPTS", "3")),
        job_backoff_seconds=float(os.getenv("DELTA_JOB_BACKOFF_SECONDS", "1.0")),
        dead_letter_retention_hours=int(os.getenv("DEAD_LETTER_RETENTION_HOURS", "24")),
        similarity_max_chars=int(os.getenv("SIMILARITY_MAX_CHARS", "5000")),
        redis_url=os.getenv("REDIS_URL") or None,
        api_host=os.getenv("API_HOST", DeltakitConfig.api_host),
        api_port=int(os.getenv("API_PORT", "8000")),
    )
