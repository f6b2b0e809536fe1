from datetime import datetime
from typing import Optional


class PayloadValidationError(ValueError):
    pass


class PayloadTooLargeError(PayloadValidationError):
    def __init__(self, message: str, *, size_bytes: int, max_bytes: int) -> None:
        super().__init__(message)
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes


class NotFoundError(KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "not found"


class SnapshotNotFoundError(NotFoundError):
    pass


class StorageError(RuntimeError):
    pass


class QueueError(RuntimeError):
    pass


class CounterStoreError(RuntimeError):
    pass


class RateLimitExceededError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        limit: int,
        remaining: int,
        reset_at: Optional[datetime] = None,
    ) -> None:
        super().__init__(message)
        self.limit = limit
        self.remaining = remaining
        self.reset_at = reset_at
