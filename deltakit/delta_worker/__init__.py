from deltakit.delta_worker.audit import AuditLogger
from deltakit.delta_worker.factory import DeltaJobFactory
from deltakit.delta_worker.models import DeadLetterEntry, DeltaJob, DeltaJobStatus
from deltakit.delta_worker.queue import InMemoryDeltaQueue
from deltakit.delta_worker.repository import AuditLogRepository, DeltaJobRepository
from deltakit.delta_worker.throttle import ThroughputThrottle
from deltakit.delta_worker.worker import DeltaWorker

__all__ = [
    "AuditLogRepository",
    "AuditLogger",
    "DeadLetterEntry",
    "DeltaJob",
    "DeltaJobFactory",
    "DeltaJobRepository",
    "DeltaJobStatus",
    "DeltaWorker",
    "InMemoryDeltaQueue",
    "ThroughputThrottle",
]
