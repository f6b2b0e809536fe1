from deltakit.ingestion.models import IngestionEvent, IngestionResult, SnapshotIngestRequest
from deltakit.ingestion.service import IngestionObservability, IngestionPipeline

__all__ = [
    "IngestionEvent",
    "IngestionObservability",
    "IngestionPipeline",
    "IngestionResult",
    "SnapshotIngestRequest",
]
