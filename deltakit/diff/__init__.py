from deltakit.diff.engine import apply_patch, categorize_changes, compute_diff, count_changes
from deltakit.diff.models import ChangeSummary, PatchOperation
from deltakit.diff.similarity import calculate_similarity

__all__ = [
    "ChangeSummary",
    "PatchOperation",
    "apply_patch",
    "calculate_similarity",
    "categorize_changes",
    "compute_diff",
    "count_changes",
]
