from __future__ import annotations

from typing import Any, Optional

from deltakit.common.hashes import canonical_json

DEFAULT_MAX_CHARS = 5000


def longest_common_substring(left: str, right: str) -> int:
    if not left or not right:
        return 0
    best = 0
    previous = [0] * (len(right) + 1)
    for i in range(1, len(left) + 1):
        current = [0] * (len(right) + 1)
        left_char = left[i - 1]
        for j in range(1, len(right) + 1):
            if left_char == right[j - 1]:
                run = previous[j - 1] + 1
                current[j] = run
                if run > best:
                    best = run
        previous = current
    return best


def calculate_similarity(old: Any, new: Any, *, max_chars: Optional[int] = DEFAULT_MAX_CHARS) -> float:
    """Approximate similarity in [0, 1] from the canonical serializations.

    The score is the longest common contiguous substring over the longer
    serialization, computed in O(len(old) * len(new)) time. When either
    serialization exceeds ``max_chars`` only the first ``max_chars``
    characters of each are compared, which keeps a single score to a few
    seconds on a 10 MB snapshot. Pass ``max_chars=None`` for the exact score.
    """
    old_text = canonical_json(old)
    new_text = canonical_json(new)
    if old_text == new_text:
        return 1.0
    if max_chars is not None:
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        old_text = old_text[:max_chars]
        new_text = new_text[:max_chars]
    longest = max(len(old_text), len(new_text))
    if longest == 0:
        return 1.0
    return longest_common_substring(old_text, new_text) / longest
