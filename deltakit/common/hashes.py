from __future__ import annotations

import hashlib
import json
from typing import Any


def sha256_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def canonical_json(document: Any) -> str:
    """Serialize a JSON value with object keys sorted at every depth.

    Array order and primitive types are preserved, so two documents that
    differ only in key insertion order or whitespace serialize identically.
    """
    return json.dumps(document, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def content_hash(document: Any) -> str:
    return sha256_text(canonical_json(document))


def json_size_bytes(document: Any) -> int:
    return len(canonical_json(document).encode("utf-8"))
