from __future__ import annotations

from uuid import NAMESPACE_DNS, uuid5

from deltakit.common.hashes import canonical_json, sha256_text


def deterministic_job_id(*, endpoint_id: str, previous_snapshot_id: str, snapshot_id: str) -> str:
    canonical = canonical_json(
        {
            "endpoint_id": endpoint_id,
            "previous_snapshot_id": previous_snapshot_id,
            "snapshot_id": snapshot_id,
        }
    )
    return str(uuid5(NAMESPACE_DNS, sha256_text(canonical)))
