def _ingest(client, headers, data, endpoint_id="endpoint-1"):
    return client.post("/snapshots", json={"endpoint_id": endpoint_id, "data": data}, headers=headers)


def _seed_pair(client, headers, components):
    first = _ingest(client, headers, {"status": "pending", "items": [1, 2]}).json()["data"]["snapshot"]
    second = _ingest(client, headers, {"status": "shipped", "items": [1, 2, 3]}).json()["data"]["snapshot"]
    components.worker.run_pending()
    return first, second


def test_ingest_snapshot_returns_envelope(client, tenant_headers):
    response = _ingest(client, tenant_headers, {"foo": "bar"})

    assert response.status_code == 200
    body = response.json()
    assert body["schema_version"] == "v1"
    assert body["status"] == "ok"
    assert body["data"]["is_duplicate"] is False
    assert body["data"]["queued_for_delta"] is False
    assert body["data"]["snapshot"]["endpoint_id"] == "endpoint-1"
    assert body["data"]["snapshot"]["source"] == "sdk"


def test_duplicate_snapshot_is_reported(client, tenant_headers):
    first = _ingest(client, tenant_headers, {"foo": "bar"}).json()["data"]
    second = _ingest(client, tenant_headers, {"foo": "bar"}).json()["data"]

    assert second["is_duplicate"] is True
    assert second["snapshot"]["snapshot_id"] == first["snapshot"]["snapshot_id"]


def test_ingest_requires_tenant_header(client):
    response = client.post("/snapshots", json={"endpoint_id": "endpoint-1", "data": {}})

    assert response.status_code == 422


def test_rate_limit_returns_429_with_headers(client):
    headers = {"X-Tenant-Id": "tenant-free"}
    for index in range(3):
        assert _ingest(client, headers, {"n": index}).status_code == 200

    response = _ingest(client, headers, {"n": 99})

    assert response.status_code == 429
    assert response.headers["X-RateLimit-Limit"] == "3"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Reset"] == "2026-01-28T10:00:00+00:00"
    error = response.json()["error"]
    assert error["code"] == "RATE_LIMIT_EXCEEDED"
    assert error["details"]["limit"] == 3


def test_oversized_snapshot_is_rejected(client, tenant_headers):
    response = _ingest(client, tenant_headers, {"blob": "x" * 2000})

    assert response.status_code == 413
    error = response.json()["error"]
    assert error["code"] == "PAYLOAD_TOO_LARGE"
    assert error["details"]["max_bytes"] == 1048
    assert error["details"]["size_bytes"] > 1048


def test_latest_and_fetch_snapshot(client, tenant_headers, components):
    first, second = _seed_pair(client, tenant_headers, components)

    latest = client.get("/snapshots/latest/endpoint-1").json()["data"]
    assert latest["snapshot_id"] == second["snapshot_id"]
    assert latest["data"] == {"status": "shipped", "items": [1, 2, 3]}

    fetched = client.get(f"/snapshots/{first['snapshot_id']}", params={"endpoint_id": "endpoint-1"})
    assert fetched.status_code == 200
    assert fetched.json()["data"]["data"]["status"] == "pending"

    wrong_endpoint = client.get(f"/snapshots/{first['snapshot_id']}", params={"endpoint_id": "other"})
    assert wrong_endpoint.status_code == 404
    assert client.get("/snapshots/latest/unknown").status_code == 404


def test_list_snapshots_paginates(client, tenant_headers):
    for index in range(3):
        _ingest(client, tenant_headers, {"n": index})

    body = client.get("/snapshots", params={"endpoint_id": "endpoint-1", "limit": 2}).json()

    assert len(body["data"]["snapshots"]) == 2
    assert body["meta"] == {"total": 3, "limit": 2, "offset": 0, "has_more": True}
    assert client.get("/snapshots", params={"limit": 0}).status_code == 422


def test_worker_output_is_listed_under_deltas(client, tenant_headers, components):
    first, second = _seed_pair(client, tenant_headers, components)

    body = client.get("/deltas", params={"endpoint_id": "endpoint-1"}).json()

    assert body["meta"]["total"] == 1
    assert body["meta"]["has_more"] is False
    [delta] = body["data"]["deltas"]
    assert delta["from_snapshot_id"] == first["snapshot_id"]
    assert delta["to_snapshot_id"] == second["snapshot_id"]
    assert delta["changes_count"] == 2
    assert {"op": "add", "path": "/items/2", "value": 3} in delta["operations"]


def test_compare_snapshots_on_demand(client, tenant_headers, components):
    first, second = _seed_pair(client, tenant_headers, components)

    response = client.post(
        "/deltas/compare",
        json={
            "endpoint_id": "endpoint-1",
            "from_snapshot_id": first["snapshot_id"],
            "to_snapshot_id": second["snapshot_id"],
        },
    )

    assert response.status_code == 200
    body = response.json()["data"]
    assert body["changes_count"] == 2
    assert body["summary"] == {"additions": 1, "deletions": 0, "modifications": 1, "total": 2}
    assert {"op": "replace", "path": "/status", "value": "shipped"} in body["diff"]
    assert 0.0 < body["similarity_score"] < 1.0


def test_compare_missing_snapshot_returns_404(client):
    response = client.post(
        "/deltas/compare",
        json={"endpoint_id": "endpoint-1", "from_snapshot_id": "nope", "to_snapshot_id": "nada"},
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_endpoint_stats(client, tenant_headers, components):
    _seed_pair(client, tenant_headers, components)

    body = client.get("/endpoints/endpoint-1/stats").json()["data"]

    assert body["snapshots"]["total_count"] == 2
    assert body["snapshots"]["latest_timestamp"] == "2026-01-28T09:15:00+00:00"
    assert body["deltas"]["total_count"] == 1
    assert body["deltas"]["max_changes"] == 2


def test_accepted_ingest_carries_rate_limit_headers(client, tenant_headers):
    response = _ingest(client, tenant_headers, {"foo": "bar"})

    assert response.headers["X-RateLimit-Limit"] == "50"
    assert response.headers["X-RateLimit-Remaining"] == "49"
    assert response.headers["X-RateLimit-Reset"] == "2026-01-28T10:00:00+00:00"
