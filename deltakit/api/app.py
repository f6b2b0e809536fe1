import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from deltakit.api.components import Components, build_components
from deltakit.common.api import error_details, error_response, error_status, ok_response, page_meta
from deltakit.common.enums import Tier
from deltakit.common.errors import NotFoundError, PayloadValidationError, RateLimitExceededError, StorageError
from deltakit.ingestion.models import SnapshotIngestRequest


class CompareRequest(BaseModel):
    endpoint_id: str
    from_snapshot_id: str
    to_snapshot_id: str


def _model_dump(model):
    if hasattr(model, "model_dump"):
        return model.model_dump(mode="json")
    return model.dict()


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    timestamp = datetime.fromisoformat(value)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def create_app(components: Optional[Components] = None, *, run_worker: bool = False) -> FastAPI:
    components = components or build_components()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        stop_event = threading.Event()
        worker_thread = None
        if run_worker:
            worker_thread = threading.Thread(
                target=components.worker.run_forever,
                args=(stop_event,),
                name="delta-worker",
                daemon=True,
            )
            worker_thread.start()
        yield
        stop_event.set()
        if worker_thread is not None:
            worker_thread.join(timeout=10)
        components.close()

    app = FastAPI(title="Deltakit", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.components = components

    def _error(exc: Exception, headers=None) -> JSONResponse:
        status_code, code = error_status(exc)
        return JSONResponse(
            status_code=status_code,
            content=error_response(code, str(exc), error_details(exc)),
            headers=headers,
        )

    @app.exception_handler(RateLimitExceededError)
    async def _rate_limited(request: Request, exc: RateLimitExceededError):
        headers = {
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": str(exc.remaining),
        }
        if exc.reset_at is not None:
            headers["X-RateLimit-Reset"] = exc.reset_at.isoformat()
        return _error(exc, headers)

    async def _domain_error(request: Request, exc: Exception):
        return _error(exc)

    for error_type in (PayloadValidationError, NotFoundError, StorageError):
        app.add_exception_handler(error_type, _domain_error)

    @app.post("/snapshots")
    def ingest_snapshot(
        request: SnapshotIngestRequest,
        x_tenant_id: str = Header(...),
        x_tenant_tier: Tier = Header(Tier.free),
    ):
        result = components.pipeline.ingest(
            request.endpoint_id,
            request.data,
            request.source,
            request.metadata,
            tenant_id=x_tenant_id,
            tier=x_tenant_tier,
        )
        headers = result.rate_limit.headers() if result.rate_limit else None
        return JSONResponse(content=ok_response(result.to_dict()), headers=headers)

    @app.get("/snapshots")
    def list_snapshots(
        endpoint_id: Optional[str] = None,
        start: Optional[str] = Query(None, alias="from"),
        end: Optional[str] = Query(None, alias="to"),
        limit: int = Query(100, gt=0, le=1000),
        offset: int = Query(0, ge=0),
    ):
        try:
            snapshots, total = components.store.list_snapshots(
                endpoint_id=endpoint_id,
                start=_parse_timestamp(start),
                end=_parse_timestamp(end),
                limit=limit,
                offset=offset,
            )
        except ValueError as exc:
            return JSONResponse(status_code=400, content=error_response("VALIDATION_ERROR", str(exc)))
        return ok_response(
            {"snapshots": [snapshot.summary() for snapshot in snapshots]},
            meta=page_meta(total=total, limit=limit, offset=offset),
        )

    @app.get("/snapshots/latest/{endpoint_id}")
    def latest_snapshot(endpoint_id: str):
        snapshot = components.store.get_latest_snapshot(endpoint_id)
        if snapshot is None:
            return JSONResponse(
                status_code=404,
                content=error_response("NOT_FOUND", "No snapshots found for this endpoint"),
            )
        return ok_response(_model_dump(snapshot))

    @app.get("/snapshots/{snapshot_id}")
    def fetch_snapshot(snapshot_id: str, endpoint_id: str):
        snapshot = components.store.get_snapshot(endpoint_id, snapshot_id)
        if snapshot is None:
            return JSONResponse(status_code=404, content=error_response("NOT_FOUND", "Snapshot not found"))
        return ok_response(_model_dump(snapshot))

    @app.get("/deltas")
    def list_deltas(
        endpoint_id: Optional[str] = None,
        start: Optional[str] = Query(None, alias="from"),
        end: Optional[str] = Query(None, alias="to"),
        limit: int = Query(100, gt=0, le=1000),
        offset: int = Query(0, ge=0),
    ):
        try:
            deltas, total = components.store.list_deltas(
                endpoint_id=endpoint_id,
                start=_parse_timestamp(start),
                end=_parse_timestamp(end),
                limit=limit,
                offset=offset,
            )
        except ValueError as exc:
            return JSONResponse(status_code=400, content=error_response("VALIDATION_ERROR", str(exc)))
        return ok_response(
            {"deltas": [_model_dump(delta) for delta in deltas]},
            meta=page_meta(total=total, limit=limit, offset=offset),
        )

    @app.post("/deltas/compare")
    def compare_snapshots(request: CompareRequest):
        result = components.delta_service.compare_snapshots(
            request.endpoint_id,
            request.from_snapshot_id,
            request.to_snapshot_id,
        )
        return ok_response(result.to_dict())

    @app.get("/endpoints/{endpoint_id}/stats")
    def endpoint_stats(endpoint_id: str):
        snapshots = components.store.snapshot_stats(endpoint_id)
        deltas = components.store.delta_stats(endpoint_id)
        return ok_response(
            {
                "snapshots": {
                    "total_count": snapshots.total_count,
                    "total_bytes": snapshots.total_bytes,
                    "unique_hashes": snapshots.unique_hashes,
                    "oldest_timestamp": _isoformat(snapshots.oldest_timestamp),
                    "latest_timestamp": _isoformat(snapshots.latest_timestamp),
                },
                "deltas": {
                    "total_count": deltas.total_count,
                    "avg_changes": deltas.avg_changes,
                    "avg_similarity": deltas.avg_similarity,
                    "max_changes": deltas.max_changes,
                    "min_changes": deltas.min_changes,
                },
            }
        )

    return app
