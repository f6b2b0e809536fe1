from typing import Any, Dict, Optional, Tuple

from deltakit.common.errors import (
    NotFoundError,
    PayloadTooLargeError,
    PayloadValidationError,
    RateLimitExceededError,
    StorageError,
)

ENVELOPE_VERSION = "v1"

# Most specific first; the first isinstance match wins.
_ERROR_STATUS = (
    (RateLimitExceededError, 429, "RATE_LIMIT_EXCEEDED"),
    (PayloadTooLargeError, 413, "PAYLOAD_TOO_LARGE"),
    (PayloadValidationError, 400, "VALIDATION_ERROR"),
    (NotFoundError, 404, "NOT_FOUND"),
    (StorageError, 503, "STORAGE_ERROR"),
)


def ok_response(data: Dict[str, Any], *, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    envelope: Dict[str, Any] = {"schema_version": ENVELOPE_VERSION, "status": "ok", "data": data}
    if meta is not None:
        envelope["meta"] = meta
    return envelope


def error_response(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "schema_version": ENVELOPE_VERSION,
        "status": "error",
        "error": {"code": code, "message": message, "details": details or {}},
    }


def page_meta(*, total: int, limit: int, offset: int) -> Dict[str, Any]:
    return {"total": total, "limit": limit, "offset": offset, "has_more": offset + limit < total}


def error_status(exc: Exception) -> Tuple[int, str]:
    """HTTP status and envelope code for a deltakit error."""
    for error_type, status_code, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code, code
    return 500, "INTERNAL_ERROR"


def error_details(exc: Exception) -> Dict[str, Any]:
    if isinstance(exc, PayloadTooLargeError):
        return {"size_bytes": exc.size_bytes, "max_bytes": exc.max_bytes}
    if isinstance(exc, RateLimitExceededError):
        return {
            "limit": exc.limit,
            "remaining": exc.remaining,
            "reset_at": exc.reset_at.isoformat() if exc.reset_at else None,
        }
    return {}
