"""Error taxonomy shared by services and routers.

Services raise these; the handler registered in ``observability.middleware``
renders them as ``{"success": false, "error", "code", "details"?}``.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ApiError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequest(ApiError):
    status_code = 400
    code = "BAD_REQUEST"


class NotFound(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class Conflict(ApiError):
    status_code = 409
    code = "CONFLICT"


class UpstreamError(ApiError):
    """An external system (BigQuery, UKG Pro) rejected the call; its message is passed through."""

    status_code = 400
    code = "UPSTREAM_ERROR"


class ServiceUnavailable(ApiError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"


class UploadFailed(ApiError):
    """The uploaded file was read but its contents could not be loaded."""

    status_code = 422
    code = "UPLOAD_FAILED"
