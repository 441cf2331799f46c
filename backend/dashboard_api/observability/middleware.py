from __future__ import annotations

import time
import uuid
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dashboard_api.errors import ApiError
from .metrics import REQUEST_COUNTER, REQUEST_LATENCY, record_latency

logger = structlog.get_logger("http")

REQUEST_ID_HEADER = "X-Request-Id"


async def request_context_middleware(request: Request, call_next):
    """Bind a request id to every log line of the request and time it per route."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    except Exception:
        logger.exception("request.error", status_code=status_code)
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        route = _route_label(request)
        _observe(route, request.method, status_code, elapsed_ms)
        logger.info("request.completed", route=route, status_code=status_code, duration_ms=round(elapsed_ms, 2))
        structlog.contextvars.clear_contextvars()


def _route_label(request: Request) -> str:
    # route template keeps ids out of metric labels
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _observe(route: str, method: str, status_code: int, elapsed_ms: float) -> None:
    record_latency(route, elapsed_ms)
    REQUEST_COUNTER.labels(path=route, method=method, status=str(status_code)).inc()
    REQUEST_LATENCY.labels(path=route, method=method).observe(elapsed_ms / 1000)


def register_request_middleware(app: FastAPI) -> None:
    app.middleware("http")(request_context_middleware)


def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    logger.info(
        "request.api_error",
        status_code=exc.status_code,
        code=exc.code,
        error=exc.message,
    )
    payload: dict[str, Any] = {"success": False, "error": exc.message, "code": exc.code}
    if exc.details:
        payload["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(payload))


def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid request: {loc} {first.get('msg', '')}".strip() if loc else "Invalid request body"
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": message,
            "code": "VALIDATION_ERROR",
            "details": {"errors": errors},
        },
    )


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "request.unhandled_exception",
        exc_type=type(exc).__name__,
        error=str(exc),
    )
    payload: dict[str, Any] = {"success": False, "error": "Internal Server Error"}
    if request_id:
        payload["requestId"] = request_id
    return JSONResponse(status_code=500, content=payload)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
