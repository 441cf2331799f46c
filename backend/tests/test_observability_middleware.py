from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from dashboard_api.errors import Conflict, NotFound
from dashboard_api.observability.middleware import (
    register_exception_handlers,
    register_request_middleware,
    unhandled_exception_handler,
)


def _build_app():
    app = FastAPI()
    register_request_middleware(app)
    register_exception_handlers(app)
    return app


def test_request_context_adds_request_id_header():
    app = _build_app()

    @app.get("/ok")
    def ok_route():
        return {"ok": True}

    client = TestClient(app)
    resp = client.get("/ok")
    assert resp.status_code == 200
    assert resp.headers.get("X-Request-Id")


def test_api_errors_render_error_payload():
    app = _build_app()

    @app.get("/missing")
    def missing():
        raise NotFound("Environment not found")

    @app.get("/dupe")
    def dupe():
        raise Conflict("taken", details={"field": "name"})

    client = TestClient(app)
    resp = client.get("/missing")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Environment not found", "code": "NOT_FOUND"}

    resp = client.get("/dupe")
    assert resp.status_code == 409
    assert resp.json()["details"] == {"field": "name"}


def test_unhandled_exception_returns_request_id():
    from fastapi import Request
    from starlette.types import Scope

    scope: Scope = {"type": "http", "method": "GET", "path": "/", "headers": []}
    request = Request(scope)
    request.state.request_id = "abc-123"
    response = unhandled_exception_handler(request, RuntimeError("boom"))
    assert response.status_code == 500
    assert b"abc-123" in response.body
    assert b"boom" not in response.body
