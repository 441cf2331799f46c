from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from dashboard_api.clients.ukg import (
    BATCH_HISTORY_PATH,
    HEALTH_PATH,
    MULTI_READ_PATH,
    TOKEN_PATH,
    BatchJobFilters,
    UKGProClient,
    UKGProCredentials,
    UKGProError,
)

CREDS = UKGProCredentials(
    url="https://tenant.example.com/",
    client_id="cid",
    client_secret="csecret",
    app_key="appkey",
    username="api-user",
    password="hunter2",
)


class Recorder:
    """MockTransport handler driven by a per-path table of responses."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "no route"})
        return handler(request) if callable(handler) else handler


def _run(routes, coro_fn):
    recorder = Recorder(routes)

    async def main():
        async with UKGProClient(CREDS, transport=httpx.MockTransport(recorder)) as client:
            return await coro_fn(client)

    return asyncio.run(main()), recorder


TOKEN_OK = httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})


def test_token_uses_client_credentials_first():
    token, rec = _run({("POST", TOKEN_PATH): TOKEN_OK}, lambda c: c.get_access_token())
    assert token == "tok"
    form = parse_qs(rec.requests[0].content.decode())
    assert form["grant_type"] == ["client_credentials"]
    assert rec.requests[0].headers["appkey"] == "appkey"


def test_token_falls_back_to_password_grant():
    def token(request):
        form = parse_qs(request.content.decode())
        if form["grant_type"] == ["client_credentials"]:
            return httpx.Response(401, json={"error": "unauthorized_client"})
        assert form["username"] == ["api-user"]
        return TOKEN_OK

    result, rec = _run({("POST", TOKEN_PATH): token}, lambda c: c.get_access_token())
    assert result == "tok"
    assert len(rec.requests) == 2


def test_token_failure_message():
    routes = {
        ("POST", TOKEN_PATH): httpx.Response(
            401, json={"error": "invalid_grant", "error_description": "Bad credentials"}
        )
    }
    with pytest.raises(UKGProError, match="Authentication failed: Bad credentials"):
        _run(routes, lambda c: c.get_access_token())


def test_token_is_cached():
    async def twice(client):
        await client.get_access_token()
        return await client.get_access_token()

    _, rec = _run({("POST", TOKEN_PATH): TOKEN_OK}, twice)
    assert len(rec.requests) == 1


def test_connection_probe_success():
    routes = {
        ("POST", TOKEN_PATH): TOKEN_OK,
        ("POST", MULTI_READ_PATH): httpx.Response(200, json={"data": []}),
    }
    result, rec = _run(routes, lambda c: c.test_connection())
    assert result == {
        "success": True,
        "tenantInfo": {"url": "https://tenant.example.com", "clientId": "cid"},
    }
    assert rec.requests[1].headers["authorization"] == "Bearer tok"


def test_connection_probe_falls_back_to_health():
    routes = {
        ("POST", TOKEN_PATH): TOKEN_OK,
        ("POST", MULTI_READ_PATH): httpx.Response(403, json={"message": "Forbidden view"}),
        ("GET", HEALTH_PATH): httpx.Response(200, json={"status": "UP"}),
    }
    result, _ = _run(routes, lambda c: c.test_connection())
    assert result["success"] is True


def test_connection_probe_failure():
    routes = {
        ("POST", TOKEN_PATH): TOKEN_OK,
        ("POST", MULTI_READ_PATH): httpx.Response(403, json={"message": "Forbidden view"}),
        ("GET", HEALTH_PATH): httpx.Response(503),
    }
    result, _ = _run(routes, lambda c: c.test_connection())
    assert result == {"success": False, "error": "UKG Pro API Error: Forbidden view"}


def test_batch_history_repeats_multi_value_filters():
    routes = {
        ("POST", TOKEN_PATH): TOKEN_OK,
        ("GET", BATCH_HISTORY_PATH): httpx.Response(200, json={"jobs": [{"id": 1}], "total": 30}),
    }
    filters = BatchJobFilters(status=["COMPLETED", "FAILED"], job_type=["IMPORT"], limit=10, offset=10)
    result, rec = _run(routes, lambda c: c.get_batch_job_history(filters))
    assert result["total"] == 30
    assert result["pagination"] == {"limit": 10, "offset": 10, "hasMore": True}
    query = parse_qs(rec.requests[1].url.query.decode())
    assert query["status"] == ["COMPLETED", "FAILED"]
    assert query["jobType"] == ["IMPORT"]


def test_credentials_completeness():
    assert CREDS.is_complete()
    assert not UKGProCredentials("u", "c", "s", "k", "user", None).is_complete()
    assert CREDS.base_url == "https://tenant.example.com"
