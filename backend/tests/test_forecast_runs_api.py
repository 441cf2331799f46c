from __future__ import annotations

from _helpers import make_environment, make_forecast_runs


def test_list_runs_defaults_to_first_fifty(client, db):
    env = make_environment(db)
    make_forecast_runs(db, env, 60)
    body = client.get("/api/forecasts/runs").json()
    assert len(body["runs"]) == 50
    pagination = body["pagination"]
    assert pagination["total"] == 60
    assert pagination["limit"] == 50
    assert pagination["offset"] == 0
    assert pagination["hasMore"] is True
    # newest start_time first
    seqs = [r["metadata"]["seq"] for r in body["runs"]]
    assert seqs[:3] == [59, 58, 57]


def test_list_runs_page_and_offset(client, db):
    env = make_environment(db)
    make_forecast_runs(db, env, 25)
    body = client.get("/api/forecasts/runs", params={"limit": 10, "page": 3}).json()
    assert len(body["runs"]) == 5
    assert body["pagination"]["offset"] == 20
    assert body["pagination"]["hasMore"] is False

    body = client.get("/api/forecasts/runs", params={"limit": 10, "offset": 5}).json()
    assert body["runs"][0]["metadata"]["seq"] == 19


def test_list_runs_filters(client, db):
    prod = make_environment(db, name="Prod")
    dev = make_environment(db, name="Dev")
    make_forecast_runs(db, prod, 3, status="COMPLETED")
    make_forecast_runs(db, dev, 2, status="FAILED")

    body = client.get("/api/forecasts/runs", params={"environmentId": dev.id}).json()
    assert body["pagination"]["total"] == 2
    assert all(r["environment"]["id"] == dev.id for r in body["runs"])

    body = client.get("/api/forecasts/runs", params={"status": "COMPLETED"}).json()
    assert body["pagination"]["total"] == 3

    body = client.get("/api/forecasts/runs", params={"status": "all"}).json()
    assert body["pagination"]["total"] == 5


def test_list_runs_rejects_bad_limit(client):
    assert client.get("/api/forecasts/runs", params={"limit": 0}).status_code == 400
    assert client.get("/api/forecasts/runs", params={"limit": 5000}).status_code == 400


def test_create_run(client, db):
    env = make_environment(db)
    resp = client.post(
        "/api/forecasts/runs",
        json={
            "environmentId": env.id,
            "startDate": "2025-01-01",
            "endDate": "2025-01-31",
            "orgIds": ["org-1"],
            "metadata": {"requestedBy": "ops"},
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    run = body["forecastRun"]
    assert run["id"].startswith("run_")
    assert run["modelId"] == "manual-sync"
    assert run["status"] == "PENDING"
    assert run["bigqueryProjectId"] == "acme-prod"
    assert run["metadata"]["startDate"] == "2025-01-01"
    assert run["metadata"]["orgIds"] == ["org-1"]
    assert run["metadata"]["requestedBy"] == "ops"


def test_create_run_requires_dates(client, db):
    env = make_environment(db)
    resp = client.post("/api/forecasts/runs", json={"environmentId": env.id})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Environment ID, start date, and end date are required"


def test_create_run_unknown_environment(client):
    resp = client.post(
        "/api/forecasts/runs",
        json={"environmentId": "nope", "startDate": "2025-01-01", "endDate": "2025-01-02"},
    )
    assert resp.status_code == 404
