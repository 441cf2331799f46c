from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import text

from _helpers import (
    add_results,
    make_actuals,
    make_environment,
    make_forecast,
    make_model,
    make_run,
)


def _create_body(env_id, name="Q1 comparison", **extra):
    return {
        "name": name,
        "environmentId": env_id,
        "period_start": "2025-01-01",
        "period_end": "2025-03-31",
        **extra,
    }


def test_create_model(client, db):
    env = make_environment(db)
    resp = client.post(
        "/api/forecast-comparison-models",
        json=_create_body(env.id, description="Quarter one", metadata={"owner": "ops"}),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "DRAFT"
    assert body["period_start"] == "2025-01-01"
    assert body["environment"]["id"] == env.id
    assert body["metadata"] == {"owner": "ops"}
    assert body["actualsDataset"] is None
    assert body["forecastDatasets"] == []


def test_create_model_duplicate_name_conflicts(client, db):
    env = make_environment(db)
    assert client.post("/api/forecast-comparison-models", json=_create_body(env.id)).status_code == 201
    resp = client.post("/api/forecast-comparison-models", json=_create_body(env.id))
    assert resp.status_code == 409
    assert resp.json()["error"] == "A forecast comparison model with this name already exists"
    assert db.execute(text("SELECT COUNT(*) FROM forecast_comparison_models")).scalar() == 1


def test_create_model_validation(client, db):
    env = make_environment(db)
    resp = client.post("/api/forecast-comparison-models", json={"name": "x", "environmentId": env.id})
    assert resp.status_code == 400

    resp = client.post(
        "/api/forecast-comparison-models",
        json=_create_body(env.id, period_start="2025-04-01", period_end="2025-03-01"),
    )
    assert resp.status_code == 400

    resp = client.post("/api/forecast-comparison-models", json=_create_body("missing-env"))
    assert resp.status_code == 404


def test_list_models_includes_latest_run_only(client, db):
    env = make_environment(db)
    model = make_model(db, env)
    forecast = make_forecast(db, model)
    make_run(db, model, [forecast], name="old", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
    make_run(db, model, [forecast], name="new", created_at=datetime(2025, 2, 1, tzinfo=timezone.utc))

    listed = client.get("/api/forecast-comparison-models").json()
    assert len(listed) == 1
    assert [r["name"] for r in listed[0]["comparisonRuns"]] == ["new"]
    assert listed[0]["forecastDatasets"][0]["modelType"] == "ARIMA"


def test_model_detail_previews_results(client, db):
    env = make_environment(db)
    model = make_model(db, env)
    make_actuals(db, model)
    forecast = make_forecast(db, model)
    run = make_run(db, model, [forecast])
    add_results(
        db,
        run,
        forecast,
        [("org-b", date(2025, 1, 1), 100.0, 90.0), ("org-a", date(2025, 1, 2), 50.0, 55.0)],
    )

    resp = client.get(f"/api/forecast-comparison-models/{model.id}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["environment"]["bigqueryDataset"] == "acme_detail"
    assert body["actualsDataset"]["loadStatus"] == "COMPLETED"
    results = body["comparisonRuns"][0]["results"]
    assert [r["partitionDate"] for r in results] == ["2025-01-02", "2025-01-01"]


def test_model_detail_404(client):
    resp = client.get("/api/forecast-comparison-models/missing")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Forecast comparison model not found"


def test_update_model(client, db):
    env = make_environment(db)
    model = make_model(db, env)
    make_model(db, env, name="Taken")

    resp = client.put(f"/api/forecast-comparison-models/{model.id}", json={"status": "ACTIVE"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "ACTIVE"

    resp = client.put(f"/api/forecast-comparison-models/{model.id}", json={"name": "Taken"})
    assert resp.status_code == 409

    resp = client.put(f"/api/forecast-comparison-models/{model.id}", json={"status": "BOGUS"})
    assert resp.status_code == 400


def test_delete_model_cascades(client, db):
    env = make_environment(db)
    model = make_model(db, env)
    make_actuals(db, model)
    forecast = make_forecast(db, model)
    run = make_run(db, model, [forecast])
    add_results(db, run, forecast, [("org-a", date(2025, 1, 1), 10.0, 9.0)])

    resp = client.delete(f"/api/forecast-comparison-models/{model.id}")
    assert resp.status_code == 200
    for table in ("actuals_datasets", "forecast_datasets", "comparison_runs", "comparison_results"):
        assert db.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar() == 0
    assert client.get(f"/api/forecast-comparison-models/{model.id}").status_code == 404


def test_create_comparison_run(client, db):
    env = make_environment(db)
    model = make_model(db, env)
    make_actuals(db, model)
    forecast = make_forecast(db, model)

    resp = client.post(
        f"/api/forecast-comparison-models/{model.id}/runs",
        json={"name": "Run A", "selectedForecastIds": [forecast.id], "filters": {"orgIds": ["a"]}},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "PENDING"
    assert body["selectedForecastIds"] == [forecast.id]
    assert body["comparisonModel"]["environment"]["id"] == env.id

    runs = client.get(f"/api/forecast-comparison-models/{model.id}/runs").json()
    assert [r["name"] for r in runs] == ["Run A"]


def test_create_comparison_run_requires_loaded_actuals(client, db):
    env = make_environment(db)
    model = make_model(db, env)
    make_actuals(db, model, load_status="LOADING")
    forecast = make_forecast(db, model)
    resp = client.post(
        f"/api/forecast-comparison-models/{model.id}/runs",
        json={"name": "Run A", "selectedForecastIds": [forecast.id]},
    )
    assert resp.status_code == 400
    assert "Actuals dataset" in resp.json()["error"]


def test_create_comparison_run_lists_unloaded_forecasts(client, db):
    env = make_environment(db)
    model = make_model(db, env)
    make_actuals(db, model)
    ready = make_forecast(db, model, name="Ready")
    pending = make_forecast(db, model, name="Pending", load_status="PENDING")
    resp = client.post(
        f"/api/forecast-comparison-models/{model.id}/runs",
        json={"name": "Run A", "selectedForecastIds": [ready.id, pending.id]},
    )
    assert resp.status_code == 400
    unloaded = resp.json()["details"]["unloadedDatasets"]
    assert unloaded == [{"id": pending.id, "name": "Pending", "loadStatus": "PENDING"}]


def test_create_comparison_run_rejects_foreign_forecast(client, db):
    env = make_environment(db)
    model = make_model(db, env)
    other = make_model(db, env, name="Other")
    make_actuals(db, model)
    foreign = make_forecast(db, other)
    resp = client.post(
        f"/api/forecast-comparison-models/{model.id}/runs",
        json={"name": "Run A", "selectedForecastIds": [foreign.id]},
    )
    assert resp.status_code == 400

    resp = client.post(
        f"/api/forecast-comparison-models/{model.id}/runs",
        json={"name": "Run A", "selectedForecastIds": []},
    )
    assert resp.status_code == 400
