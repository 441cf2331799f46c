from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import text

from _helpers import (
    SERVICE_ACCOUNT,
    UKG_FIELDS,
    make_environment,
    make_forecast_runs,
    make_model,
)

SECRET_KEYS = ("bigqueryCredentials", "ukgProClientSecret", "ukgProPassword")


def _payload(**extra):
    return {"name": "Prod", "bigqueryCredentials": dict(SERVICE_ACCOUNT), **extra}


def test_create_environment_uses_resolved_project_and_dataset(client, warehouse, ukg):
    resp = client.post("/api/environments", json=_payload())
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Prod"
    assert body["bigqueryProjectId"] == "acme-prod"
    assert body["bigqueryDataset"] == "acme_detail"
    assert body["hasBigqueryCredentials"] is True
    assert body["ukgProUrl"] is None
    assert body["ukgProConfigured"] is False
    assert body["isActive"] is True
    for key in SECRET_KEYS:
        assert key not in body

    assert warehouse.calls == [(SERVICE_ACCOUNT, None)]
    # partial or absent UKG fields skip the UKG probe
    assert ukg.credentials == []

    listed = client.get("/api/environments").json()
    assert [e["id"] for e in listed] == [body["id"]]


def test_create_environment_passes_requested_dataset(client, warehouse):
    client.post("/api/environments", json=_payload(bigqueryDataset="custom_detail"))
    assert warehouse.calls[0][1] == "custom_detail"


def test_create_environment_probes_ukg_when_fully_configured(client, ukg):
    resp = client.post("/api/environments", json=_payload(**UKG_FIELDS))
    assert resp.status_code == 200
    assert resp.json()["ukgProConfigured"] is True
    assert len(ukg.credentials) == 1
    creds = ukg.credentials[0]
    assert creds.url == "https://tenant.example.com"
    assert creds.password == "hunter2"
    assert ukg.closed == 1


def test_failing_ukg_probe_persists_nothing(client, ukg, db):
    ukg.connection_result = {"success": False, "error": "Authentication failed: invalid_client"}
    resp = client.post("/api/environments", json=_payload(**UKG_FIELDS))
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "UPSTREAM_ERROR"
    assert body["error"] == "UKG Pro connection failed: Authentication failed: invalid_client"
    assert db.execute(text("SELECT COUNT(*) FROM environments")).scalar() == 0


def test_failing_bigquery_connection_is_reported(client, warehouse, db):
    warehouse.reject('No dataset containing "detail" found')
    resp = client.post("/api/environments", json=_payload())
    assert resp.status_code == 400
    assert resp.json()["error"] == 'BigQuery connection failed: No dataset containing "detail" found'
    assert db.execute(text("SELECT COUNT(*) FROM environments")).scalar() == 0


def test_create_environment_requires_name_and_credentials(client, warehouse):
    resp = client.post("/api/environments", json={"bigqueryCredentials": SERVICE_ACCOUNT})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Environment name is required"

    resp = client.post("/api/environments", json={"name": "Prod"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "BigQuery credentials are required"
    assert warehouse.calls == []


def test_credentials_are_encrypted_at_rest(client, db):
    client.post("/api/environments", json=_payload(**UKG_FIELDS))
    raw = db.execute(
        text("SELECT bigquery_credentials, ukg_pro_password FROM environments")
    ).one()
    for column in raw:
        assert "ciphertext" in str(column)
    assert "private_key" not in str(raw[0])
    assert "hunter2" not in str(raw[1])


def test_list_environments_newest_first(client, db):
    older = make_environment(db, name="Dev", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    newer = make_environment(db, name="Prod", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
    listed = client.get("/api/environments").json()
    assert [e["id"] for e in listed] == [newer.id, older.id]


def test_get_environment_404(client):
    resp = client.get("/api/environments/missing")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Environment not found"


def test_update_environment_overwrites_only_sent_fields(client, db):
    env = make_environment(db, ukg_pro_url="https://old.example.com")
    resp = client.put(f"/api/environments/{env.id}", json={"name": "Production", "isActive": False})
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Production"
    assert body["isActive"] is False
    assert body["ukgProUrl"] == "https://old.example.com"
    assert body["bigqueryProjectId"] == "acme-prod"


def test_update_environment_rejects_empty_name(client, db):
    env = make_environment(db)
    resp = client.put(f"/api/environments/{env.id}", json={"name": None})
    assert resp.status_code == 400
    assert client.get(f"/api/environments/{env.id}").json()["name"] == "Prod"


def test_delete_environment(client, db):
    env = make_environment(db)
    resp = client.delete(f"/api/environments/{env.id}")
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert client.get(f"/api/environments/{env.id}").status_code == 404


def test_delete_environment_guarded_by_forecast_runs(client, db):
    env = make_environment(db)
    make_forecast_runs(db, env, 1)
    resp = client.delete(f"/api/environments/{env.id}")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Cannot delete environment with associated forecast runs"
    assert client.get(f"/api/environments/{env.id}").status_code == 200


def test_delete_environment_guarded_by_comparison_models(client, db):
    env = make_environment(db)
    make_model(db, env)
    resp = client.delete(f"/api/environments/{env.id}")
    assert resp.status_code == 400
    assert "forecast comparison models" in resp.json()["error"]


def test_environment_responses_are_not_cached(client):
    resp = client.get("/api/environments")
    assert resp.headers["Cache-Control"] == "no-store"
