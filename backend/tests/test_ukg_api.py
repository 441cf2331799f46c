from __future__ import annotations

from _helpers import make_environment

UKG = {
    "ukg_pro_url": "https://tenant.example.com",
    "ukg_pro_client_id": "cid",
    "ukg_pro_client_secret": "csecret",
    "ukg_pro_app_key": "appkey",
    "ukg_pro_username": "api-user",
    "ukg_pro_password": "hunter2",
}


def test_history_forwards_filters(client, db, ukg):
    env = make_environment(db, **UKG)
    ukg.history = {
        "jobs": [{"id": "b1", "status": "COMPLETED"}],
        "total": 1,
        "pagination": {"limit": 25, "offset": 0, "hasMore": False},
    }
    resp = client.get(
        "/api/ukg/batch-jobs/history",
        params={
            "environmentId": env.id,
            "status": "COMPLETED,FAILED",
            "jobType": "IMPORT",
            "limit": 25,
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["jobs"][0]["id"] == "b1"

    filters = ukg.history_filters[0]
    assert filters.status == ["COMPLETED", "FAILED"]
    assert filters.job_type == ["IMPORT"]
    assert filters.limit == 25
    # secrets come back decrypted from the encrypted columns
    assert ukg.credentials[0].client_secret == "csecret"


def test_history_requires_environment(client, ukg):
    resp = client.get("/api/ukg/batch-jobs/history")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Environment ID is required"


def test_history_requires_ukg_configuration(client, db, ukg):
    env = make_environment(db)
    resp = client.get("/api/ukg/batch-jobs/history", params={"environmentId": env.id})
    assert resp.status_code == 400
    assert ukg.credentials == []


def test_upstream_errors_surface(client, db, ukg):
    env = make_environment(db, **UKG)
    ukg.error = "UKG Pro API Error: Unauthorized"
    resp = client.get("/api/ukg/batch-jobs/stats", params={"environmentId": env.id})
    assert resp.status_code == 400
    assert resp.json()["error"] == "UKG Pro API Error: Unauthorized"


def test_stats(client, db, ukg):
    env = make_environment(db, **UKG)
    ukg.stats = {"completed": 10, "failed": 1}
    resp = client.get(
        "/api/ukg/batch-jobs/stats",
        params={"environmentId": env.id, "startDate": "2025-01-01"},
    )
    assert resp.json() == {"success": True, "stats": {"completed": 10, "failed": 1}}
    assert ukg.stats_args == [("2025-01-01", None)]
