from __future__ import annotations

from datetime import datetime, timedelta, timezone

from redis.exceptions import ConnectionError as RedisConnectionError

from _fakes import snapshot
from _helpers import make_actuals, make_environment, make_model


def test_live_status_with_dataset_metadata(client, db, job_queue):
    ds = make_actuals(db, make_model(db, make_environment(db)), meta={"jobId": "j1", "progress": 50})
    job_queue.add(
        snapshot(
            "j1",
            state="started",
            progress=50,
            data={"jobType": "actuals", "datasetId": ds.id},
        )
    )
    body = client.get("/api/jobs/j1/status").json()
    assert body["jobId"] == "j1"
    assert body["state"] == "started"
    assert body["progress"] == 50
    assert body["databaseMetadata"] == {"jobId": "j1", "progress": 50}
    assert body["timestamp"]


def test_live_status_metadata_degrades_to_null(client, db, job_queue):
    job_queue.add(snapshot("j2", data={"jobType": "volumes", "datasetId": "x"}))
    body = client.get("/api/jobs/j2/status").json()
    assert body["databaseMetadata"] is None


def test_live_status_unknown_job(client):
    resp = client.get("/api/jobs/nope/status")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Job not found"


def test_list_jobs(client, db, job_queue):
    ds = make_actuals(db, make_model(db, make_environment(db)), meta={"startedAt": "t0"})
    now = datetime.now(timezone.utc)
    job_queue.add(snapshot("old", state="finished", enqueued_at=now - timedelta(hours=1)))
    job_queue.add(
        snapshot(
            "running",
            state="active",
            data={"jobType": "actuals", "datasetId": ds.id},
            enqueued_at=now,
        )
    )
    job_queue.stats.update({"waiting": 1, "active": 1, "completed": 3, "failed": 2, "delayed": 4})

    body = client.get("/api/jobs").json()
    assert [j["id"] for j in body["jobs"]] == ["running", "old"]
    assert body["jobs"][0]["data"]["startedAt"] == "t0"
    assert body["stats"]["delayed"] == 4
    assert body["totalJobs"] == 7


def test_delete_job(client, job_queue):
    job_queue.add(snapshot("j1"))
    assert client.delete("/api/jobs", params={"jobId": "j1"}).json() == {"success": True}
    assert "j1" not in job_queue.jobs
    assert client.delete("/api/jobs", params={"jobId": "j1"}).status_code == 404
    assert client.delete("/api/jobs").status_code == 400


def test_redis_probe(client, job_queue):
    job_queue.stats["waiting"] = 2
    for path in ("/api/test-redis", "/api/test-redis-connection"):
        body = client.get(path).json()
        assert body["success"] is True
        assert body["stats"]["waiting"] == 2


def test_redis_probe_reports_failure(client, job_queue):
    job_queue.error = RedisConnectionError("Connection refused")
    resp = client.get("/api/test-redis")
    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Redis connection failed"
    assert "Connection refused" in body["error"]
