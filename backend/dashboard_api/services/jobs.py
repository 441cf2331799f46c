from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from sqlalchemy.orm import Session

from dashboard_api.errors import NotFound
from dashboard_api.models.datasets import DATASET_MODELS
from dashboard_api.queue.accessor import JobQueue, JobSnapshot
from dashboard_api.schemas.common import now_iso

logger = structlog.get_logger(__name__)


def dataset_metadata(db: Session, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Metadata of the dataset a job payload points at; None when there is none."""
    model = DATASET_MODELS.get(data.get("jobType"))
    if model is None or not data.get("datasetId"):
        return None
    dataset = db.get(model, data["datasetId"])
    return dataset.meta if dataset is not None else None


def _soft_metadata(db: Session, snapshot: JobSnapshot) -> Optional[Dict[str, Any]]:
    # Enrichment only: a failing lookup must not fail the status request
    try:
        return dataset_metadata(db, snapshot.data)
    except Exception as exc:  # noqa: BLE001
        logger.warning("jobs.metadata_lookup_failed", job_id=snapshot.id, error=str(exc))
        db.rollback()
        return None


def live_job_status(db: Session, queue: JobQueue, job_id: str) -> Dict[str, Any]:
    snapshot = queue.get_job(job_id)
    if snapshot is None:
        raise NotFound("Job not found")
    return {
        "jobId": snapshot.id,
        "state": snapshot.state,
        "progress": snapshot.progress,
        "failedReason": snapshot.failed_reason,
        "data": snapshot.data,
        "databaseMetadata": _soft_metadata(db, snapshot),
        "timestamp": now_iso(),
    }


def list_jobs(db: Session, queue: JobQueue, limit: int = 50) -> Dict[str, Any]:
    jobs = []
    snapshots = queue.list_jobs(limit=limit)
    for snapshot in snapshots:
        item = snapshot.to_dict()
        if snapshot.state == "active":
            extra = _soft_metadata(db, snapshot)
            if extra:
                item["data"] = {**item["data"], **extra}
        jobs.append(item)
    counts = queue.counts()
    return {
        "jobs": jobs,
        "stats": counts,
        "totalJobs": sum(counts[state] for state in ("waiting", "active", "completed", "failed")),
    }


def remove_job(queue: JobQueue, job_id: str) -> None:
    if not queue.remove_job(job_id):
        raise NotFound("Job not found")


def queue_health(queue: JobQueue) -> Dict[str, Any]:
    return {
        "success": True,
        "message": "Redis connection successful",
        "stats": queue.counts(),
        "timestamp": now_iso(),
    }
