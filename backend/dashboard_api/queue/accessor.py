"""Read/write access to the dataset sync queue.

rq keeps each state in its own registry; the dashboard groups them as
waiting / active / completed / failed / delayed. Job state strings handed to
callers are rq's own (``queued``, ``started``, ``finished``, ``failed``...).
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from rq import Queue, Retry
from rq.job import Job

from dashboard_api.config import get_settings
from dashboard_api.observability.metrics import QUEUE_ENQUEUED

logger = structlog.get_logger(__name__)

# Attempts after the first failure, with growing back-off between them (seconds)
RETRY_INTERVALS = [2, 4, 8]

LISTED_STATES = ("waiting", "active", "completed", "failed")


def sync_job_id(dataset_type: str, dataset_id: str) -> str:
    """Ids double as derived-status ids: sync_<datasetType>_<datasetId>_<epoch-millis>."""
    return f"sync_{dataset_type}_{dataset_id}_{int(time.time() * 1000)}"


@dataclass
class JobSnapshot:
    id: str
    name: str
    data: Dict[str, Any]
    state: str
    progress: float
    failed_reason: Optional[str]
    enqueued_at: Optional[datetime]
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    retries_left: Optional[int] = None

    @classmethod
    def from_job(cls, job: Job, state: str | None = None) -> "JobSnapshot":
        args = job.args or ()
        data = args[0] if args and isinstance(args[0], dict) else {}
        meta = job.meta or {}
        return cls(
            id=job.id,
            name=str(data.get("jobType") or job.func_name),
            data=dict(data),
            state=state or _status_text(job.get_status()),
            progress=meta.get("progress") or 0,
            failed_reason=meta.get("failed_reason") or _last_line(job.exc_info),
            enqueued_at=job.enqueued_at,
            started_at=job.started_at,
            ended_at=job.ended_at,
            retries_left=job.retries_left,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "data": self.data,
            "state": self.state,
            "progress": self.progress,
            "failedReason": self.failed_reason,
            "enqueuedAt": _iso(self.enqueued_at),
            "startedAt": _iso(self.started_at),
            "endedAt": _iso(self.ended_at),
            "retriesLeft": self.retries_left,
        }


class JobQueue:
    def __init__(self, queue: Queue) -> None:
        self.queue = queue

    @property
    def connection(self):
        return self.queue.connection

    def get_job(self, job_id: str) -> JobSnapshot | None:
        job = self.queue.fetch_job(job_id)
        if job is None:
            return None
        return JobSnapshot.from_job(job)

    def counts(self) -> Dict[str, int]:
        q = self.queue
        return {
            "waiting": q.count,
            "active": q.started_job_registry.count,
            "completed": q.finished_job_registry.count,
            "failed": q.failed_job_registry.count,
            "delayed": q.scheduled_job_registry.count + q.deferred_job_registry.count,
        }

    def _ids_by_state(self) -> Dict[str, List[str]]:
        q = self.queue
        return {
            "waiting": q.get_job_ids(),
            "active": q.started_job_registry.get_job_ids(),
            "completed": q.finished_job_registry.get_job_ids(),
            "failed": q.failed_job_registry.get_job_ids(),
        }

    def list_jobs(self, limit: int = 50) -> List[JobSnapshot]:
        """Jobs across the listed states, newest first, at most ``limit``."""
        snapshots: List[JobSnapshot] = []
        for state, ids in self._ids_by_state().items():
            if not ids:
                continue
            for job in Job.fetch_many(ids, connection=self.connection):
                # ids can outlive their job hash once the result TTL lapses
                if job is not None:
                    snapshots.append(JobSnapshot.from_job(job, state=state))
        snapshots.sort(key=_sort_key, reverse=True)
        return snapshots[:limit]

    def enqueue_dataset_sync(self, payload: Dict[str, Any], job_id: str) -> str:
        from dashboard_api.queue.tasks import sync_dataset  # pylint: disable=import-outside-toplevel

        settings = get_settings()
        job = self.queue.enqueue(
            sync_dataset,
            payload,
            job_id=job_id,
            retry=Retry(max=len(RETRY_INTERVALS), interval=RETRY_INTERVALS),
            job_timeout=settings.QUEUE_JOB_TIMEOUT,
            result_ttl=settings.QUEUE_RESULT_TTL,
            failure_ttl=settings.QUEUE_FAILURE_TTL,
            meta={"progress": 0},
            description=f"{payload.get('jobType')} sync for dataset {payload.get('datasetId')}",
        )
        QUEUE_ENQUEUED.labels(dataset_type=str(payload.get("jobType"))).inc()
        logger.info("queue.enqueued", job_id=job.id, dataset_id=payload.get("datasetId"))
        return job.id

    def remove_job(self, job_id: str) -> bool:
        job = self.queue.fetch_job(job_id)
        if job is None:
            return False
        job.delete()
        logger.info("queue.removed", job_id=job_id)
        return True


def _status_text(status: Any) -> str:
    if status is None:
        return "unknown"
    return str(getattr(status, "value", status))


def _last_line(exc_info: str | None) -> str | None:
    if not exc_info:
        return None
    lines = [line for line in exc_info.strip().splitlines() if line.strip()]
    return lines[-1] if lines else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _sort_key(snapshot: JobSnapshot) -> float:
    stamp = snapshot.enqueued_at or snapshot.started_at
    return stamp.timestamp() if stamp else 0.0
