from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from dashboard_api.db.session import get_db
from dashboard_api.deps import get_job_queue
from dashboard_api.errors import ApiError, BadRequest
from dashboard_api.queue.accessor import JobQueue
from dashboard_api.schemas.common import fail, now_iso, ok
from dashboard_api.services import jobs as svc

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["jobs"])


@router.get("/jobs")
def list_jobs(db: Session = Depends(get_db), queue: JobQueue = Depends(get_job_queue)):
    try:
        return ok(svc.list_jobs(db, queue))
    except Exception:
        logger.exception("jobs.list_failed")
        return fail("INTERNAL_ERROR", "Failed to get jobs", 500)


@router.delete("/jobs")
def delete_job(
    job_id: Optional[str] = Query(None, alias="jobId"),
    queue: JobQueue = Depends(get_job_queue),
):
    try:
        if not job_id:
            raise BadRequest("Job ID is required")
        svc.remove_job(queue, job_id)
        return ok({"success": True})
    except ApiError:
        raise
    except Exception:
        logger.exception("jobs.delete_failed", job_id=job_id)
        return fail("INTERNAL_ERROR", "Failed to delete job", 500)


@router.get("/jobs/{job_id}/status")
def live_status(job_id: str, db: Session = Depends(get_db), queue: JobQueue = Depends(get_job_queue)):
    """Status straight from the queue, enriched with the dataset's metadata when available."""
    try:
        return ok(svc.live_job_status(db, queue, job_id))
    except ApiError:
        raise
    except Exception:
        logger.exception("jobs.status_failed", job_id=job_id)
        return fail("INTERNAL_ERROR", "Failed to get job status", 500)


def _probe(queue: JobQueue):
    try:
        return ok(svc.queue_health(queue))
    except RedisError as exc:
        logger.warning("queue.redis_unreachable", error=str(exc))
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Redis connection failed",
                "error": str(exc),
                "timestamp": now_iso(),
            },
        )


@router.get("/test-redis")
def test_redis(queue: JobQueue = Depends(get_job_queue)):
    return _probe(queue)


@router.get("/test-redis-connection")
def test_redis_connection(queue: JobQueue = Depends(get_job_queue)):
    return _probe(queue)
