from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from dashboard_api.clients.ukg import BatchJobFilters, UKGProCredentials, UKGProError
from dashboard_api.db.session import get_db
from dashboard_api.deps import get_ukg_client_factory
from dashboard_api.errors import ApiError, BadRequest, UpstreamError
from dashboard_api.schemas.common import fail, ok
from dashboard_api.services.environments import UKGClientFactory, get_environment

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/ukg/batch-jobs", tags=["ukg"])


def _split(value: Optional[str]) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else []


async def _credentials(db: Session, environment_id: Optional[str]) -> UKGProCredentials:
    if not environment_id:
        raise BadRequest("Environment ID is required")
    env = await run_in_threadpool(get_environment, db, environment_id)
    credentials = UKGProCredentials.from_environment(env)
    if not credentials.is_complete():
        raise BadRequest("UKG Pro credentials not configured for this environment")
    return credentials


@router.get("/history")
async def batch_job_history(
    environment_id: Optional[str] = Query(None, alias="environmentId"),
    status: Optional[str] = Query(None),
    job_type: Optional[str] = Query(None, alias="jobType"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    created_by: Optional[str] = Query(None, alias="createdBy"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    ukg_factory: UKGClientFactory = Depends(get_ukg_client_factory),
):
    try:
        credentials = await _credentials(db, environment_id)
        filters = BatchJobFilters(
            status=_split(status),
            job_type=_split(job_type),
            start_date=start_date,
            end_date=end_date,
            created_by=created_by,
            limit=limit,
            offset=offset,
        )
        async with ukg_factory(credentials) as client:
            result = await client.get_batch_job_history(filters)
        return ok({"success": True, **result})
    except UKGProError as exc:
        raise UpstreamError(str(exc)) from exc
    except ApiError:
        raise
    except Exception:
        logger.exception("ukg.history_failed", environment_id=environment_id)
        return fail("INTERNAL_ERROR", "Failed to fetch batch job history", 500)


@router.get("/stats")
async def batch_job_stats(
    environment_id: Optional[str] = Query(None, alias="environmentId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    ukg_factory: UKGClientFactory = Depends(get_ukg_client_factory),
):
    try:
        credentials = await _credentials(db, environment_id)
        async with ukg_factory(credentials) as client:
            stats = await client.get_batch_job_stats(start_date, end_date)
        return ok({"success": True, "stats": stats})
    except UKGProError as exc:
        raise UpstreamError(str(exc)) from exc
    except ApiError:
        raise
    except Exception:
        logger.exception("ukg.stats_failed", environment_id=environment_id)
        return fail("INTERNAL_ERROR", "Failed to fetch batch job statistics", 500)
