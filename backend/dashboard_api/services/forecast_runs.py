from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from dashboard_api.errors import BadRequest
from dashboard_api.models.forecast_run import ForecastRun, RunStatus
from dashboard_api.schemas.common import iso
from dashboard_api.schemas.comparison import ForecastRunCreate
from .environments import environment_summary, get_environment
from .pagination import PageRequest, page_meta

logger = structlog.get_logger(__name__)


def serialize_run(run: ForecastRun) -> Dict[str, Any]:
    return {
        "id": run.id,
        "environmentId": run.environment_id,
        "modelId": run.model_id,
        "bigqueryProjectId": run.bigquery_project_id,
        "status": run.status,
        "startTime": iso(run.start_time),
        "endTime": iso(run.end_time),
        "metadata": run.meta,
        "environment": environment_summary(run.environment),
    }


def list_runs(
    db: Session,
    page: PageRequest,
    *,
    environment_id: Optional[str] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    filters = []
    if environment_id:
        filters.append(ForecastRun.environment_id == environment_id)
    if status and status != "all":
        filters.append(ForecastRun.status == status)

    total = db.scalar(select(func.count()).select_from(ForecastRun).where(*filters)) or 0
    rows = db.execute(
        select(ForecastRun)
        .options(selectinload(ForecastRun.environment))
        .where(*filters)
        .order_by(ForecastRun.start_time.desc())
        .offset(page.offset)
        .limit(page.limit)
    ).scalars()

    pagination = page_meta(total, page)
    pagination["hasMore"] = pagination["hasNextPage"]
    return {"runs": [serialize_run(r) for r in rows], "pagination": pagination}


def create_run(db: Session, body: ForecastRunCreate) -> ForecastRun:
    if not body.environment_id or not body.start_date or not body.end_date:
        raise BadRequest("Environment ID, start date, and end date are required")
    env = get_environment(db, body.environment_id)

    now = datetime.now(timezone.utc)
    run = ForecastRun(
        environment_id=env.id,
        model_id=body.model_id or "manual-sync",
        bigquery_project_id=env.bigquery_project_id,
        status=RunStatus.PENDING.value,
        start_time=now,
        meta={
            "startDate": body.start_date,
            "endDate": body.end_date,
            "orgIds": body.org_ids,
            "tables": body.tables,
            **(body.metadata or {}),
            "createdAt": now.isoformat(),
        },
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    logger.info("forecast_runs.created", run_id=run.id, environment_id=env.id)
    return run
