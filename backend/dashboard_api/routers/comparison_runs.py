from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dashboard_api.db.session import get_db
from dashboard_api.errors import ApiError
from dashboard_api.schemas.common import fail, ok
from dashboard_api.services import comparison as svc
from dashboard_api.services.pagination import resolve_page

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/comparison-runs", tags=["comparison-runs"])


@router.get("/{run_id}")
def get_run(run_id: str, db: Session = Depends(get_db)):
    try:
        return ok(svc.run_detail(db, run_id))
    except ApiError:
        raise
    except Exception:
        logger.exception("comparison_runs.get_failed", run_id=run_id)
        return fail("INTERNAL_ERROR", "Failed to fetch comparison run", 500)


@router.get("/{run_id}/results")
def list_results(
    run_id: str,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        request = resolve_page(page=page, limit=limit, offset=offset, default_limit=100)
        return ok(svc.list_results(db, run_id, request))
    except ApiError:
        raise
    except Exception:
        logger.exception("comparison_runs.results_failed", run_id=run_id)
        return fail("INTERNAL_ERROR", "Failed to fetch comparison results", 500)


@router.get("/{run_id}/summary")
def get_summary(run_id: str, db: Session = Depends(get_db)):
    try:
        return ok(svc.summarize_run(db, run_id))
    except ApiError:
        raise
    except Exception:
        logger.exception("comparison_runs.summary_failed", run_id=run_id)
        return fail("INTERNAL_ERROR", "Failed to summarise comparison run", 500)
