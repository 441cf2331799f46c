from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dashboard_api.db.session import get_db
from dashboard_api.errors import ApiError
from dashboard_api.schemas.common import fail, ok
from dashboard_api.schemas.comparison import ForecastRunCreate
from dashboard_api.services import forecast_runs as svc
from dashboard_api.services.pagination import resolve_page

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/forecasts/runs", tags=["forecast-runs"])


@router.get("")
def list_forecast_runs(
    environment_id: Optional[str] = Query(None, alias="environmentId"),
    status: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    page: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        request = resolve_page(page=page, limit=limit, offset=offset, default_limit=50)
        return ok(svc.list_runs(db, request, environment_id=environment_id, status=status))
    except ApiError:
        raise
    except Exception:
        logger.exception("forecast_runs.list_failed")
        return fail("INTERNAL_ERROR", "Failed to fetch forecast runs", 500)


@router.post("")
def create_forecast_run(body: ForecastRunCreate, db: Session = Depends(get_db)):
    try:
        run = svc.create_run(db, body)
        return ok(
            {
                "success": True,
                "forecastRun": svc.serialize_run(run),
                "message": "Forecast run created successfully",
            }
        )
    except ApiError:
        raise
    except Exception:
        logger.exception("forecast_runs.create_failed")
        return fail("INTERNAL_ERROR", "Failed to create forecast run", 500)
