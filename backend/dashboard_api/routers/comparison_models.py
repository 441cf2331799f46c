import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dashboard_api.db.session import get_db
from dashboard_api.errors import ApiError
from dashboard_api.schemas.common import fail, ok
from dashboard_api.schemas.comparison import (
    ComparisonModelCreate,
    ComparisonModelUpdate,
    ComparisonRunCreate,
)
from dashboard_api.services import comparison_models as svc
from dashboard_api.services.comparison import serialize_comparison_run
from dashboard_api.services.environments import environment_summary

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/forecast-comparison-models", tags=["comparison-models"])


@router.get("")
def list_models(db: Session = Depends(get_db)):
    try:
        return ok([svc.serialize_model_list_item(m) for m in svc.list_models(db)])
    except Exception:
        logger.exception("comparison_models.list_failed")
        return fail("INTERNAL_ERROR", "Failed to fetch forecast comparison models", 500)


@router.post("")
def create_model(body: ComparisonModelCreate, db: Session = Depends(get_db)):
    try:
        model = svc.create_model(db, body)
        return ok(svc.serialize_model_list_item(model), status_code=201)
    except ApiError:
        raise
    except Exception:
        logger.exception("comparison_models.create_failed")
        return fail("INTERNAL_ERROR", "Failed to create forecast comparison model", 500)


@router.get("/{model_id}")
def get_model(model_id: str, db: Session = Depends(get_db)):
    try:
        return ok(svc.serialize_model_detail(db, svc.get_model(db, model_id)))
    except ApiError:
        raise
    except Exception:
        logger.exception("comparison_models.get_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to fetch forecast comparison model", 500)


@router.put("/{model_id}")
def update_model(model_id: str, body: ComparisonModelUpdate, db: Session = Depends(get_db)):
    try:
        model = svc.update_model(db, model_id, body)
        return ok(svc.serialize_model_list_item(model))
    except ApiError:
        raise
    except Exception:
        logger.exception("comparison_models.update_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to update forecast comparison model", 500)


@router.delete("/{model_id}")
def delete_model(model_id: str, db: Session = Depends(get_db)):
    try:
        svc.delete_model(db, model_id)
        return ok({"message": "Forecast comparison model deleted successfully"})
    except ApiError:
        raise
    except Exception:
        logger.exception("comparison_models.delete_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to delete forecast comparison model", 500)


@router.get("/{model_id}/runs")
def list_runs(model_id: str, db: Session = Depends(get_db)):
    try:
        return ok(svc.list_model_runs(db, model_id))
    except ApiError:
        raise
    except Exception:
        logger.exception("comparison_runs.list_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to fetch comparison runs", 500)


@router.post("/{model_id}/runs")
def create_run(model_id: str, body: ComparisonRunCreate, db: Session = Depends(get_db)):
    try:
        run = svc.create_model_run(db, model_id, body)
        model = run.comparison_model
        payload = serialize_comparison_run(run)
        payload["comparisonModel"] = {
            "id": model.id,
            "name": model.name,
            "environment": environment_summary(model.environment),
        }
        return ok(payload, status_code=201)
    except ApiError:
        raise
    except Exception:
        logger.exception("comparison_runs.create_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to create comparison run", 500)
