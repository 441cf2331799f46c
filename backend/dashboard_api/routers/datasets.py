import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dashboard_api.db.session import get_db
from dashboard_api.errors import ApiError
from dashboard_api.schemas.common import fail, ok
from dashboard_api.schemas.datasets import ActualsDatasetWrite, ForecastDatasetWrite
from dashboard_api.services import datasets as svc

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["datasets"])


@router.post("/forecast-comparison-models/{model_id}/actuals")
def create_actuals(model_id: str, body: ActualsDatasetWrite, db: Session = Depends(get_db)):
    try:
        return ok(svc.serialize_configured(svc.create_actuals(db, model_id, body)), status_code=201)
    except ApiError:
        raise
    except Exception:
        logger.exception("datasets.actuals_create_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to create actuals dataset", 500)


@router.put("/forecast-comparison-models/{model_id}/actuals")
def replace_actuals(model_id: str, body: ActualsDatasetWrite, db: Session = Depends(get_db)):
    try:
        return ok(svc.serialize_configured(svc.replace_actuals(db, model_id, body)))
    except ApiError:
        raise
    except Exception:
        logger.exception("datasets.actuals_update_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to update actuals dataset", 500)


@router.delete("/forecast-comparison-models/{model_id}/actuals")
def delete_actuals(model_id: str, db: Session = Depends(get_db)):
    try:
        svc.delete_actuals(db, model_id)
        return ok({"message": "Actuals dataset deleted successfully"})
    except ApiError:
        raise
    except Exception:
        logger.exception("datasets.actuals_delete_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to delete actuals dataset", 500)


@router.get("/forecast-comparison-models/{model_id}/forecasts")
def list_forecasts(model_id: str, db: Session = Depends(get_db)):
    try:
        return ok([svc.serialize_dataset(d) for d in svc.list_forecasts(db, model_id)])
    except ApiError:
        raise
    except Exception:
        logger.exception("datasets.forecast_list_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to fetch forecast datasets", 500)


@router.post("/forecast-comparison-models/{model_id}/forecasts")
def create_forecast(model_id: str, body: ForecastDatasetWrite, db: Session = Depends(get_db)):
    try:
        return ok(svc.serialize_configured(svc.create_forecast(db, model_id, body)), status_code=201)
    except ApiError:
        raise
    except Exception:
        logger.exception("datasets.forecast_create_failed", model_id=model_id)
        return fail("INTERNAL_ERROR", "Failed to create forecast dataset", 500)


@router.put("/forecast-datasets/{dataset_id}")
def update_forecast(dataset_id: str, body: ForecastDatasetWrite, db: Session = Depends(get_db)):
    try:
        return ok(svc.serialize_configured(svc.update_forecast(db, dataset_id, body)))
    except ApiError:
        raise
    except Exception:
        logger.exception("datasets.forecast_update_failed", dataset_id=dataset_id)
        return fail("INTERNAL_ERROR", "Failed to update forecast dataset", 500)


@router.delete("/forecast-datasets/{dataset_id}")
def delete_forecast(dataset_id: str, db: Session = Depends(get_db)):
    try:
        svc.delete_forecast(db, dataset_id)
        return ok({"message": "Forecast dataset deleted successfully"})
    except ApiError:
        raise
    except Exception:
        logger.exception("datasets.forecast_delete_failed", dataset_id=dataset_id)
        return fail("INTERNAL_ERROR", "Failed to delete forecast dataset", 500)
