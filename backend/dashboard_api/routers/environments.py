import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dashboard_api.clients.bigquery import BigQueryWarehouse
from dashboard_api.db.session import get_db
from dashboard_api.deps import get_ukg_client_factory, get_warehouse
from dashboard_api.errors import ApiError
from dashboard_api.schemas.common import fail, ok
from dashboard_api.schemas.environments import EnvironmentCreate, EnvironmentUpdate
from dashboard_api.services import environments as svc

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/environments", tags=["environments"])


@router.get("")
def list_environments(db: Session = Depends(get_db)):
    try:
        rows = svc.list_environments(db)
        return ok([svc.serialize_environment(e) for e in rows])
    except Exception:
        logger.exception("environments.list_failed")
        return fail("INTERNAL_ERROR", "Failed to fetch environments", 500)


@router.post("")
async def create_environment(
    body: EnvironmentCreate,
    db: Session = Depends(get_db),
    warehouse: BigQueryWarehouse = Depends(get_warehouse),
    ukg_factory: svc.UKGClientFactory = Depends(get_ukg_client_factory),
):
    try:
        env = await svc.create_environment(db, body, warehouse, ukg_factory)
        return ok(svc.serialize_environment(env))
    except ApiError:
        raise
    except Exception:
        logger.exception("environments.create_failed")
        return fail("INTERNAL_ERROR", "Failed to create environment", 500)


@router.get("/{environment_id}")
def get_environment(environment_id: str, db: Session = Depends(get_db)):
    try:
        return ok(svc.serialize_environment(svc.get_environment(db, environment_id)))
    except ApiError:
        raise
    except Exception:
        logger.exception("environments.get_failed", environment_id=environment_id)
        return fail("INTERNAL_ERROR", "Failed to fetch environment", 500)


@router.put("/{environment_id}")
def update_environment(environment_id: str, body: EnvironmentUpdate, db: Session = Depends(get_db)):
    try:
        env = svc.update_environment(db, environment_id, body)
        return ok(svc.serialize_environment(env))
    except ApiError:
        raise
    except Exception:
        logger.exception("environments.update_failed", environment_id=environment_id)
        return fail("INTERNAL_ERROR", "Failed to update environment", 500)


@router.delete("/{environment_id}")
def delete_environment(environment_id: str, db: Session = Depends(get_db)):
    try:
        svc.delete_environment(db, environment_id)
        return ok({"success": True})
    except ApiError:
        raise
    except Exception:
        logger.exception("environments.delete_failed", environment_id=environment_id)
        return fail("INTERNAL_ERROR", "Failed to delete environment", 500)
