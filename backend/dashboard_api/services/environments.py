from __future__ import annotations

from typing import Any, Callable, Dict, List

import structlog
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dashboard_api.clients.bigquery import BigQueryWarehouse
from dashboard_api.clients.ukg import UKGProClient, UKGProCredentials
from dashboard_api.errors import BadRequest, NotFound, UpstreamError
from dashboard_api.models.comparison_model import ForecastComparisonModel
from dashboard_api.models.environment import Environment
from dashboard_api.models.forecast_run import ForecastRun
from dashboard_api.schemas.common import iso
from dashboard_api.schemas.environments import EnvironmentCreate, EnvironmentUpdate

logger = structlog.get_logger(__name__)

UKGClientFactory = Callable[[UKGProCredentials], UKGProClient]

# Columns a PUT may overwrite; secrets are write-only
_UPDATABLE = (
    "name",
    "bigquery_project_id",
    "bigquery_dataset",
    "bigquery_credentials",
    "ukg_pro_url",
    "ukg_pro_client_id",
    "ukg_pro_client_secret",
    "ukg_pro_app_key",
    "ukg_pro_username",
    "ukg_pro_password",
    "is_active",
)


def serialize_environment(env: Environment) -> Dict[str, Any]:
    return {
        "id": env.id,
        "name": env.name,
        "bigqueryProjectId": env.bigquery_project_id,
        "bigqueryDataset": env.bigquery_dataset,
        "hasBigqueryCredentials": bool(env.bigquery_credentials),
        "ukgProUrl": env.ukg_pro_url,
        "ukgProClientId": env.ukg_pro_client_id,
        "ukgProAppKey": env.ukg_pro_app_key,
        "ukgProUsername": env.ukg_pro_username,
        "ukgProConfigured": env.ukg_pro_configured,
        "isActive": env.is_active,
        "createdAt": iso(env.created_at),
        "updatedAt": iso(env.updated_at),
    }


def environment_summary(env: Environment | None) -> Dict[str, Any] | None:
    if env is None:
        return None
    return {"id": env.id, "name": env.name, "bigqueryProjectId": env.bigquery_project_id}


def list_environments(db: Session) -> List[Environment]:
    stmt = select(Environment).order_by(Environment.created_at.desc())
    return list(db.execute(stmt).scalars())


def get_environment(db: Session, environment_id: str) -> Environment:
    env = db.get(Environment, environment_id)
    if env is None:
        raise NotFound("Environment not found")
    return env


async def create_environment(
    db: Session,
    body: EnvironmentCreate,
    warehouse: BigQueryWarehouse,
    ukg_factory: UKGClientFactory,
) -> Environment:
    """Validate both upstream connections, then persist.

    Nothing is written unless BigQuery connects and, when all six UKG
    fields are supplied, UKG Pro connects too.
    """
    if not body.name:
        raise BadRequest("Environment name is required")
    if not body.bigquery_credentials:
        raise BadRequest("BigQuery credentials are required")

    result = await run_in_threadpool(
        warehouse.connect_with_credentials, body.bigquery_credentials, body.bigquery_dataset
    )
    if not result.success:
        logger.info("environments.bigquery_rejected", error=result.error)
        raise UpstreamError(f"BigQuery connection failed: {result.error}")

    ukg_credentials = UKGProCredentials(
        url=body.ukg_pro_url,
        client_id=body.ukg_pro_client_id,
        client_secret=body.ukg_pro_client_secret,
        app_key=body.ukg_pro_app_key,
        username=body.ukg_pro_username,
        password=body.ukg_pro_password,
    )
    if ukg_credentials.is_complete():
        async with ukg_factory(ukg_credentials) as client:
            ukg_result = await client.test_connection()
        if not ukg_result.get("success"):
            logger.info("environments.ukg_rejected", error=ukg_result.get("error"))
            raise UpstreamError(f"UKG Pro connection failed: {ukg_result.get('error')}")

    env = Environment(
        name=body.name,
        bigquery_project_id=result.project_id,
        bigquery_dataset=result.dataset,
        bigquery_credentials=body.bigquery_credentials,
        ukg_pro_url=body.ukg_pro_url or None,
        ukg_pro_client_id=body.ukg_pro_client_id or None,
        ukg_pro_client_secret=body.ukg_pro_client_secret or None,
        ukg_pro_app_key=body.ukg_pro_app_key or None,
        ukg_pro_username=body.ukg_pro_username or None,
        ukg_pro_password=body.ukg_pro_password or None,
    )
    return await run_in_threadpool(_persist, db, env)


def _persist(db: Session, env: Environment) -> Environment:
    db.add(env)
    db.commit()
    db.refresh(env)
    logger.info("environments.created", environment_id=env.id, project_id=env.bigquery_project_id)
    return env


def update_environment(db: Session, environment_id: str, body: EnvironmentUpdate) -> Environment:
    """Overwrite every field present in the body; connections are not re-validated."""
    env = get_environment(db, environment_id)
    changes = {k: v for k, v in body.provided().items() if k in _UPDATABLE}
    if "name" in changes and not changes["name"]:
        raise BadRequest("Environment name cannot be empty")
    if "is_active" in changes and changes["is_active"] is None:
        changes["is_active"] = True
    for field, value in changes.items():
        setattr(env, field, value)
    db.commit()
    db.refresh(env)
    logger.info("environments.updated", environment_id=env.id, fields=sorted(changes))
    return env


def delete_environment(db: Session, environment_id: str) -> None:
    env = get_environment(db, environment_id)

    runs = db.scalar(
        select(func.count()).select_from(ForecastRun).where(ForecastRun.environment_id == env.id)
    )
    if runs:
        raise BadRequest("Cannot delete environment with associated forecast runs")
    models = db.scalar(
        select(func.count())
        .select_from(ForecastComparisonModel)
        .where(ForecastComparisonModel.environment_id == env.id)
    )
    if models:
        raise BadRequest("Cannot delete environment with associated forecast comparison models")

    db.delete(env)
    db.commit()
    logger.info("environments.deleted", environment_id=environment_id)
