from __future__ import annotations

from datetime import date
from typing import Any, Dict, List

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from dashboard_api.errors import BadRequest, Conflict, NotFound
from dashboard_api.models._common import utcnow
from dashboard_api.models.comparison import ComparisonResult, ComparisonRun
from dashboard_api.models.comparison_model import ComparisonModelStatus, ForecastComparisonModel
from dashboard_api.models.datasets import ForecastDataset, LoadStatus
from dashboard_api.models.forecast_run import RunStatus
from dashboard_api.schemas.common import iso
from dashboard_api.schemas.comparison import (
    ComparisonModelCreate,
    ComparisonModelUpdate,
    ComparisonRunCreate,
)
from .comparison import serialize_comparison_run, serialize_result
from .datasets import dataset_summary, serialize_dataset
from .environments import environment_summary, get_environment

logger = structlog.get_logger(__name__)

DUPLICATE_NAME = "A forecast comparison model with this name already exists"
PREVIEW_ROWS = 100


def _base(model: ForecastComparisonModel) -> Dict[str, Any]:
    return {
        "id": model.id,
        "name": model.name,
        "description": model.description,
        "environmentId": model.environment_id,
        "period_start": iso(model.period_start),
        "period_end": iso(model.period_end),
        "status": model.status,
        "metadata": model.meta,
        "createdAt": iso(model.created_at),
        "updatedAt": iso(model.updated_at),
        "environment": environment_summary(model.environment),
    }


def serialize_model_list_item(model: ForecastComparisonModel) -> Dict[str, Any]:
    latest = model.comparison_runs[:1]
    return {
        **_base(model),
        "actualsDataset": dataset_summary(model.actuals_dataset),
        "forecastDatasets": [dataset_summary(d) for d in model.forecast_datasets],
        "comparisonRuns": [
            {"id": r.id, "name": r.name, "status": r.status, "createdAt": iso(r.created_at)}
            for r in latest
        ],
    }


def _run_with_preview(db: Session, run: ComparisonRun) -> Dict[str, Any]:
    rows = db.execute(
        select(ComparisonResult)
        .where(ComparisonResult.comparison_run_id == run.id)
        .order_by(ComparisonResult.partition_date.desc(), ComparisonResult.org_id.asc())
        .limit(PREVIEW_ROWS)
    ).scalars()
    return {**serialize_comparison_run(run), "results": [serialize_result(r) for r in rows]}


def serialize_model_detail(db: Session, model: ForecastComparisonModel) -> Dict[str, Any]:
    payload = _base(model)
    if model.environment is not None:
        payload["environment"]["bigqueryDataset"] = model.environment.bigquery_dataset
    payload["actualsDataset"] = serialize_dataset(model.actuals_dataset)
    payload["forecastDatasets"] = [serialize_dataset(d) for d in model.forecast_datasets]
    payload["comparisonRuns"] = [_run_with_preview(db, r) for r in model.comparison_runs]
    return payload


def list_models(db: Session) -> List[ForecastComparisonModel]:
    stmt = (
        select(ForecastComparisonModel)
        .options(
            selectinload(ForecastComparisonModel.environment),
            selectinload(ForecastComparisonModel.actuals_dataset),
            selectinload(ForecastComparisonModel.forecast_datasets),
            selectinload(ForecastComparisonModel.comparison_runs),
        )
        .order_by(ForecastComparisonModel.created_at.desc())
    )
    return list(db.execute(stmt).scalars())


def get_model(db: Session, model_id: str) -> ForecastComparisonModel:
    model = db.get(ForecastComparisonModel, model_id)
    if model is None:
        raise NotFound("Forecast comparison model not found")
    return model


def _name_taken(db: Session, name: str) -> bool:
    stmt = select(ForecastComparisonModel.id).where(ForecastComparisonModel.name == name)
    return db.execute(stmt).first() is not None


def _check_period(start: date | None, end: date | None) -> None:
    if start and end and end < start:
        raise BadRequest("period_end must not be before period_start")


def _commit_unique(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        # A concurrent insert won the unique(name) race
        db.rollback()
        raise Conflict(DUPLICATE_NAME) from exc


def create_model(db: Session, body: ComparisonModelCreate) -> ForecastComparisonModel:
    if not body.name or not body.environment_id or not body.period_start or not body.period_end:
        raise BadRequest("Missing required fields: name, environmentId, period_start, period_end")
    _check_period(body.period_start, body.period_end)
    env = get_environment(db, body.environment_id)
    if _name_taken(db, body.name):
        raise Conflict(DUPLICATE_NAME)

    model = ForecastComparisonModel(
        name=body.name,
        description=body.description,
        environment_id=env.id,
        period_start=body.period_start,
        period_end=body.period_end,
        status=ComparisonModelStatus.DRAFT.value,
        meta=body.metadata,
    )
    db.add(model)
    _commit_unique(db)
    db.refresh(model)
    logger.info("comparison_models.created", model_id=model.id, environment_id=env.id)
    return model


def update_model(db: Session, model_id: str, body: ComparisonModelUpdate) -> ForecastComparisonModel:
    model = get_model(db, model_id)
    fields = body.provided()

    if body.name and body.name != model.name and _name_taken(db, body.name):
        raise Conflict(DUPLICATE_NAME)
    if body.status and body.status not in ComparisonModelStatus.__members__:
        raise BadRequest(
            f"Invalid status. Must be one of: {', '.join(ComparisonModelStatus.__members__)}"
        )
    _check_period(body.period_start or model.period_start, body.period_end or model.period_end)

    if body.name:
        model.name = body.name
    if "description" in fields:
        model.description = body.description
    if body.period_start:
        model.period_start = body.period_start
    if body.period_end:
        model.period_end = body.period_end
    if body.status:
        model.status = body.status
    _commit_unique(db)
    db.refresh(model)
    logger.info("comparison_models.updated", model_id=model.id, fields=sorted(fields))
    return model


def delete_model(db: Session, model_id: str) -> None:
    model = get_model(db, model_id)
    db.delete(model)
    db.commit()
    logger.info("comparison_models.deleted", model_id=model_id)


def list_model_runs(db: Session, model_id: str) -> List[Dict[str, Any]]:
    model = get_model(db, model_id)
    return [_run_with_preview(db, r) for r in model.comparison_runs]


def create_model_run(db: Session, model_id: str, body: ComparisonRunCreate) -> ComparisonRun:
    if not body.name or not body.selected_forecast_ids:
        raise BadRequest("Missing required fields: name, selectedForecastIds (must not be empty)")
    model = get_model(db, model_id)

    actuals = model.actuals_dataset
    if actuals is None:
        raise BadRequest("Actuals dataset is required before running comparisons")
    if actuals.load_status != LoadStatus.COMPLETED.value:
        raise BadRequest("Actuals dataset must be fully loaded before running comparisons")

    selected = list(dict.fromkeys(body.selected_forecast_ids))
    datasets = list(
        db.execute(
            select(ForecastDataset).where(
                ForecastDataset.comparison_model_id == model.id,
                ForecastDataset.id.in_(selected),
            )
        ).scalars()
    )
    if len(datasets) != len(selected):
        raise BadRequest("One or more selected forecast datasets not found")
    unloaded = [d for d in datasets if d.load_status != LoadStatus.COMPLETED.value]
    if unloaded:
        raise BadRequest(
            "All selected forecast datasets must be fully loaded before running comparisons",
            details={
                "unloadedDatasets": [
                    {"id": d.id, "name": d.name, "loadStatus": d.load_status} for d in unloaded
                ]
            },
        )

    run = ComparisonRun(
        comparison_model_id=model.id,
        name=body.name,
        selected_forecast_ids=selected,
        filters=body.filters,
        status=RunStatus.PENDING.value,
        start_time=utcnow(),
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    logger.info("comparison_runs.created", run_id=run.id, model_id=model.id, forecasts=len(selected))
    return run
