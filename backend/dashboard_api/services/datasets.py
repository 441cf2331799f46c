"""Actuals and forecast dataset configuration for a comparison model.

Changing where a dataset's data comes from resets it to PENDING and drops the
previous load results, so a stale recordCount never survives a new source.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from dashboard_api.errors import BadRequest, Conflict, NotFound
from dashboard_api.models._common import utcnow
from dashboard_api.models.comparison_model import ForecastComparisonModel
from dashboard_api.models.datasets import ActualsDataset, DataSourceType, ForecastDataset, LoadStatus
from dashboard_api.schemas.common import iso
from dashboard_api.schemas.datasets import ActualsDatasetWrite, ForecastDatasetWrite
from .environments import environment_summary

logger = structlog.get_logger(__name__)

DATA_SOURCES = [s.value for s in DataSourceType]


def dataset_summary(dataset: ActualsDataset | ForecastDataset | None) -> Optional[Dict[str, Any]]:
    if dataset is None:
        return None
    payload = {
        "id": dataset.id,
        "name": dataset.name,
        "loadStatus": dataset.load_status,
        "recordCount": dataset.record_count,
        "loadedAt": iso(dataset.loaded_at),
    }
    if isinstance(dataset, ForecastDataset):
        payload["modelType"] = dataset.model_type
    return payload


def serialize_dataset(dataset: ActualsDataset | ForecastDataset | None) -> Optional[Dict[str, Any]]:
    if dataset is None:
        return None
    payload = {
        "id": dataset.id,
        "comparisonModelId": dataset.comparison_model_id,
        "name": dataset.name,
        "dataSource": dataset.data_source,
        "bigqueryTable": dataset.bigquery_table,
        "uploadedFile": dataset.uploaded_file,
        "recordCount": dataset.record_count,
        "dateRange": dataset.date_range,
        "loadStatus": dataset.load_status,
        "loadedAt": iso(dataset.loaded_at),
        "metadata": dataset.meta,
        "createdAt": iso(dataset.created_at),
        "updatedAt": iso(dataset.updated_at),
    }
    if isinstance(dataset, ForecastDataset):
        payload["modelType"] = dataset.model_type
        payload["ukgDimensionsJobId"] = dataset.ukg_dimensions_job_id
    return payload


def serialize_configured(dataset: ActualsDataset | ForecastDataset) -> Dict[str, Any]:
    payload = serialize_dataset(dataset)
    model = dataset.comparison_model
    payload["comparisonModel"] = {
        "id": model.id,
        "name": model.name,
        "environment": environment_summary(model.environment),
    }
    return payload


def _comparison_model(db: Session, model_id: str) -> ForecastComparisonModel:
    model = db.get(ForecastComparisonModel, model_id)
    if model is None:
        raise NotFound("Forecast comparison model not found")
    return model


def _check_source(data_source: str) -> None:
    if data_source not in DATA_SOURCES:
        raise BadRequest(f"Invalid dataSource. Must be one of: {', '.join(DATA_SOURCES)}")


def _source_meta(model: ForecastComparisonModel, **extra: Any) -> Dict[str, Any]:
    env = model.environment
    return {
        "environmentId": model.environment_id,
        "bigqueryProjectId": env.bigquery_project_id if env else None,
        "bigqueryDataset": env.bigquery_dataset if env else None,
        **extra,
    }


def _reset_load(dataset: ActualsDataset | ForecastDataset) -> None:
    dataset.load_status = LoadStatus.PENDING.value
    dataset.loaded_at = None
    dataset.record_count = None
    dataset.date_range = None


def create_actuals(db: Session, model_id: str, body: ActualsDatasetWrite) -> ActualsDataset:
    if not body.name or not body.data_source:
        raise BadRequest("Missing required fields: name, dataSource")
    _check_source(body.data_source)
    model = _comparison_model(db, model_id)
    if model.actuals_dataset is not None:
        raise Conflict("Actuals dataset already exists for this comparison model")

    dataset = ActualsDataset(
        comparison_model_id=model.id,
        name=body.name,
        data_source=body.data_source,
        bigquery_table=body.bigquery_table,
        uploaded_file=body.uploaded_file,
        load_status=LoadStatus.PENDING.value,
        meta=_source_meta(model),
    )
    db.add(dataset)
    db.commit()
    db.refresh(dataset)
    logger.info("datasets.actuals_created", dataset_id=dataset.id, model_id=model.id)
    return dataset


def replace_actuals(db: Session, model_id: str, body: ActualsDatasetWrite) -> ActualsDataset:
    if not body.name or not body.data_source:
        raise BadRequest("Missing required fields: name, dataSource")
    _check_source(body.data_source)
    model = _comparison_model(db, model_id)
    dataset = model.actuals_dataset
    if dataset is None:
        raise NotFound("Actuals dataset not found")

    dataset.name = body.name
    dataset.data_source = body.data_source
    dataset.bigquery_table = body.bigquery_table
    dataset.uploaded_file = body.uploaded_file
    _reset_load(dataset)
    dataset.meta = _source_meta(model, updatedAt=iso(utcnow()))
    db.commit()
    db.refresh(dataset)
    logger.info("datasets.actuals_replaced", dataset_id=dataset.id, model_id=model.id)
    return dataset


def delete_actuals(db: Session, model_id: str) -> None:
    dataset = db.execute(
        select(ActualsDataset).where(ActualsDataset.comparison_model_id == model_id)
    ).scalar_one_or_none()
    if dataset is None:
        raise NotFound("Actuals dataset not found")
    db.delete(dataset)
    db.commit()
    logger.info("datasets.actuals_deleted", dataset_id=dataset.id, model_id=model_id)


def list_forecasts(db: Session, model_id: str) -> List[ForecastDataset]:
    return list(_comparison_model(db, model_id).forecast_datasets)


def create_forecast(db: Session, model_id: str, body: ForecastDatasetWrite) -> ForecastDataset:
    if not body.name or not body.model_type or not body.data_source:
        raise BadRequest("Missing required fields: name, modelType, dataSource")
    _check_source(body.data_source)
    model = _comparison_model(db, model_id)

    dataset = ForecastDataset(
        comparison_model_id=model.id,
        name=body.name,
        model_type=body.model_type,
        data_source=body.data_source,
        bigquery_table=body.bigquery_table,
        ukg_dimensions_job_id=body.ukg_dimensions_job_id,
        uploaded_file=body.uploaded_file,
        load_status=LoadStatus.PENDING.value,
        meta=_source_meta(model, modelType=body.model_type, dataSource=body.data_source),
    )
    db.add(dataset)
    db.commit()
    db.refresh(dataset)
    logger.info("datasets.forecast_created", dataset_id=dataset.id, model_id=model.id)
    return dataset


def get_forecast(db: Session, dataset_id: str) -> ForecastDataset:
    dataset = db.get(ForecastDataset, dataset_id)
    if dataset is None:
        raise NotFound("Forecast dataset not found")
    return dataset


def update_forecast(db: Session, dataset_id: str, body: ForecastDatasetWrite) -> ForecastDataset:
    """Partial update; any configuration change sends the dataset back to PENDING."""
    dataset = get_forecast(db, dataset_id)
    sent = body.provided()
    changes: Dict[str, Optional[str]] = {}

    # name, modelType and dataSource cannot be blanked; the rest may be cleared with null
    for field in ("name", "model_type", "data_source"):
        if sent.get(field):
            changes[field] = sent[field]
    for field in ("bigquery_table", "ukg_dimensions_job_id", "uploaded_file"):
        if field in sent:
            changes[field] = sent[field]
    if "data_source" in changes:
        _check_source(changes["data_source"])
    if not changes:
        return dataset

    for field, value in changes.items():
        setattr(dataset, field, value)
    _reset_load(dataset)
    dataset.meta = _source_meta(
        dataset.comparison_model,
        modelType=dataset.model_type,
        dataSource=dataset.data_source,
        updatedAt=iso(utcnow()),
    )
    db.commit()
    db.refresh(dataset)
    logger.info("datasets.forecast_updated", dataset_id=dataset.id, fields=sorted(changes))
    return dataset


def delete_forecast(db: Session, dataset_id: str) -> None:
    dataset = get_forecast(db, dataset_id)
    db.delete(dataset)
    db.commit()
    logger.info("datasets.forecast_deleted", dataset_id=dataset_id)
