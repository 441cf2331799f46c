from __future__ import annotations

import io
import time
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from dashboard_api.errors import BadRequest, NotFound, ServiceUnavailable, UploadFailed
from dashboard_api.models._common import utcnow
from dashboard_api.models.datasets import DATASET_MODELS, LoadStatus
from dashboard_api.queue.accessor import JobQueue, sync_job_id
from dashboard_api.schemas.data_loading import BigQuerySyncRequest
from dashboard_api.schemas.datasets import UploadConfig

logger = structlog.get_logger(__name__)


def start_bigquery_sync(db: Session, body: BigQuerySyncRequest, queue: JobQueue) -> Dict[str, Any]:
    """Mark the dataset PENDING and hand the sync to the worker."""
    if not body.dataset_id or not body.dataset_type or body.bigquery_config is None:
        raise BadRequest("Missing required fields: datasetId, datasetType, bigqueryConfig")
    model = DATASET_MODELS.get(body.dataset_type)
    if model is None:
        raise BadRequest('Invalid datasetType. Must be "actuals" or "forecast"')

    dataset = db.get(model, body.dataset_id)
    if dataset is None:
        raise NotFound(f"{body.dataset_type} dataset not found")
    environment = dataset.comparison_model.environment
    if not environment.bigquery_credentials:
        raise BadRequest("BigQuery credentials not configured for this environment")

    config = body.bigquery_config
    job_id = sync_job_id(body.dataset_type, dataset.id)
    payload = {
        "jobType": body.dataset_type,
        "datasetId": dataset.id,
        "environmentId": environment.id,
        "table": config.table,
        "startDate": config.start_date,
        "endDate": config.end_date,
    }

    dataset.load_status = LoadStatus.PENDING.value
    meta = {k: v for k, v in (dataset.meta or {}).items() if k != "error"}
    dataset.meta = {**meta, "jobId": job_id, "progress": 0}
    db.commit()

    try:
        queue.enqueue_dataset_sync(payload, job_id)
    except RedisError as exc:
        logger.exception("queue.enqueue_failed", job_id=job_id, dataset_id=dataset.id)
        dataset.load_status = LoadStatus.FAILED.value
        dataset.meta = {**(dataset.meta or {}), "error": f"Failed to queue sync job: {exc}"}
        db.commit()
        raise ServiceUnavailable("Job queue is unavailable") from exc

    return {
        "success": True,
        "jobId": job_id,
        "datasetId": dataset.id,
        "datasetType": body.dataset_type,
        "status": LoadStatus.PENDING.value,
    }


UPLOAD_CONTENT_TYPES = ("text/csv", "application/csv", "application/vnd.ms-excel")


def upload_job_id(dataset_type: str, dataset_id: str) -> str:
    return f"upload_{dataset_type}_{dataset_id}_{int(time.time() * 1000)}"


def _required_columns(dataset_type: str, config: UploadConfig) -> List[str]:
    # forecasts are per-organisation, actuals may be a single series
    required = [config.date_column, config.value_column]
    if dataset_type == "forecast":
        required.append(config.org_id_column)
    if not all(required):
        names = "dateColumn, valueColumn" + (", orgIdColumn" if dataset_type == "forecast" else "")
        raise BadRequest(f"config must name the columns to load: {names}")
    return required


def read_upload_frame(raw: bytes) -> pd.DataFrame:
    try:
        frame = pd.read_csv(io.BytesIO(raw), dtype=str, encoding="utf-8-sig", skip_blank_lines=True)
    except pd.errors.EmptyDataError as exc:
        raise ValueError("No data found in uploaded file") from exc
    frame.columns = [str(c).strip() for c in frame.columns]
    frame = frame.dropna(how="all")
    if frame.empty:
        raise ValueError("No data found in uploaded file")
    return frame


def summarize_upload(frame: pd.DataFrame, columns: List[str]) -> Tuple[int, Dict[str, str]]:
    """Check the configured columns and return (record count, date range)."""
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    date_column, value_column = columns[0], columns[1]
    dates = pd.to_datetime(frame[date_column].str.strip(), errors="coerce", format="mixed").dropna()
    if dates.empty:
        raise ValueError(f"Column '{date_column}' contains no valid dates")
    values = pd.to_numeric(frame[value_column], errors="coerce")
    if values.isna().all():
        raise ValueError(f"Column '{value_column}' contains no numeric values")

    date_range = {"start": dates.min().date().isoformat(), "end": dates.max().date().isoformat()}
    return len(frame), date_range


def ingest_upload(
    db: Session,
    *,
    dataset_id: Optional[str],
    dataset_type: Optional[str],
    config_json: Optional[str],
    filename: Optional[str],
    content_type: Optional[str],
    raw: Optional[bytes],
) -> Dict[str, Any]:
    """Load a CSV into a dataset synchronously, moving it LOADING -> COMPLETED or FAILED."""
    if raw is None or not dataset_id or not dataset_type or not config_json:
        raise BadRequest("Missing required fields: file, datasetId, datasetType, config")
    model = DATASET_MODELS.get(dataset_type)
    if model is None:
        raise BadRequest('Invalid datasetType. Must be "actuals" or "forecast"')
    if (content_type or "").lower() not in UPLOAD_CONTENT_TYPES:
        raise BadRequest("Invalid file type. Only CSV files are supported")
    try:
        config = UploadConfig.model_validate_json(config_json)
    except ValidationError as exc:
        raise BadRequest("config must be a JSON object") from exc
    columns = _required_columns(dataset_type, config)

    dataset = db.get(model, dataset_id)
    if dataset is None:
        raise NotFound(f"{dataset_type} dataset not found")

    job_id = upload_job_id(dataset_type, dataset.id)
    stored_name = f"{job_id}_{filename or 'upload.csv'}"
    previous = {k: v for k, v in (dataset.meta or {}).items() if k != "error"}
    dataset.load_status = LoadStatus.LOADING.value
    dataset.meta = {**previous, "jobId": job_id}
    db.commit()

    try:
        record_count, date_range = summarize_upload(read_upload_frame(raw), columns)
    except ValueError as exc:
        dataset.load_status = LoadStatus.FAILED.value
        dataset.meta = {**previous, "jobId": job_id, "error": str(exc)}
        db.commit()
        logger.warning("data_loading.upload_failed", job_id=job_id, error=str(exc))
        raise UploadFailed(str(exc), details={"jobId": job_id, "status": LoadStatus.FAILED.value}) from exc

    dataset.load_status = LoadStatus.COMPLETED.value
    dataset.record_count = record_count
    dataset.date_range = date_range
    dataset.loaded_at = utcnow()
    dataset.uploaded_file = stored_name
    dataset.meta = {**previous, "jobId": job_id, "progress": 100}
    db.commit()
    logger.info("data_loading.upload_completed", job_id=job_id, records=record_count)

    return {
        "jobId": job_id,
        "status": LoadStatus.COMPLETED.value,
        "recordCount": record_count,
        "dateRange": date_range,
        "fileName": stored_name,
        "message": f"Successfully uploaded and processed {record_count} records from file",
    }
