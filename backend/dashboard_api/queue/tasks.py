from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict

import structlog
from rq import get_current_job
from sqlalchemy.orm import Session

from dashboard_api.clients.bigquery import DEFAULT_TABLES, BigQueryWarehouse
from dashboard_api.db.session import get_sessionmaker
from dashboard_api.models.datasets import DATASET_MODELS, LoadStatus
from dashboard_api.observability.instrument import log_job

logger = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _report_progress(progress: int, **meta: Any) -> None:
    job = get_current_job()
    if job is None:
        return
    job.meta["progress"] = progress
    job.meta.update(meta)
    job.save_meta()


def _set_status(session: Session, dataset: Any, status: LoadStatus, **meta: Any) -> None:
    # Reassign so the JSON column is flagged dirty
    dataset.meta = {**(dataset.meta or {}), **meta}
    dataset.load_status = status.value
    session.commit()


@log_job("sync_dataset")
def sync_dataset(
    payload: Dict[str, Any],
    *,
    session_factory: Callable[[], Session] | None = None,
    warehouse_factory: Callable[[], BigQueryWarehouse] = BigQueryWarehouse,
) -> Dict[str, Any]:
    """Count the source rows for one dataset and move it PENDING -> COMPLETED.

    Runs inside an rq worker. Failures mark the dataset FAILED and re-raise so
    rq records the failure and schedules the retry.
    """
    job = get_current_job()
    job_id = job.id if job is not None else payload.get("jobId")
    dataset_type = payload.get("jobType")
    model = DATASET_MODELS.get(dataset_type)
    if model is None:
        raise ValueError(f"Unsupported jobType: {dataset_type}")

    session = (session_factory or get_sessionmaker())()
    try:
        dataset = session.get(model, payload.get("datasetId"))
        if dataset is None:
            raise LookupError(f"{dataset_type} dataset {payload.get('datasetId')} not found")
        try:
            environment = dataset.comparison_model.environment
            if not environment.bigquery_credentials:
                raise RuntimeError("Environment has no BigQuery credentials")

            _set_status(
                session,
                dataset,
                LoadStatus.LOADING,
                jobId=job_id,
                jobType=dataset_type,
                startDate=payload.get("startDate"),
                endDate=payload.get("endDate"),
                startedAt=_now().isoformat(),
                progress=50,
            )
            _report_progress(50)

            warehouse = warehouse_factory()
            result = warehouse.connect_with_credentials(
                environment.bigquery_credentials, environment.bigquery_dataset
            )
            if not result.success:
                raise RuntimeError(result.error or "BigQuery connection failed")

            _set_status(session, dataset, LoadStatus.VALIDATING, progress=75)
            _report_progress(75)

            table = payload.get("table") or dataset.bigquery_table or DEFAULT_TABLES[dataset_type]
            record_count = warehouse.count_rows(table, payload.get("startDate"), payload.get("endDate"))

            dataset.record_count = record_count
            dataset.loaded_at = _now()
            dataset.bigquery_table = table
            if payload.get("startDate") or payload.get("endDate"):
                dataset.date_range = {"start": payload.get("startDate"), "end": payload.get("endDate")}
            _set_status(
                session,
                dataset,
                LoadStatus.COMPLETED,
                completedAt=_now().isoformat(),
                progress=100,
            )
            _report_progress(100)
        except Exception as exc:
            session.rollback()
            _set_status(
                session,
                dataset,
                LoadStatus.FAILED,
                error=str(exc),
                failedAt=_now().isoformat(),
            )
            _report_progress(0, failed_reason=str(exc))
            logger.warning("sync.failed", dataset_id=dataset.id, error=str(exc))
            raise

        logger.info("sync.completed", dataset_id=dataset.id, record_count=record_count, table=table)
        return {"datasetId": dataset.id, "recordCount": record_count, "table": table}
    finally:
        session.close()
