from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from dashboard_api.db.session import get_db
from dashboard_api.deps import get_job_queue
from dashboard_api.errors import ApiError
from dashboard_api.queue.accessor import JobQueue
from dashboard_api.schemas.common import fail, ok
from dashboard_api.schemas.data_loading import BigQuerySyncRequest
from dashboard_api.services.data_loading import ingest_upload, start_bigquery_sync
from dashboard_api.services.job_status import resolve_job_status

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/data-loading", tags=["data-loading"])


@router.get("/status/{job_id}")
def job_status(job_id: str, db: Session = Depends(get_db)):
    """Job status derived from the dataset's loadStatus (no queue lookup)."""
    try:
        return ok(resolve_job_status(db, job_id))
    except ApiError:
        raise
    except Exception:
        logger.exception("data_loading.status_failed", job_id=job_id)
        return fail("INTERNAL_ERROR", "Failed to check job status", 500)


@router.post("/bigquery-sync")
def bigquery_sync(
    body: BigQuerySyncRequest,
    db: Session = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    try:
        return ok(start_bigquery_sync(db, body, queue), status_code=202)
    except ApiError:
        raise
    except Exception:
        logger.exception("data_loading.sync_failed", dataset_id=body.dataset_id)
        return fail("INTERNAL_ERROR", "Failed to sync BigQuery data", 500)


@router.post("/file-upload")
async def file_upload(
    file: Optional[UploadFile] = File(None),
    dataset_id: Optional[str] = Form(None, alias="datasetId"),
    dataset_type: Optional[str] = Form(None, alias="datasetType"),
    config: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    """Load a CSV straight into a dataset; the returned upload_ job id works with /status."""
    try:
        raw = await file.read() if file is not None else None
        return ok(
            ingest_upload(
                db,
                dataset_id=dataset_id,
                dataset_type=dataset_type,
                config_json=config,
                filename=file.filename if file is not None else None,
                content_type=file.content_type if file is not None else None,
                raw=raw,
            )
        )
    except ApiError:
        raise
    except Exception:
        logger.exception("data_loading.upload_crashed", dataset_id=dataset_id)
        return fail("INTERNAL_ERROR", "Failed to process uploaded file", 500)
