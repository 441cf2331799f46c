from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from dashboard_api.errors import BadRequest, NotFound
from dashboard_api.models.datasets import DATASET_MODELS, LoadStatus
from dashboard_api.schemas.common import iso


class JobStatus:
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


# LOADING / VALIDATING progress are fixed estimates, not measured progress
_STATUS_TABLE = {
    LoadStatus.PENDING.value: (JobStatus.PENDING, 0),
    LoadStatus.LOADING.value: (JobStatus.RUNNING, 50),
    LoadStatus.VALIDATING.value: (JobStatus.RUNNING, 75),
    LoadStatus.COMPLETED.value: (JobStatus.COMPLETED, 100),
    LoadStatus.FAILED.value: (JobStatus.FAILED, 0),
}

UNKNOWN_ERROR = "Unknown error occurred"


@dataclass(frozen=True)
class ParsedJobId:
    job_type: str
    dataset_type: str
    dataset_id: str


def parse_job_id(job_id: str) -> ParsedJobId:
    """<jobType>_<datasetType>_<datasetId>[_<suffix>...]"""
    parts = job_id.split("_")
    if len(parts) < 3:
        raise BadRequest("Invalid job ID format")
    job_type, dataset_type, dataset_id = parts[0], parts[1], parts[2]
    if dataset_type not in DATASET_MODELS:
        raise BadRequest('Invalid dataset type in job ID. Must be "actuals" or "forecast"')
    return ParsedJobId(job_type, dataset_type, dataset_id)


def derive_status(load_status: Optional[str], metadata: Optional[Dict[str, Any]]) -> tuple[str, int, Optional[str]]:
    """Map a dataset loadStatus to (job status, progress, error message)."""
    status, progress = _STATUS_TABLE.get(load_status or "", (JobStatus.UNKNOWN, 0))
    error = None
    if status == JobStatus.FAILED:
        error = (metadata or {}).get("error") or UNKNOWN_ERROR
    return status, progress, error


def resolve_job_status(db: Session, job_id: str) -> Dict[str, Any]:
    parsed = parse_job_id(job_id)
    dataset = db.get(DATASET_MODELS[parsed.dataset_type], parsed.dataset_id)
    if dataset is None:
        raise NotFound("Dataset not found")

    status, progress, error = derive_status(dataset.load_status, dataset.meta)
    return {
        "jobId": job_id,
        "jobType": parsed.job_type,
        "datasetType": parsed.dataset_type,
        "datasetId": parsed.dataset_id,
        "datasetName": dataset.name,
        "status": status,
        "progress": progress,
        "recordCount": dataset.record_count,
        "loadedAt": iso(dataset.loaded_at),
        "errorMessage": error,
        "metadata": dataset.meta,
    }
