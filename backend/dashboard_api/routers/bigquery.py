import structlog
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from dashboard_api.clients.bigquery import BigQueryWarehouse
from dashboard_api.deps import get_warehouse
from dashboard_api.schemas.common import fail, ok
from dashboard_api.schemas.environments import BigQueryConnectRequest

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/bigquery", tags=["bigquery"])


@router.post("/connect")
async def connect(body: BigQueryConnectRequest, warehouse: BigQueryWarehouse = Depends(get_warehouse)):
    if not body.credentials:
        return fail("BAD_REQUEST", "BigQuery credentials are required", 400)
    try:
        result = await run_in_threadpool(
            warehouse.connect_with_credentials, body.credentials, body.dataset
        )
    except Exception:
        logger.exception("bigquery.connect_error")
        return fail("INTERNAL_ERROR", "Failed to connect to BigQuery", 500)

    if not result.success:
        return fail(
            "UPSTREAM_ERROR",
            result.error or "BigQuery connection failed",
            400,
            projectId=result.project_id,
            suggestions=result.suggestions,
        )
    return ok(
        {
            "success": True,
            "projectId": result.project_id,
            "dataset": result.dataset,
            "availableTables": result.available_tables,
        }
    )
