from fastapi import APIRouter

from dashboard_api.schemas.common import now_iso, ok

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
def healthcheck():
    return ok({"status": "ok", "timestamp": now_iso()})
