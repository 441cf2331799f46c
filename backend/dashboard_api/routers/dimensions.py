import structlog
from fastapi import APIRouter, Depends

from dashboard_api.clients.ukg import UKGProCredentials
from dashboard_api.deps import get_ukg_client_factory
from dashboard_api.schemas.common import fail, ok
from dashboard_api.schemas.environments import DimensionsConnectRequest
from dashboard_api.services.environments import UKGClientFactory

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/dimensions", tags=["ukg"])

# (field, message) in the order the form asks for them
_REQUIRED = (
    ("url", "UKG Pro URL is required"),
    ("client_id", "Client ID is required"),
    ("client_secret", "Client Secret is required"),
    ("app_key", "App Key is required"),
    ("username", "Username is required"),
    ("password", "Password is required"),
)


@router.post("/connect")
async def connect(
    body: DimensionsConnectRequest,
    ukg_factory: UKGClientFactory = Depends(get_ukg_client_factory),
):
    for field, message in _REQUIRED:
        if not getattr(body, field):
            return fail("BAD_REQUEST", message, 400)

    credentials = UKGProCredentials(
        url=body.url,
        client_id=body.client_id,
        client_secret=body.client_secret,
        app_key=body.app_key,
        username=body.username,
        password=body.password,
    )
    try:
        async with ukg_factory(credentials) as client:
            result = await client.test_connection()
    except Exception:
        logger.exception("ukg.connect_error")
        return fail("INTERNAL_ERROR", "Failed to test UKG Pro connection", 500)

    if not result.get("success"):
        return fail("UPSTREAM_ERROR", result.get("error") or "Failed to connect to UKG Pro", 400)
    return ok(
        {
            "success": True,
            "message": "UKG Pro connection successful",
            "tenantInfo": result.get("tenantInfo"),
        }
    )
