"""Async client for the UKG Pro (Dimensions) workforce API."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import structlog

from dashboard_api.config import get_settings
from dashboard_api.observability.metrics import record_upstream

logger = structlog.get_logger(__name__)

TOKEN_PATH = "/oauth2/v1/token"
MULTI_READ_PATH = "/wfc/api/v1/commons/data/multi_read"
HEALTH_PATH = "/wfc/api/v1/health"
BATCH_HISTORY_PATH = "/wfc/api/v1/batch/jobs/history"
BATCH_STATS_PATH = "/wfc/api/v1/batch/jobs/stats"

TOKEN_SCOPE = "openid profile email"
# Tokens are dropped this many seconds before the server says they expire
TOKEN_EXPIRY_MARGIN = 60

_PROBE_QUERY = {
    "select": [{"key": "EMP_COMMON_FULL_NAME"}],
    "from": {
        "view": "EMP",
        "employeeSet": {
            "hyperfind": {"id": "1"},
            "dateRange": {"symbolicPeriod": {"id": 5}},
        },
    },
}


class UKGProError(Exception):
    pass


@dataclass(frozen=True)
class UKGProCredentials:
    url: Optional[str]
    client_id: Optional[str]
    client_secret: Optional[str]
    app_key: Optional[str]
    username: Optional[str]
    password: Optional[str]

    @classmethod
    def from_environment(cls, env: Any) -> "UKGProCredentials":
        return cls(
            url=env.ukg_pro_url,
            client_id=env.ukg_pro_client_id,
            client_secret=env.ukg_pro_client_secret,
            app_key=env.ukg_pro_app_key,
            username=env.ukg_pro_username,
            password=env.ukg_pro_password,
        )

    def is_complete(self) -> bool:
        return all(
            (self.url, self.client_id, self.client_secret, self.app_key, self.username, self.password)
        )

    @property
    def base_url(self) -> str:
        return (self.url or "").rstrip("/")


@dataclass
class BatchJobFilters:
    status: List[str] = field(default_factory=list)
    job_type: List[str] = field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    created_by: Optional[str] = None
    limit: int = 50
    offset: int = 0

    def to_params(self) -> List[tuple[str, str]]:
        # Repeated keys for multi-valued filters: status=a&status=b
        params: List[tuple[str, str]] = [("status", s) for s in self.status]
        params += [("jobType", t) for t in self.job_type]
        for key, value in (
            ("startDate", self.start_date),
            ("endDate", self.end_date),
            ("createdBy", self.created_by),
        ):
            if value:
                params.append((key, value))
        if self.limit:
            params.append(("limit", str(self.limit)))
        if self.offset:
            params.append(("offset", str(self.offset)))
        return params


class UKGProClient:
    def __init__(
        self,
        credentials: UKGProCredentials,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.credentials = credentials
        self._http = httpx.AsyncClient(
            base_url=credentials.base_url,
            timeout=timeout if timeout is not None else get_settings().UKG_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._access_token: str | None = None
        self._token_expiry = 0.0

    async def __aenter__(self) -> "UKGProClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request_token(self, grant: Dict[str, str]) -> Dict[str, Any]:
        form = {
            "client_id": self.credentials.client_id or "",
            "client_secret": self.credentials.client_secret or "",
            "scope": TOKEN_SCOPE,
            **grant,
        }
        response = await self._http.post(
            TOKEN_PATH,
            data=form,
            headers={"appkey": self.credentials.app_key or "", "Accept": "application/json"},
        )
        response.raise_for_status()
        return response.json()

    async def get_access_token(self) -> str:
        if self._access_token and time.monotonic() < self._token_expiry:
            return self._access_token

        try:
            token = await self._request_token({"grant_type": "client_credentials"})
        except httpx.HTTPError as exc:
            logger.info("ukg.client_credentials_failed", error=_describe(exc))
            try:
                token = await self._request_token(
                    {
                        "grant_type": "password",
                        "username": self.credentials.username or "",
                        "password": self.credentials.password or "",
                    }
                )
            except httpx.HTTPError as password_exc:
                logger.warning("ukg.token_failed", error=_describe(password_exc, "error_description"))
                raise UKGProError(
                    f"Authentication failed: {_describe(password_exc, 'error_description')}"
                ) from password_exc

        if not token.get("access_token"):
            raise UKGProError("Authentication failed: token response carried no access_token")
        self._access_token = token["access_token"]
        expires_in = float(token.get("expires_in") or 0)
        self._token_expiry = time.monotonic() + expires_in - TOKEN_EXPIRY_MARGIN
        return self._access_token

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "appkey": self.credentials.app_key or "",
        }
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("ukg.api_error", method=method, path=path, error=_describe(exc))
            raise UKGProError(f"UKG Pro API Error: {_describe(exc)}") from exc
        if not response.content:
            return {}
        return response.json()

    async def test_connection(self) -> Dict[str, Any]:
        tenant_info = {"url": self.credentials.base_url, "clientId": self.credentials.client_id}
        try:
            await self.get_access_token()
            await self._call("POST", MULTI_READ_PATH, json=_PROBE_QUERY)
        except UKGProError as exc:
            # multi_read needs view permissions some API users lack; the health probe does not
            try:
                await self._call("GET", HEALTH_PATH)
            except UKGProError:
                record_upstream("ukg", False)
                return {"success": False, "error": str(exc)}
        record_upstream("ukg", True)
        logger.info("ukg.connected", url=self.credentials.base_url)
        return {"success": True, "tenantInfo": tenant_info}

    async def get_batch_job_history(self, filters: BatchJobFilters | None = None) -> Dict[str, Any]:
        filters = filters or BatchJobFilters()
        await self.get_access_token()
        data = await self._call("GET", BATCH_HISTORY_PATH, params=filters.to_params())
        total = int(data.get("total") or 0)
        limit = filters.limit or 50
        offset = filters.offset or 0
        return {
            "jobs": data.get("jobs") or [],
            "total": total,
            "pagination": {
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < total,
            },
        }

    async def get_batch_job_stats(
        self, start_date: str | None = None, end_date: str | None = None
    ) -> Dict[str, Any]:
        await self.get_access_token()
        params = {}
        if start_date:
            params["startDate"] = start_date
        if end_date:
            params["endDate"] = end_date
        return await self._call("GET", BATCH_STATS_PATH, params=params)


def _describe(exc: httpx.HTTPError, key: str = "message") -> str:
    """Prefer the upstream JSON error message over httpx's generic text."""
    response = getattr(exc, "response", None) if isinstance(exc, httpx.HTTPStatusError) else None
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get(key):
            return str(body[key])
    return str(exc)
