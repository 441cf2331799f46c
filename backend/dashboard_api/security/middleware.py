from __future__ import annotations

from typing import Dict, Sequence

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

# Responses on these prefixes can carry connection details and must not be cached.
CREDENTIAL_PATHS: tuple[str, ...] = (
    "/api/environments",
    "/api/bigquery/connect",
    "/api/dimensions/connect",
)

BASE_HEADERS: Dict[str, str] = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


def build_security_headers(*, csp: str, hsts_max_age: int, enable_hsts: bool) -> Dict[str, str]:
    headers = dict(BASE_HEADERS)
    if csp:
        headers["Content-Security-Policy"] = csp
    if enable_hsts:
        headers["Strict-Transport-Security"] = f"max-age={hsts_max_age}; includeSubDomains; preload"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamps browser hardening headers on responses and marks credential routes no-store.

    Headers a route already set are left alone.
    """

    def __init__(
        self,
        app,
        *,
        csp: str,
        hsts_max_age: int,
        enable_hsts: bool,
        no_store_paths: Sequence[str] = CREDENTIAL_PATHS,
    ) -> None:
        super().__init__(app)
        self.headers = build_security_headers(
            csp=csp, hsts_max_age=hsts_max_age, enable_hsts=enable_hsts
        )
        self.no_store_paths = tuple(no_store_paths)

    def carries_credentials(self, path: str) -> bool:
        return path.startswith(self.no_store_paths)

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        if self.carries_credentials(request.url.path):
            response.headers["Cache-Control"] = "no-store"
        return response
