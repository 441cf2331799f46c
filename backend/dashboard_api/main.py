# dashboard_api/main.py
from __future__ import annotations

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware

# Import router objects explicitly to avoid module name collisions
from dashboard_api.routers.health import router as health_router
from dashboard_api.routers.bigquery import router as bigquery_router
from dashboard_api.routers.dimensions import router as dimensions_router
from dashboard_api.routers.environments import router as environments_router
from dashboard_api.routers.forecast_runs import router as forecast_runs_router
from dashboard_api.routers.comparison_models import router as comparison_models_router
from dashboard_api.routers.comparison_runs import router as comparison_runs_router
from dashboard_api.routers.datasets import router as datasets_router
from dashboard_api.routers.data_loading import router as data_loading_router
from dashboard_api.routers.jobs import router as jobs_router
from dashboard_api.routers.ukg import router as ukg_router
from dashboard_api.db.session import init_db
from dashboard_api.observability.logging import configure_logging
from dashboard_api.observability.middleware import (
    register_exception_handlers,
    register_request_middleware,
)
from dashboard_api.observability.metrics import router as observability_router
from dashboard_api.security.middleware import SecurityHeadersMiddleware
from dashboard_api.config import get_settings

configure_logging()
logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Forecast Comparison Dashboard API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
        max_age=86400,
    )

    if settings.TRUSTED_HOSTS:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.TRUSTED_HOSTS)

    if settings.FORCE_HTTPS:
        app.add_middleware(HTTPSRedirectMiddleware)

    app.add_middleware(
        SecurityHeadersMiddleware,
        csp=settings.CONTENT_SECURITY_POLICY,
        hsts_max_age=settings.HSTS_MAX_AGE,
        enable_hsts=settings.FORCE_HTTPS,
    )

    register_request_middleware(app)
    register_exception_handlers(app)

    # Tables are created on startup so a brand-new database doesn't 500
    @app.on_event("startup")
    def _ensure_tables() -> None:
        try:
            init_db()
        except Exception:
            # don't block startup; requests surface the database error instead
            logger.exception("app.create_tables_failed")
        logger.info("app.started", env=settings.ENV)

    app.include_router(health_router)
    app.include_router(observability_router)
    app.include_router(bigquery_router)
    app.include_router(dimensions_router)
    app.include_router(environments_router)
    app.include_router(forecast_runs_router)
    app.include_router(comparison_models_router)
    app.include_router(comparison_runs_router)
    app.include_router(datasets_router)
    app.include_router(data_loading_router)
    app.include_router(jobs_router)
    app.include_router(ukg_router)

    return app


app = create_app()
