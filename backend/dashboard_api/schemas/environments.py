from __future__ import annotations

from typing import Any, Dict, Optional

from .common import CamelModel


class EnvironmentCreate(CamelModel):
    name: Optional[str] = None
    bigquery_credentials: Optional[Dict[str, Any]] = None
    bigquery_dataset: Optional[str] = None
    ukg_pro_url: Optional[str] = None
    ukg_pro_client_id: Optional[str] = None
    ukg_pro_client_secret: Optional[str] = None
    ukg_pro_app_key: Optional[str] = None
    ukg_pro_username: Optional[str] = None
    ukg_pro_password: Optional[str] = None


class EnvironmentUpdate(EnvironmentCreate):
    bigquery_project_id: Optional[str] = None
    is_active: Optional[bool] = None


class BigQueryConnectRequest(CamelModel):
    credentials: Optional[Dict[str, Any]] = None
    dataset: Optional[str] = None


class DimensionsConnectRequest(CamelModel):
    url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    app_key: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
