from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from .common import CamelModel


class ComparisonModelCreate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    environment_id: Optional[str] = None
    # The dashboard sends these two in snake_case
    period_start: Optional[date] = Field(default=None, alias="period_start")
    period_end: Optional[date] = Field(default=None, alias="period_end")
    metadata: Optional[Dict[str, Any]] = None


class ComparisonModelUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    period_start: Optional[date] = Field(default=None, alias="period_start")
    period_end: Optional[date] = Field(default=None, alias="period_end")
    status: Optional[str] = None


class ComparisonRunCreate(CamelModel):
    name: Optional[str] = None
    selected_forecast_ids: Optional[List[str]] = None
    filters: Optional[Dict[str, Any]] = None


class ForecastRunCreate(CamelModel):
    model_config = ConfigDict(protected_namespaces=())

    environment_id: Optional[str] = None
    model_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    org_ids: Optional[List[str]] = None
    tables: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None
