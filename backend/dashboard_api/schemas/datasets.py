from __future__ import annotations

from typing import Optional

from pydantic import ConfigDict

from .common import CamelModel


class ActualsDatasetWrite(CamelModel):
    """Body of both POST and PUT on a model's actuals dataset (PUT replaces the config)."""

    name: Optional[str] = None
    data_source: Optional[str] = None
    bigquery_table: Optional[str] = None
    uploaded_file: Optional[str] = None


class ForecastDatasetWrite(CamelModel):
    model_config = ConfigDict(protected_namespaces=())

    name: Optional[str] = None
    model_type: Optional[str] = None
    data_source: Optional[str] = None
    bigquery_table: Optional[str] = None
    ukg_dimensions_job_id: Optional[str] = None
    uploaded_file: Optional[str] = None


class UploadConfig(CamelModel):
    date_column: Optional[str] = None
    value_column: Optional[str] = None
    org_id_column: Optional[str] = None
