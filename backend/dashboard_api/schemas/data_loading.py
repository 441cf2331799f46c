from __future__ import annotations

from typing import Optional

from .common import CamelModel


class BigQuerySyncConfig(CamelModel):
    table: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class BigQuerySyncRequest(CamelModel):
    dataset_id: Optional[str] = None
    dataset_type: Optional[str] = None
    bigquery_config: Optional[BigQuerySyncConfig] = None
