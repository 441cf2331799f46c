"""Thin wrapper over google-cloud-bigquery for the forecast warehouse.

A warehouse instance is stateful: ``connect_with_credentials`` picks the
project and dataset that later ``list_tables``/``count_rows`` calls use, so
callers create one per request or per job.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import structlog
from google.cloud import bigquery
from google.oauth2 import service_account

from dashboard_api.observability.metrics import record_upstream

logger = structlog.get_logger(__name__)

REQUIRED_TABLES = [
    "vVolumeForecast",
    "vActualVolume",
    "vBusinessStructure",
    "vCalendarDate",
    "vFiscalCalendar",
]

DEFAULT_TABLES = {"actuals": "vActualVolume", "forecast": "vVolumeForecast"}

_IDENTIFIER = re.compile(r"^[A-Za-z0-9_]+$")

ClientFactory = Callable[[Dict[str, Any]], Any]


def default_client_factory(credentials: Dict[str, Any]) -> bigquery.Client:
    creds = service_account.Credentials.from_service_account_info(credentials)
    return bigquery.Client(project=credentials["project_id"], credentials=creds)


@dataclass
class ConnectionResult:
    success: bool
    project_id: Optional[str] = None
    dataset: Optional[str] = None
    available_tables: Optional[List[str]] = None
    error: Optional[str] = None
    suggestions: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        for key, value in (
            ("projectId", self.project_id),
            ("dataset", self.dataset),
            ("availableTables", self.available_tables),
            ("error", self.error),
            ("suggestions", self.suggestions),
        ):
            if value is not None:
                payload[key] = value
        return payload


class BigQueryWarehouse:
    def __init__(self, client_factory: ClientFactory | None = None) -> None:
        self._client_factory = client_factory or default_client_factory
        self._client: Any = None
        self.project_id: str | None = None
        self.dataset: str | None = None

    def connect_with_credentials(
        self, credentials: Dict[str, Any], dataset: str | None = None
    ) -> ConnectionResult:
        """Build a client from service-account JSON and verify the forecast dataset.

        Never raises for upstream problems; failures come back as
        ``ConnectionResult(success=False, ...)``.
        """
        if not isinstance(credentials, dict) or not credentials.get("project_id"):
            return ConnectionResult(
                success=False, error="Invalid credentials: project_id is required"
            )
        self.project_id = credentials["project_id"]
        try:
            self._client = self._client_factory(credentials)
        except Exception as exc:
            logger.warning("bigquery.client_failed", project_id=self.project_id, error=str(exc))
            record_upstream("bigquery", False)
            return ConnectionResult(
                success=False, error=f"Failed to connect to BigQuery: {exc}"
            )
        result = self.test_connection(dataset)
        record_upstream("bigquery", result.success)
        return result

    def test_connection(self, requested_dataset: str | None = None) -> ConnectionResult:
        if self._client is None:
            return ConnectionResult(success=False, error="BigQuery client not initialized")
        try:
            datasets = self.list_datasets()
            chosen = self._pick_dataset(datasets, requested_dataset)
            if not chosen:
                return ConnectionResult(
                    success=False,
                    error='No dataset containing "detail" found',
                    project_id=self.project_id,
                    suggestions=[
                        'Ensure your BigQuery project has a dataset with "detail" in the name',
                        "Check that your service account has access to list datasets",
                        "Verify the dataset naming convention in your environment",
                    ],
                )
            self.dataset = chosen

            available = self.list_tables()
            missing = [t for t in REQUIRED_TABLES if t not in available]
            if missing:
                return ConnectionResult(
                    success=False,
                    error=f"Missing required tables: {', '.join(missing)}",
                    project_id=self.project_id,
                    dataset=self.dataset,
                    available_tables=available,
                    suggestions=[
                        "Ensure all required tables exist in the dataset",
                        "Check table naming conventions",
                        "Verify service account permissions for the dataset",
                    ],
                )
        except Exception as exc:
            logger.warning("bigquery.connection_test_failed", project_id=self.project_id, error=str(exc))
            return ConnectionResult(
                success=False,
                error=f"Connection test failed: {exc}",
                project_id=self.project_id,
            )

        logger.info(
            "bigquery.connected",
            project_id=self.project_id,
            dataset=self.dataset,
            tables=len(available),
        )
        return ConnectionResult(
            success=True,
            project_id=self.project_id,
            dataset=self.dataset,
            available_tables=available,
        )

    @staticmethod
    def _pick_dataset(datasets: List[str], requested: str | None) -> str | None:
        if requested and requested in datasets:
            return requested
        return next((d for d in datasets if "detail" in d.lower()), None)

    def list_datasets(self) -> List[str]:
        self._require_client()
        return [item.dataset_id for item in self._client.list_datasets()]

    def list_tables(self, dataset: str | None = None) -> List[str]:
        self._require_client()
        target = dataset or self.dataset
        if not target:
            raise RuntimeError("BigQuery dataset not selected")
        return [item.table_id for item in self._client.list_tables(f"{self.project_id}.{target}")]

    def count_rows(
        self,
        table: str,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> int:
        """Count rows of ``table`` with partitionDate inside the optional range."""
        self._require_client()
        if not self.dataset:
            raise RuntimeError("BigQuery dataset not selected")
        if not _IDENTIFIER.match(table):
            raise ValueError(f"Invalid table name: {table}")

        sql = f"SELECT COUNT(*) AS row_count FROM `{self.project_id}.{self.dataset}.{table}` WHERE 1=1"
        params = []
        if start_date:
            sql += " AND partitionDate >= @start_date"
            params.append(bigquery.ScalarQueryParameter("start_date", "DATE", _as_date(start_date)))
        if end_date:
            sql += " AND partitionDate <= @end_date"
            params.append(bigquery.ScalarQueryParameter("end_date", "DATE", _as_date(end_date)))

        job = self._client.query(sql, job_config=bigquery.QueryJobConfig(query_parameters=params))
        rows = list(job.result())
        return int(rows[0]["row_count"]) if rows else 0

    def _require_client(self) -> None:
        if self._client is None:
            raise RuntimeError("BigQuery client not initialized")


def _as_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
