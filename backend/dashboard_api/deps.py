"""FastAPI dependencies for the external systems; tests override these."""
from __future__ import annotations

from dashboard_api.clients.bigquery import BigQueryWarehouse
from dashboard_api.clients.ukg import UKGProClient, UKGProCredentials
from dashboard_api.queue.accessor import JobQueue
from dashboard_api.queue.connection import get_queue
from dashboard_api.services.environments import UKGClientFactory


def get_warehouse() -> BigQueryWarehouse:
    return BigQueryWarehouse()


def _ukg_client(credentials: UKGProCredentials) -> UKGProClient:
    return UKGProClient(credentials)


def get_ukg_client_factory() -> UKGClientFactory:
    return _ukg_client


def get_job_queue() -> JobQueue:
    return JobQueue(get_queue())
