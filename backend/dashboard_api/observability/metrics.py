"""Prometheus collectors plus a rolling per-route latency window for the health page."""
from __future__ import annotations

from collections import defaultdict, deque
from typing import Any, Deque, Dict, List

import numpy as np
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

router = APIRouter()

LATENCY_WINDOW = 200

REQUEST_COUNTER = Counter(
    "http_requests_total",
    "HTTP requests served, labelled by route template",
    ["path", "method", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency by route template",
    ["path", "method"],
)
UPSTREAM_CALLS = Counter(
    "upstream_calls_total",
    "Calls to BigQuery and UKG Pro",
    ["service", "outcome"],
)
QUEUE_ENQUEUED = Counter(
    "queue_jobs_enqueued_total",
    "Dataset sync jobs put on the work queue",
    ["dataset_type"],
)

_route_samples: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=LATENCY_WINDOW))


def record_latency(path: str, duration_ms: float) -> None:
    _route_samples[path].append(duration_ms)


def record_upstream(service: str, success: bool) -> None:
    UPSTREAM_CALLS.labels(service=service, outcome="success" if success else "failure").inc()


def latency_summary() -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for path, samples in list(_route_samples.items()):
        if not samples:
            continue
        p50, p95 = np.percentile(np.fromiter(samples, dtype=float), [50, 95])
        rows.append(
            {
                "path": path,
                "p50_ms": round(float(p50), 2),
                "p95_ms": round(float(p95), 2),
                "sample_size": len(samples),
            }
        )
    return rows


@router.get("/metrics")
async def metrics_endpoint() -> PlainTextResponse:
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/api/health/latency")
async def latency_health() -> Dict[str, List[Dict[str, Any]]]:
    return {"paths": latency_summary()}
