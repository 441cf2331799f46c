from __future__ import annotations

import functools
import time
from typing import Any, Callable, TypeVar

import structlog

F = TypeVar("F", bound=Callable[..., Any])

logger = structlog.get_logger("job")


def _job_context(args: tuple[Any, ...]) -> dict[str, Any]:
    # Queue tasks take the job payload dict as their first argument
    if args and isinstance(args[0], dict):
        payload = args[0]
        return {
            "job_type": payload.get("jobType"),
            "dataset_id": payload.get("datasetId"),
        }
    return {}


def log_job(name: str) -> Callable[[F], F]:
    """Decorator to measure queue task duration and emit structured logs."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            ctx = _job_context(args)
            start = time.perf_counter()
            logger.info("job.start", job=name, **ctx)
            try:
                result = func(*args, **kwargs)
            except Exception:
                duration = (time.perf_counter() - start) * 1000
                logger.exception("job.error", job=name, duration_ms=round(duration, 2), **ctx)
                raise
            duration = (time.perf_counter() - start) * 1000
            record_count = result.get("recordCount") if isinstance(result, dict) else None
            logger.info(
                "job.completed",
                job=name,
                duration_ms=round(duration, 2),
                record_count=record_count,
                **ctx,
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
