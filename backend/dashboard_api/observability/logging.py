from __future__ import annotations

import logging
from typing import Any, Callable, Dict

import structlog

from dashboard_api.config import get_settings

# Chatty third-party loggers that would otherwise flood the JSON stream at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "google.auth", "rq.worker")


def configure_logging(level: str | None = None, *, process: str = "api") -> None:
    """Send stdlib and structlog output to stdout as one JSON object per line.

    ``process`` tags every line so API and worker output can share a sink.
    """
    log_level = (level or get_settings().LOG_LEVEL or "INFO").upper()
    numeric_level = logging.getLevelName(log_level)

    logging.basicConfig(level=log_level, format="%(message)s", handlers=[logging.StreamHandler()])
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _stamp_process(process),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            _rename_event_key,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def _stamp_process(process: str) -> Callable[[Any, str, Dict[str, Any]], Dict[str, Any]]:
    def processor(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("process", process)
        return event_dict

    return processor


def _rename_event_key(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    if "event" in event_dict:
        return event_dict
    msg = event_dict.pop("msg", None)
    if msg is not None:
        event_dict["event"] = msg
    return event_dict
