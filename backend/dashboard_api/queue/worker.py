"""Entry point for the ``dashboard-worker`` console script."""
from __future__ import annotations

import structlog
from rq import Worker

from dashboard_api.config import get_settings
from dashboard_api.db.session import init_db
from dashboard_api.observability.logging import configure_logging
from dashboard_api.queue.connection import get_queue, get_redis

logger = structlog.get_logger(__name__)


def main() -> None:
    configure_logging(process="worker")
    init_db()
    settings = get_settings()
    connection = get_redis()
    queue = get_queue(connection)
    logger.info("worker.starting", queue=settings.QUEUE_NAME)
    # The scheduler moves retried jobs back onto the queue once their back-off expires
    Worker([queue], connection=connection).work(with_scheduler=True)


if __name__ == "__main__":
    main()
