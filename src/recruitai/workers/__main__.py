"""Worker service entry point: ``python -m recruitai.workers``."""

import signal
import sys
import asyncio
import logging

from recruitai.celery_app import AI_QUEUES, celery_app
from recruitai.config import settings
from recruitai.utils.logging import setup_logging
from recruitai.utils.redis import close_redis

logger = logging.getLogger(__name__)


def shutdown_handler(signum, frame):  # noqa: ARG001
    """Handle graceful shutdown."""
    logger.info("Received shutdown signal, gracefully stopping...")
    celery_app.control.shutdown()
    try:
        asyncio.run(close_redis())
    except Exception as e:
        logger.error(f"Error closing Redis: {e}")
    logger.info("Worker shutdown complete")
    sys.exit(0)


def main():
    setup_logging(settings.LOG_LEVEL)
    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    logger.info("Starting worker service...")
    celery_app.worker_main([
        "worker",
        f"--loglevel={settings.LOG_LEVEL.lower()}",
        f"--concurrency={settings.WORKER_CONCURRENCY}",
        f"--queues={','.join(AI_QUEUES)}",
    ])


if __name__ == "__main__":
    main()
