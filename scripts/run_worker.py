"""Run an RQ worker that sends immediate notification emails."""

from __future__ import annotations

import argparse
import logging

from rq import Queue, Worker

from homenotify.config import get_settings
from homenotify.infrastructure.queue import get_redis_connection

logger = logging.getLogger("homenotify.scripts.run_worker")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--burst",
        action="store_true",
        help="Exit once the queue is empty instead of waiting for new jobs",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = get_settings()
    connection = get_redis_connection()
    queue = Queue(settings.email_queue_name, connection=connection)
    worker = Worker([queue], connection=connection)

    mode = "burst" if args.burst else "continuous"
    logger.info("Starting RQ worker for queue '%s' in %s mode", queue.name, mode)
    try:
        worker.work(burst=args.burst)
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")


if __name__ == "__main__":
    main()
