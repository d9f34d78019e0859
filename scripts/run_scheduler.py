"""Run the domain event poller, the email enqueue poller and the daily digest."""

from __future__ import annotations

import argparse
import logging

from homenotify.infrastructure.database import initialize_database
from homenotify.scheduler import build_scheduler

logger = logging.getLogger("homenotify.scripts.run_scheduler")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    initialize_database()
    scheduler = build_scheduler()
    logger.info("Starting notification scheduler")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    main()
