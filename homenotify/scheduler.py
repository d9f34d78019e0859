"""APScheduler wiring for the pollers and the daily digest."""

from __future__ import annotations

import logging
from collections.abc import Callable

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from homenotify.application.use_cases.deliveries import (
    enqueue_high_priority_deliveries,
    send_email_digests,
)
from homenotify.application.use_cases.domain_events import process_domain_events
from homenotify.config import get_settings
from homenotify.infrastructure.database import SessionLocal
from homenotify.infrastructure.queue import RQWorkQueue, WorkQueue
from homenotify.utils import get_app_timezone

logger = logging.getLogger(__name__)

DOMAIN_EVENTS_JOB_ID = "domain_events_poller"
EMAIL_ENQUEUE_JOB_ID = "email_enqueue_poller"
EMAIL_DIGEST_JOB_ID = "email_digest"


def _run_in_session(name: str, task: Callable[[Session], object]) -> None:
    session = SessionLocal()
    try:
        result = task(session)
        logger.debug("%s finished: %s", name, result)
    except Exception:  # scheduled jobs must keep running on the next tick
        session.rollback()
        logger.exception("%s failed", name)
    finally:
        session.close()


def run_domain_event_poller() -> None:
    _run_in_session("Domain event poller", process_domain_events)


def run_email_enqueue_poller(queue: WorkQueue) -> None:
    _run_in_session(
        "Email enqueue poller",
        lambda session: enqueue_high_priority_deliveries(session, queue),
    )


def run_email_digest() -> None:
    _run_in_session("Email digest", send_email_digests)


def build_scheduler(
    scheduler: BaseScheduler | None = None,
    *,
    queue: WorkQueue | None = None,
) -> BaseScheduler:
    """Register the three pipeline jobs on ``scheduler`` (a blocking one by default)."""

    settings = get_settings()
    scheduler = scheduler or BlockingScheduler(
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300}
    )
    queue = queue or RQWorkQueue()

    scheduler.add_job(
        run_domain_event_poller,
        IntervalTrigger(seconds=settings.domain_event_poll_seconds),
        id=DOMAIN_EVENTS_JOB_ID,
        name=f"Process domain events (every {settings.domain_event_poll_seconds} seconds)",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    scheduler.add_job(
        run_email_enqueue_poller,
        IntervalTrigger(seconds=settings.email_enqueue_poll_seconds),
        args=[queue],
        id=EMAIL_ENQUEUE_JOB_ID,
        name=f"Enqueue urgent emails (every {settings.email_enqueue_poll_seconds} seconds)",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    scheduler.add_job(
        run_email_digest,
        CronTrigger(
            hour=settings.digest_hour,
            minute=settings.digest_minute,
            timezone=get_app_timezone(),
        ),
        id=EMAIL_DIGEST_JOB_ID,
        name="Send daily email digests",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info("Scheduler configured with %s jobs", len(scheduler.get_jobs()))
    return scheduler


__all__ = [
    "DOMAIN_EVENTS_JOB_ID",
    "EMAIL_DIGEST_JOB_ID",
    "EMAIL_ENQUEUE_JOB_ID",
    "build_scheduler",
    "run_domain_event_poller",
    "run_email_digest",
    "run_email_enqueue_poller",
]
