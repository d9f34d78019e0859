"""Hand urgent email deliveries over to the work queue."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from homenotify.config import get_settings
from homenotify.infrastructure.queue import SEND_EMAIL_JOB, WorkQueue, WorkQueueError
from homenotify.infrastructure.repositories import NotificationDeliveryRepository
from homenotify.utils import ensure_naive_utc, utcnow

logger = logging.getLogger(__name__)


def email_job_key(delivery_id: str) -> str:
    return f"email:{delivery_id}"


def enqueue_high_priority_deliveries(
    session: Session,
    queue: WorkQueue,
    *,
    batch_size: int | None = None,
    now: datetime | None = None,
) -> int:
    """Claim pending HIGH priority email deliveries and submit one send job each.

    A delivery is claimed by stamping ``enqueued_at``; only deliveries whose
    stamp was still empty are claimed, so overlapping runs never submit the
    same delivery twice. When submission fails the stamp is cleared again so
    the next run retries. Returns the number of jobs submitted.
    """

    settings = get_settings()
    repository = NotificationDeliveryRepository(session)

    candidates = repository.list_enqueue_candidates(
        limit=batch_size or settings.email_enqueue_batch_size
    )
    if not candidates:
        return 0

    stamp = (ensure_naive_utc(now) or utcnow()).replace(microsecond=0)
    claimed = repository.claim_for_enqueue(candidates, stamp=stamp)
    if len(claimed) < len(candidates):
        logger.debug(
            "Claimed %s of %s enqueue candidates; the rest were taken",
            len(claimed),
            len(candidates),
        )

    submitted = 0
    for delivery_id in claimed:
        try:
            accepted = queue.enqueue(
                SEND_EMAIL_JOB,
                {"delivery_id": delivery_id},
                idempotency_key=email_job_key(delivery_id),
            )
        except WorkQueueError as exc:
            logger.warning("Could not enqueue delivery %s: %s", delivery_id, exc)
            repository.release_enqueue_claim(delivery_id, stamp=stamp)
            continue
        if accepted:
            submitted += 1

    if claimed:
        logger.info("Submitted %s immediate email jobs", submitted)
    return submitted


__all__ = ["email_job_key", "enqueue_high_priority_deliveries"]
