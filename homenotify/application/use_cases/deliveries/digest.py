"""Daily digest email sweep."""

from __future__ import annotations

import logging
import os
import socket
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import partial
from uuid import uuid4

from sqlalchemy.orm import Session

from homenotify.config import get_settings
from homenotify.infrastructure.email import send_email
from homenotify.infrastructure.repositories import (
    JobLeaseRepository,
    NotificationDeliveryRepository,
)
from homenotify.utils import ensure_naive_utc, utcnow

from .batching import EmailTransport, send_delivery_batch
from .rendering import render_digest_email

logger = logging.getLogger(__name__)

DIGEST_LEASE_NAME = "email-digest"


@dataclass
class DigestSummary:
    """Counters describing one digest run."""

    users: int = 0
    emails_sent: int = 0
    deliveries_sent: int = 0
    deliveries_failed: int = 0
    errors: int = 0
    skipped: bool = False


def _default_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid4().hex[:8]}"


def send_email_digests(
    session: Session,
    *,
    transport: EmailTransport = send_email,
    max_items: int | None = None,
    now: datetime | None = None,
    holder: str | None = None,
) -> DigestSummary:
    """Send one digest email to every user with pending email deliveries.

    The run holds the ``email-digest`` lease; a run started while another
    holds it returns immediately with ``skipped=True``. A failure for one
    user is logged and the sweep moves on to the next.
    """

    settings = get_settings()
    fixed_now = ensure_naive_utc(now)
    started = fixed_now or utcnow()
    holder = holder or _default_holder()
    limit = max_items or settings.digest_max_items

    leases = JobLeaseRepository(session)
    acquired = leases.acquire(
        DIGEST_LEASE_NAME,
        holder=holder,
        now=started,
        ttl=timedelta(seconds=settings.digest_lease_seconds),
    )
    if not acquired:
        logger.info("Digest run skipped; another run holds the lease")
        return DigestSummary(skipped=True)

    summary = DigestSummary()
    deliveries = NotificationDeliveryRepository(session)
    render = partial(render_digest_email, generated_at=started)
    try:
        for user_id in deliveries.list_user_ids_with_pending_email():
            summary.users += 1
            try:
                items = deliveries.list_pending_email(user_id, limit=limit)
                if not items:
                    continue
                outcome = send_delivery_batch(
                    session,
                    user_id=user_id,
                    items=items,
                    render=render,
                    transport=transport,
                    now=fixed_now or utcnow(),
                )
            except Exception:  # one user's failure must not stop the sweep
                session.rollback()
                summary.errors += 1
                logger.exception("Digest for user %s failed", user_id)
                continue

            if outcome.sent:
                summary.emails_sent += 1
                summary.deliveries_sent += len(outcome.delivery_ids)
            else:
                summary.deliveries_failed += len(outcome.delivery_ids)
    finally:
        leases.release(DIGEST_LEASE_NAME, holder=holder, now=fixed_now or utcnow())

    logger.info(
        "Digest run finished: %s users, %s emails sent, %s deliveries failed, %s errors",
        summary.users,
        summary.emails_sent,
        summary.deliveries_failed,
        summary.errors,
    )
    return summary


__all__ = ["DIGEST_LEASE_NAME", "DigestSummary", "send_email_digests"]
