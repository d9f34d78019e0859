"""Worker-side handling of one immediate email job."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from homenotify.config import get_settings
from homenotify.domain.entities import DeliveryChannel, DeliveryStatus, NotificationPriority
from homenotify.infrastructure.database import SessionLocal
from homenotify.infrastructure.email import send_email
from homenotify.infrastructure.repositories import NotificationDeliveryRepository, PendingEmail
from homenotify.utils import ensure_naive_utc, utcnow

from .batching import BatchOutcome, EmailTransport, send_delivery_batch
from .rendering import render_immediate_email

logger = logging.getLogger(__name__)


def _batch_with_seed(
    seed: PendingEmail, siblings: list[PendingEmail], limit: int
) -> list[PendingEmail]:
    seed_id = seed[0].id
    others = [item for item in siblings if item[0].id != seed_id]
    return [seed, *others[: max(limit - 1, 0)]]


def send_email_delivery(
    session: Session,
    delivery_id: str,
    *,
    transport: EmailTransport = send_email,
    max_batch: int | None = None,
    now: datetime | None = None,
) -> BatchOutcome | None:
    """Send the email for ``delivery_id`` together with its pending siblings.

    Nothing happens when the delivery no longer exists, is no longer
    ``PENDING`` or does not belong to a HIGH priority notification; this
    makes redelivered jobs harmless. Otherwise up to ``max_batch`` pending
    HIGH priority email deliveries of the same user, always including the
    seed, are sent as one message.
    """

    repository = NotificationDeliveryRepository(session)
    found = repository.get_with_notification(delivery_id)
    if found is None:
        logger.info("Delivery %s not found; nothing to send", delivery_id)
        return None

    seed, notification = found
    if seed.channel is not DeliveryChannel.EMAIL:
        logger.info("Delivery %s is a %s delivery; skipping", delivery_id, seed.channel.value)
        return None
    if seed.status is not DeliveryStatus.PENDING:
        logger.info("Delivery %s is already %s; skipping", delivery_id, seed.status.value)
        return None
    if not notification.is_high_priority():
        logger.info("Delivery %s is not HIGH priority; leaving it for the digest", delivery_id)
        return None

    limit = max_batch or get_settings().immediate_email_max_batch
    siblings = repository.list_pending_email(
        notification.user_id, limit=limit, priority=NotificationPriority.HIGH
    )
    items = _batch_with_seed(found, siblings, limit)

    return send_delivery_batch(
        session,
        user_id=notification.user_id,
        items=items,
        render=render_immediate_email,
        transport=transport,
        now=ensure_naive_utc(now) or utcnow(),
    )


def run_send_email_job(delivery_id: str) -> bool:
    """RQ entry point: process one ``send_email_delivery`` job in its own session."""

    session = SessionLocal()
    try:
        outcome = send_email_delivery(session, delivery_id)
    finally:
        session.close()
    return outcome is not None and outcome.sent


__all__ = ["run_send_email_job", "send_email_delivery"]
