"""Send one email for a batch of deliveries and resolve them together."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from homenotify.domain.entities import DeliveryStatus, Notification, Recipient
from homenotify.infrastructure.email import EmailDeliveryError
from homenotify.infrastructure.repositories import (
    NotificationDeliveryRepository,
    PendingEmail,
    UserRepository,
)

from .rendering import RenderedEmail

logger = logging.getLogger(__name__)

EmailTransport = Callable[[str, str, str], None]
Renderer = Callable[[Recipient, Sequence[Notification]], RenderedEmail]


@dataclass(frozen=True)
class BatchOutcome:
    """Result of resolving one batch of email deliveries."""

    user_id: str
    delivery_ids: tuple[str, ...]
    status: DeliveryStatus
    reason: str | None = None

    @property
    def sent(self) -> bool:
        return self.status is DeliveryStatus.SENT


def send_delivery_batch(
    session: Session,
    *,
    user_id: str,
    items: Sequence[PendingEmail],
    render: Renderer,
    transport: EmailTransport,
    now: datetime,
) -> BatchOutcome:
    """Render and send ``items`` as one email, then mark every delivery alike.

    All deliveries in the batch end ``SENT`` with the same ``sent_at`` or
    ``FAILED`` with the same reason; there is no partial resolution. Only
    :class:`EmailDeliveryError` fails the batch; any other error propagates
    and leaves the deliveries ``PENDING``.
    """

    deliveries = NotificationDeliveryRepository(session)
    delivery_ids = tuple(delivery.id for delivery, _ in items)

    recipient = UserRepository(session).get(user_id)
    if recipient is None:
        reason = f"Recipient {user_id} not found"
    elif not (recipient.email or "").strip():
        reason = f"Recipient {user_id} has no email address"
    else:
        email = render(recipient, [notification for _, notification in items])
        try:
            transport(email.subject, email.html, recipient.email)
        except EmailDeliveryError as exc:
            reason = str(exc) or exc.__class__.__name__
        else:
            deliveries.mark_sent(delivery_ids, sent_at=now)
            logger.info("Sent email with %s deliveries to user %s", len(delivery_ids), user_id)
            return BatchOutcome(user_id, delivery_ids, DeliveryStatus.SENT)

    deliveries.mark_failed(delivery_ids, reason=reason, now=now)
    logger.warning(
        "Email for user %s failed; %s deliveries marked FAILED: %s",
        user_id,
        len(delivery_ids),
        reason,
    )
    return BatchOutcome(user_id, delivery_ids, DeliveryStatus.FAILED, reason)


__all__ = ["BatchOutcome", "EmailTransport", "Renderer", "send_delivery_batch"]
