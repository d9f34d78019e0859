"""Use case for returning a failed delivery to the pending pool."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from homenotify.domain.entities import DeliveryStatus, NotificationDelivery
from homenotify.infrastructure.repositories import NotificationDeliveryRepository
from homenotify.utils import ensure_naive_utc, utcnow


class DeliveryNotFoundError(ValueError):
    """The delivery does not exist or belongs to another user."""


class DeliveryNotRetryableError(ValueError):
    """Only ``FAILED`` deliveries can be retried."""


def retry_failed_delivery(
    session: Session,
    *,
    delivery_id: str,
    user_id: str,
    now: datetime | None = None,
) -> NotificationDelivery:
    repository = NotificationDeliveryRepository(session)

    found = repository.get_with_notification(delivery_id)
    if found is None or found[1].user_id != user_id:
        raise DeliveryNotFoundError("Delivery not found")

    delivery, _ = found
    if delivery.status is not DeliveryStatus.FAILED:
        raise DeliveryNotRetryableError(
            f"Only FAILED deliveries can be retried (current status: {delivery.status.value})"
        )

    if not repository.reset_failed(delivery_id, now=ensure_naive_utc(now) or utcnow()):
        raise DeliveryNotRetryableError("Delivery changed state while retrying")

    refreshed = repository.get(delivery_id)
    if refreshed is None:
        raise DeliveryNotFoundError("Delivery not found")
    return refreshed
