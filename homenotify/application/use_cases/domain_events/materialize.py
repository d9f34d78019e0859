"""Create the notification for a domain event exactly once."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from homenotify.domain.entities import (
    METADATA_DOMAIN_EVENT_ID,
    METADATA_PRIORITY,
    DeliveryChannel,
    Notification,
)
from homenotify.infrastructure.repositories import NotificationRepository, UserRepository

from .handlers import NotificationDraft

logger = logging.getLogger(__name__)


def _channels_for_recipient(session: Session, draft: NotificationDraft) -> list[DeliveryChannel]:
    channels = list(dict.fromkeys(draft.channels))
    if DeliveryChannel.EMAIL not in channels:
        return channels
    recipient = UserRepository(session).get(draft.user_id)
    if recipient is not None and not recipient.email_notifications_enabled:
        logger.debug("User %s opted out of email; skipping EMAIL delivery", draft.user_id)
        channels.remove(DeliveryChannel.EMAIL)
    return channels


def ensure_notification_for_domain_event(
    session: Session, draft: NotificationDraft, *, domain_event_id: str
) -> Notification:
    """Return the notification for ``domain_event_id``, creating it if needed.

    An existing notification is returned untouched, so reprocessing a
    retried event never duplicates notifications or deliveries. When a
    concurrent consumer wins the insert race the unique constraint rejects
    ours and the winner's row is returned instead.
    """

    repository = NotificationRepository(session)
    lookup = dict(
        user_id=draft.user_id,
        notification_type=draft.notification_type,
        entity_type=draft.entity_type,
        entity_id=draft.entity_id,
        domain_event_id=domain_event_id,
    )

    existing = repository.find_for_domain_event(**lookup)
    if existing is not None:
        logger.debug(
            "Notification %s already exists for domain event %s", existing.id, domain_event_id
        )
        return existing

    notification = Notification(
        id=None,
        user_id=draft.user_id,
        type=draft.notification_type,
        title=draft.title,
        message=draft.message,
        entity_type=draft.entity_type,
        entity_id=draft.entity_id,
        action_url=draft.action_url,
        metadata={
            **draft.metadata,
            METADATA_DOMAIN_EVENT_ID: domain_event_id,
            METADATA_PRIORITY: draft.priority.value,
        },
    )

    try:
        return repository.create_with_deliveries(
            notification, _channels_for_recipient(session, draft)
        )
    except IntegrityError:
        session.rollback()
        winner = repository.find_for_domain_event(**lookup)
        if winner is None:
            raise
        logger.debug("Lost notification insert race for domain event %s", domain_event_id)
        return winner


__all__ = ["ensure_notification_for_domain_event"]
