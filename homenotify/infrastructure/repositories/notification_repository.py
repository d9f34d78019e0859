"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from homenotify.domain.entities import (
    DeliveryChannel,
    DeliveryStatus,
    Notification,
    NotificationDelivery,
)
from homenotify.infrastructure.models import NotificationDeliveryModel, NotificationModel
from homenotify.utils import utcnow


class NotificationRepository:
    """Provide create and read operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: str) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def find_for_domain_event(
        self,
        *,
        user_id: str,
        notification_type: str,
        entity_type: str,
        entity_id: str,
        domain_event_id: str,
    ) -> Notification | None:
        """Return the notification already materialized for a domain event, if any."""

        model = (
            self.session.query(NotificationModel)
            .options(selectinload(NotificationModel.deliveries))
            .filter(
                NotificationModel.user_id == user_id,
                NotificationModel.type == notification_type,
                NotificationModel.entity_type == entity_type,
                NotificationModel.entity_id == entity_id,
                NotificationModel.domain_event_id == domain_event_id,
            )
            .first()
        )
        return self._to_entity(model) if model else None

    def create_with_deliveries(
        self, notification: Notification, channels: Iterable[DeliveryChannel]
    ) -> Notification:
        """Persist ``notification`` and one ``PENDING`` delivery per channel in one commit."""

        now = utcnow()
        model = NotificationModel()
        model.user_id = notification.user_id
        model.type = notification.type
        model.title = notification.title
        model.message = notification.message
        model.action_url = notification.action_url
        model.entity_type = notification.entity_type
        model.entity_id = notification.entity_id
        model.metadata_ = dict(notification.metadata or {})
        model.domain_event_id = notification.domain_event_id
        model.priority = notification.priority.value
        model.created_at = notification.created_at or now
        for channel in dict.fromkeys(channels):
            model.deliveries.append(
                NotificationDeliveryModel(
                    channel=DeliveryChannel(channel).value,
                    status=DeliveryStatus.PENDING.value,
                    created_at=now,
                    updated_at=now,
                )
            )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_for_user(self, user_id: str, *, limit: int | None = 30) -> Sequence[Notification]:
        query = (
            self.session.query(NotificationModel)
            .options(selectinload(NotificationModel.deliveries))
            .filter(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_unread(self, user_id: str) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.read_at.is_(None))
            .scalar()
            or 0
        )

    def mark_as_read(self, notification_ids: Iterable[str], *, user_id: str) -> int:
        ids = [notification_id for notification_id in notification_ids if notification_id]
        if not ids:
            return 0
        affected = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id.in_(ids),
                NotificationModel.user_id == user_id,
                NotificationModel.read_at.is_(None),
            )
            .update({NotificationModel.read_at: utcnow()}, synchronize_session=False)
        )
        self.session.commit()
        return affected

    def mark_all_as_read(self, *, user_id: str) -> int:
        affected = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.user_id == user_id,
                NotificationModel.read_at.is_(None),
            )
            .update({NotificationModel.read_at: utcnow()}, synchronize_session=False)
        )
        self.session.commit()
        return affected

    @staticmethod
    def _to_entity(model: NotificationModel, *, include_deliveries: bool = True) -> Notification:
        deliveries: list[NotificationDelivery] = []
        if include_deliveries:
            deliveries = [delivery_to_entity(delivery) for delivery in model.deliveries]
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=model.type,
            title=model.title,
            message=model.message,
            entity_type=model.entity_type,
            entity_id=model.entity_id,
            action_url=model.action_url,
            metadata=dict(model.metadata_ or {}),
            created_at=model.created_at,
            read_at=model.read_at,
            deliveries=deliveries,
        )


def delivery_to_entity(model: NotificationDeliveryModel) -> NotificationDelivery:
    """Translate a delivery row into its domain entity."""

    return NotificationDelivery(
        id=model.id,
        notification_id=model.notification_id,
        channel=DeliveryChannel(model.channel),
        status=DeliveryStatus(model.status),
        enqueued_at=model.enqueued_at,
        sent_at=model.sent_at,
        failure_reason=model.failure_reason,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


__all__ = ["NotificationRepository", "delivery_to_entity"]
