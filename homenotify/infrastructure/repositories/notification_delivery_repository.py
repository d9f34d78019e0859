"""Persistence helpers for per-channel notification deliveries."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from homenotify.domain.entities import (
    DeliveryChannel,
    DeliveryStatus,
    Notification,
    NotificationDelivery,
    NotificationPriority,
)
from homenotify.infrastructure.models import NotificationDeliveryModel, NotificationModel
from homenotify.infrastructure.repositories.notification_repository import (
    NotificationRepository,
    delivery_to_entity,
)

PendingEmail = tuple[NotificationDelivery, Notification]


class NotificationDeliveryRepository:
    """Select, claim and resolve :class:`NotificationDelivery` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, delivery_id: str) -> NotificationDelivery | None:
        model = self.session.get(NotificationDeliveryModel, delivery_id)
        return delivery_to_entity(model) if model else None

    def get_with_notification(self, delivery_id: str) -> PendingEmail | None:
        model = (
            self.session.query(NotificationDeliveryModel)
            .options(joinedload(NotificationDeliveryModel.notification))
            .filter(NotificationDeliveryModel.id == delivery_id)
            .first()
        )
        if model is None or model.notification is None:
            return None
        return self._pair(model)

    def list_enqueue_candidates(self, *, limit: int) -> list[str]:
        """Return ids of un-enqueued pending HIGH priority email deliveries, oldest first."""

        query = (
            self.session.query(NotificationDeliveryModel.id)
            .join(
                NotificationModel,
                NotificationDeliveryModel.notification_id == NotificationModel.id,
            )
            .filter(
                NotificationDeliveryModel.channel == DeliveryChannel.EMAIL.value,
                NotificationDeliveryModel.status == DeliveryStatus.PENDING.value,
                NotificationDeliveryModel.enqueued_at.is_(None),
                NotificationModel.priority == NotificationPriority.HIGH.value,
            )
            .order_by(
                NotificationDeliveryModel.created_at.asc(),
                NotificationDeliveryModel.id.asc(),
            )
            .limit(limit)
        )
        return [row.id for row in query.all()]

    def claim_for_enqueue(self, delivery_ids: Sequence[str], *, stamp: datetime) -> list[str]:
        """Stamp ``enqueued_at`` on the given ids that nobody has claimed yet.

        Each row is claimed by its own conditional update, so a row belongs
        to this call only when that update touched it. Returns the claimed
        ids in input order.
        """

        claimed: list[str] = []
        for delivery_id in dict.fromkeys(delivery_ids):
            affected = (
                self.session.query(NotificationDeliveryModel)
                .filter(
                    NotificationDeliveryModel.id == delivery_id,
                    NotificationDeliveryModel.enqueued_at.is_(None),
                    NotificationDeliveryModel.status == DeliveryStatus.PENDING.value,
                )
                .update(
                    {
                        NotificationDeliveryModel.enqueued_at: stamp,
                        NotificationDeliveryModel.updated_at: stamp,
                    },
                    synchronize_session=False,
                )
            )
            self.session.commit()
            if affected == 1:
                claimed.append(delivery_id)
        return claimed

    def release_enqueue_claim(self, delivery_id: str, *, stamp: datetime) -> bool:
        """Clear an ``enqueued_at`` claim taken with ``stamp`` so a later run can retry."""

        affected = (
            self.session.query(NotificationDeliveryModel)
            .filter(
                NotificationDeliveryModel.id == delivery_id,
                NotificationDeliveryModel.enqueued_at == stamp,
                NotificationDeliveryModel.status == DeliveryStatus.PENDING.value,
            )
            .update(
                {NotificationDeliveryModel.enqueued_at: None},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return affected == 1

    def list_pending_email(
        self,
        user_id: str,
        *,
        limit: int,
        priority: NotificationPriority | None = None,
    ) -> list[PendingEmail]:
        """Return the most recent pending email deliveries addressed to ``user_id``."""

        query = (
            self.session.query(NotificationDeliveryModel)
            .join(
                NotificationModel,
                NotificationDeliveryModel.notification_id == NotificationModel.id,
            )
            .options(joinedload(NotificationDeliveryModel.notification))
            .filter(
                NotificationModel.user_id == user_id,
                NotificationDeliveryModel.channel == DeliveryChannel.EMAIL.value,
                NotificationDeliveryModel.status == DeliveryStatus.PENDING.value,
            )
        )
        if priority is not None:
            query = query.filter(NotificationModel.priority == priority.value)
        query = query.order_by(
            NotificationDeliveryModel.created_at.desc(),
            NotificationDeliveryModel.id.desc(),
        ).limit(limit)
        return [self._pair(model) for model in query.all()]

    def list_user_ids_with_pending_email(self) -> list[str]:
        query = (
            self.session.query(NotificationModel.user_id)
            .join(
                NotificationDeliveryModel,
                NotificationDeliveryModel.notification_id == NotificationModel.id,
            )
            .filter(
                NotificationDeliveryModel.channel == DeliveryChannel.EMAIL.value,
                NotificationDeliveryModel.status == DeliveryStatus.PENDING.value,
            )
            .distinct()
            .order_by(NotificationModel.user_id.asc())
        )
        return [row.user_id for row in query.all()]

    def mark_sent(self, delivery_ids: Sequence[str], *, sent_at: datetime) -> int:
        return self._resolve_pending(
            delivery_ids,
            {
                NotificationDeliveryModel.status: DeliveryStatus.SENT.value,
                NotificationDeliveryModel.sent_at: sent_at,
                NotificationDeliveryModel.failure_reason: None,
                NotificationDeliveryModel.updated_at: sent_at,
            },
        )

    def mark_failed(self, delivery_ids: Sequence[str], *, reason: str, now: datetime) -> int:
        return self._resolve_pending(
            delivery_ids,
            {
                NotificationDeliveryModel.status: DeliveryStatus.FAILED.value,
                NotificationDeliveryModel.failure_reason: reason,
                NotificationDeliveryModel.updated_at: now,
            },
        )

    def reset_failed(self, delivery_id: str, *, now: datetime) -> bool:
        """Return a ``FAILED`` delivery to the pending pool."""

        affected = (
            self.session.query(NotificationDeliveryModel)
            .filter(
                NotificationDeliveryModel.id == delivery_id,
                NotificationDeliveryModel.status == DeliveryStatus.FAILED.value,
            )
            .update(
                {
                    NotificationDeliveryModel.status: DeliveryStatus.PENDING.value,
                    NotificationDeliveryModel.failure_reason: None,
                    NotificationDeliveryModel.enqueued_at: None,
                    NotificationDeliveryModel.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return affected == 1

    def _resolve_pending(self, delivery_ids: Sequence[str], values: dict) -> int:
        ids = list(dict.fromkeys(delivery_ids))
        if not ids:
            return 0
        affected = (
            self.session.query(NotificationDeliveryModel)
            .filter(
                NotificationDeliveryModel.id.in_(ids),
                NotificationDeliveryModel.status == DeliveryStatus.PENDING.value,
            )
            .update(values, synchronize_session=False)
        )
        self.session.commit()
        return affected

    @staticmethod
    def _pair(model: NotificationDeliveryModel) -> PendingEmail:
        notification = NotificationRepository._to_entity(
            model.notification, include_deliveries=False
        )
        return delivery_to_entity(model), notification


__all__ = ["NotificationDeliveryRepository", "PendingEmail"]
