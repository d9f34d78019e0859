"""Domain entities representing a user notification and its deliveries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

ENTITY_TYPE_CLAIM = "CLAIM"

METADATA_DOMAIN_EVENT_ID = "domainEventId"
METADATA_PRIORITY = "priority"


class NotificationPriority(str, Enum):
    """Urgency tag deciding between immediate send and the daily digest."""

    HIGH = "HIGH"
    NORMAL = "NORMAL"


class DeliveryChannel(str, Enum):
    """Channels a notification can be conveyed through."""

    IN_APP = "IN_APP"
    EMAIL = "EMAIL"
    PUSH = "PUSH"
    SMS = "SMS"


class DeliveryStatus(str, Enum):
    """Resolution state of a single channel delivery."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


@dataclass
class NotificationDelivery:
    """Per-channel attempt to convey a :class:`Notification`."""

    id: str | None
    notification_id: str
    channel: DeliveryChannel
    status: DeliveryStatus = DeliveryStatus.PENDING
    enqueued_at: datetime | None = None
    sent_at: datetime | None = None
    failure_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Notification:
    """User-facing record of a fact, independent of any channel."""

    id: str | None
    user_id: str
    type: str
    title: str
    message: str
    entity_type: str
    entity_id: str
    action_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    read_at: datetime | None = None
    deliveries: list[NotificationDelivery] = field(default_factory=list)

    @property
    def domain_event_id(self) -> str | None:
        """Return the identifier of the domain event that caused this record."""

        value = self.metadata.get(METADATA_DOMAIN_EVENT_ID)
        return str(value) if value is not None else None

    @property
    def priority(self) -> NotificationPriority:
        """Return the priority tag, treating unknown values as ``NORMAL``."""

        try:
            return NotificationPriority(self.metadata.get(METADATA_PRIORITY))
        except ValueError:
            return NotificationPriority.NORMAL

    def is_high_priority(self) -> bool:
        return self.priority is NotificationPriority.HIGH


__all__ = [
    "DeliveryChannel",
    "DeliveryStatus",
    "ENTITY_TYPE_CLAIM",
    "METADATA_DOMAIN_EVENT_ID",
    "METADATA_PRIORITY",
    "Notification",
    "NotificationDelivery",
    "NotificationPriority",
]
