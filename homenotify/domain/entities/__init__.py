"""Domain entities exposed by the application."""

from .domain_event import DomainEvent, DomainEventStatus, DomainEventType
from .job_lease import JobLease
from .notification import (
    ENTITY_TYPE_CLAIM,
    METADATA_DOMAIN_EVENT_ID,
    METADATA_PRIORITY,
    DeliveryChannel,
    DeliveryStatus,
    Notification,
    NotificationDelivery,
    NotificationPriority,
)
from .recipient import Recipient

__all__ = [
    "DomainEvent",
    "DomainEventStatus",
    "DomainEventType",
    "JobLease",
    "ENTITY_TYPE_CLAIM",
    "METADATA_DOMAIN_EVENT_ID",
    "METADATA_PRIORITY",
    "DeliveryChannel",
    "DeliveryStatus",
    "Notification",
    "NotificationDelivery",
    "NotificationPriority",
    "Recipient",
]
