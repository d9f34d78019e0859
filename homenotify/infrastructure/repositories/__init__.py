"""Repository implementations for infrastructure layer."""

from .domain_event_repository import DomainEventRepository
from .job_lease_repository import JobLeaseRepository
from .notification_delivery_repository import NotificationDeliveryRepository, PendingEmail
from .notification_repository import NotificationRepository
from .user_repository import UserRepository

__all__ = [
    "DomainEventRepository",
    "JobLeaseRepository",
    "NotificationDeliveryRepository",
    "NotificationRepository",
    "PendingEmail",
    "UserRepository",
]
