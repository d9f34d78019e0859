"""ORM models used by the application infrastructure."""

from .domain_event import DomainEventModel
from .job_lease import JobLeaseModel
from .notification import NotificationDeliveryModel, NotificationModel
from .user import UserModel

__all__ = [
    "DomainEventModel",
    "JobLeaseModel",
    "NotificationDeliveryModel",
    "NotificationModel",
    "UserModel",
]
