from .notification import (
    DeliveryRead,
    MarkReadResponse,
    NotificationMarkReadRequest,
    NotificationRead,
    UnreadCountRead,
)

__all__ = [
    "DeliveryRead",
    "MarkReadResponse",
    "NotificationMarkReadRequest",
    "NotificationRead",
    "UnreadCountRead",
]
