"""Use cases turning outbox domain events into notifications."""

from .handlers import HANDLERS, NotificationDraft, build_notification_draft
from .materialize import ensure_notification_for_domain_event
from .poller import process_domain_events
from .record import record_domain_event

__all__ = [
    "HANDLERS",
    "NotificationDraft",
    "build_notification_draft",
    "ensure_notification_for_domain_event",
    "process_domain_events",
    "record_domain_event",
]
