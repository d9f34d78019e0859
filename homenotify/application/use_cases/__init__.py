"""Aggregate application use cases."""

from .deliveries import (
    enqueue_high_priority_deliveries,
    retry_failed_delivery,
    send_email_delivery,
    send_email_digests,
)
from .domain_events import process_domain_events, record_domain_event

__all__ = [
    "enqueue_high_priority_deliveries",
    "process_domain_events",
    "record_domain_event",
    "retry_failed_delivery",
    "send_email_delivery",
    "send_email_digests",
]
