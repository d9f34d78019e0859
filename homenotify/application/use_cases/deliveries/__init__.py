"""Use cases that deliver notifications by email."""

from .batching import BatchOutcome, send_delivery_batch
from .digest import DIGEST_LEASE_NAME, DigestSummary, send_email_digests
from .enqueue import email_job_key, enqueue_high_priority_deliveries
from .retry import DeliveryNotFoundError, DeliveryNotRetryableError, retry_failed_delivery
from .send_worker import run_send_email_job, send_email_delivery

__all__ = [
    "BatchOutcome",
    "DIGEST_LEASE_NAME",
    "DeliveryNotFoundError",
    "DeliveryNotRetryableError",
    "DigestSummary",
    "email_job_key",
    "enqueue_high_priority_deliveries",
    "retry_failed_delivery",
    "run_send_email_job",
    "send_delivery_batch",
    "send_email_delivery",
    "send_email_digests",
]
