"""Domain-event-to-notification delivery pipeline.

Drains the platform's domain event outbox into user notifications, sends
urgent email through a work queue and batches the rest into daily digests.
"""
