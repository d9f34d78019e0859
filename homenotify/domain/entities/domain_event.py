"""Domain entity representing a fact recorded in the domain event outbox."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class DomainEventType(str, Enum):
    """Closed set of domain event types understood by the pipeline."""

    CLAIM_SUBMITTED = "CLAIM_SUBMITTED"
    CLAIM_CLOSED = "CLAIM_CLOSED"
    FOLLOW_UP_DUE = "FOLLOW_UP_DUE"


class DomainEventStatus(str, Enum):
    """Lifecycle states of a domain event row."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"
    DEAD = "DEAD"


@dataclass
class DomainEvent:
    """An outbox row written by a producer and drained by the poller.

    ``type`` is kept as the raw stored string: producers may write values
    outside :class:`DomainEventType` and those must still be loadable so the
    poller can record them as failed.
    """

    id: str | None
    type: str
    user_id: str | None
    payload: dict[str, Any] = field(default_factory=dict)
    property_id: str | None = None
    status: DomainEventStatus = DomainEventStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    processed_at: datetime | None = None
    idempotency_key: str | None = None


__all__ = ["DomainEvent", "DomainEventStatus", "DomainEventType"]
