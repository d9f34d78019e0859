"""Use case for appending a domain event to the outbox."""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from homenotify.domain.entities import DomainEvent, DomainEventType
from homenotify.infrastructure.repositories import DomainEventRepository


def record_domain_event(
    session: Session,
    *,
    event_type: DomainEventType | str,
    user_id: str,
    payload: dict[str, Any],
    property_id: str | None = None,
    idempotency_key: str | None = None,
) -> DomainEvent:
    """Store a new ``PENDING`` event.

    When ``idempotency_key`` is given and an event with the same key already
    exists, that event is returned and nothing is written.
    """

    try:
        type_value = DomainEventType(event_type).value
    except ValueError as exc:
        raise ValueError(f"Unsupported domain event type: {event_type}") from exc

    repository = DomainEventRepository(session)
    if idempotency_key:
        existing = repository.get_by_idempotency_key(idempotency_key)
        if existing is not None:
            return existing

    event = DomainEvent(
        id=None,
        type=type_value,
        user_id=user_id,
        payload=dict(payload or {}),
        property_id=property_id,
        idempotency_key=idempotency_key,
    )
    try:
        return repository.create(event)
    except IntegrityError:
        session.rollback()
        if idempotency_key:
            existing = repository.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                return existing
        raise
