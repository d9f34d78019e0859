"""Drain the domain event outbox into notifications."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from homenotify.config import Settings, get_settings
from homenotify.domain.entities import DomainEvent
from homenotify.infrastructure.repositories import DomainEventRepository
from homenotify.utils import ensure_naive_utc, utcnow

from .handlers import build_notification_draft
from .materialize import ensure_notification_for_domain_event

logger = logging.getLogger(__name__)


def _error_text(exc: BaseException, max_length: int) -> str:
    text = str(exc) or exc.__class__.__name__
    return text[:max_length]


def process_domain_events(
    session: Session,
    *,
    batch_size: int | None = None,
    now: datetime | None = None,
) -> int:
    """Claim and handle one batch of due domain events.

    Events are claimed one at a time with a conditional update, so any
    number of pollers may run concurrently; an event whose claim is lost is
    skipped. Failures are recorded on the event row and never raised.
    Returns the number of events marked ``PROCESSED`` by this call.
    """

    settings = get_settings()
    fixed_now = ensure_naive_utc(now)

    def clock() -> datetime:
        return fixed_now or utcnow()

    repository = DomainEventRepository(session)
    try:
        events = repository.list_due(
            now=clock(),
            limit=batch_size or settings.domain_event_batch_size,
            claim_timeout_minutes=settings.domain_event_claim_timeout_minutes,
        )
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to load due domain events")
        return 0

    processed = 0
    for event in events:
        if _process_event(session, repository, event, clock=clock, settings=settings):
            processed += 1

    if events:
        logger.info("Processed %s of %s due domain events", processed, len(events))
    return processed


def _process_event(
    session: Session,
    repository: DomainEventRepository,
    event: DomainEvent,
    *,
    clock,
    settings: Settings,
) -> bool:
    try:
        claimed = repository.claim(event, now=clock())
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to claim domain event %s", event.id)
        return False
    if not claimed:
        logger.debug("Domain event %s was claimed by another consumer", event.id)
        return False

    attempts = event.attempts + 1
    try:
        draft = build_notification_draft(event)
        ensure_notification_for_domain_event(session, draft, domain_event_id=event.id)
    except Exception as exc:  # any handler failure is recorded on the event row
        session.rollback()
        _record_failure(repository, event, attempts=attempts, exc=exc, now=clock(), settings=settings)
        return False

    try:
        resolved = repository.mark_processed(event.id, attempts=attempts, now=clock())
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to mark domain event %s as processed", event.id)
        return False
    if not resolved:
        logger.warning("Claim on domain event %s was taken over before it resolved", event.id)
        return False
    return True


def _record_failure(
    repository: DomainEventRepository,
    event: DomainEvent,
    *,
    attempts: int,
    exc: Exception,
    now: datetime,
    settings: Settings,
) -> None:
    error = _error_text(exc, settings.domain_event_last_error_max_length)
    max_attempts = settings.domain_event_max_attempts
    dead = max_attempts is not None and attempts >= max_attempts
    if dead:
        logger.error(
            "Domain event %s (%s) failed attempt %s and was dead-lettered: %s",
            event.id,
            event.type,
            attempts,
            error,
        )
    else:
        logger.warning(
            "Domain event %s (%s) failed attempt %s: %s", event.id, event.type, attempts, error
        )
    try:
        repository.mark_failed(event.id, attempts=attempts, error=error, now=now, dead=dead)
    except SQLAlchemyError:
        repository.session.rollback()
        logger.exception("Failed to record failure for domain event %s", event.id)


__all__ = ["process_domain_events"]
