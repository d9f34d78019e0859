"""Tests for claiming, dispatching and resolving outbox domain events."""

from __future__ import annotations

from datetime import timedelta

import pytest

from homenotify.application.use_cases.domain_events import (
    build_notification_draft,
    ensure_notification_for_domain_event,
    process_domain_events,
    record_domain_event,
)
from homenotify.domain.entities import DomainEvent, DomainEventStatus
from homenotify.infrastructure.models import NotificationModel
from homenotify.infrastructure.repositories import DomainEventRepository
from homenotify.utils import utcnow


def _record_submitted(session, **kwargs):
    return record_domain_event(
        session,
        event_type="CLAIM_SUBMITTED",
        user_id="user-1",
        payload={"claimId": "claim-1", "propertyId": "prop-1"},
        property_id="prop-1",
        **kwargs,
    )


def _store_raw(session, event_type: str, payload: dict, *, user_id="user-1") -> DomainEvent:
    return DomainEventRepository(session).create(
        DomainEvent(id=None, type=event_type, user_id=user_id, payload=payload)
    )


def _fail_repeatedly(session, event: DomainEvent, times: int, *, at) -> None:
    repository = DomainEventRepository(session)
    for attempt in range(1, times + 1):
        assert repository.claim(repository.get(event.id), now=at)
        assert repository.mark_failed(event.id, attempts=attempt, error="boom", now=at)


def test_pending_event_is_processed(session, make_user) -> None:
    make_user()
    event = _record_submitted(session)

    assert process_domain_events(session) == 1

    stored = DomainEventRepository(session).get(event.id)
    assert stored.status is DomainEventStatus.PROCESSED
    assert stored.attempts == 1
    assert stored.processed_at is not None
    assert stored.last_error is None
    assert session.query(NotificationModel).count() == 1


def test_processed_events_are_not_selected_again(session, make_user) -> None:
    make_user()
    _record_submitted(session)

    assert process_domain_events(session) == 1
    assert process_domain_events(session) == 0


def test_record_domain_event_honours_idempotency_key(session) -> None:
    first = _record_submitted(session, idempotency_key="claim:claim-1:submitted")
    second = _record_submitted(session, idempotency_key="claim:claim-1:submitted")

    assert first.id == second.id


def test_claim_is_exclusive_across_consumers(database, session) -> None:
    event = _record_submitted(session)
    other_session = database.SessionLocal()
    try:
        now = utcnow()
        seen_by_a = DomainEventRepository(session).list_due(now=now, limit=10)
        seen_by_b = DomainEventRepository(other_session).list_due(now=now, limit=10)
        assert [e.id for e in seen_by_a] == [e.id for e in seen_by_b] == [event.id]

        won_a = DomainEventRepository(session).claim(seen_by_a[0], now=now)
        won_b = DomainEventRepository(other_session).claim(seen_by_b[0], now=now)
    finally:
        other_session.close()

    assert (won_a, won_b) == (True, False)
    stored = DomainEventRepository(session).get(event.id)
    assert stored.status is DomainEventStatus.PROCESSING
    assert stored.attempts == 1


def test_unknown_type_fails_and_retries_after_backoff(session) -> None:
    event = _store_raw(session, "ROOF_LEAK", {"claimId": "claim-1"})
    started = utcnow()

    assert process_domain_events(session, now=started) == 0
    failed = DomainEventRepository(session).get(event.id)
    assert failed.status is DomainEventStatus.FAILED
    assert failed.attempts == 1
    assert failed.last_error == "Unhandled DomainEvent type: ROOF_LEAK"

    process_domain_events(session, now=started + timedelta(seconds=30))
    assert DomainEventRepository(session).get(event.id).attempts == 1

    process_domain_events(session, now=started + timedelta(minutes=1))
    retried = DomainEventRepository(session).get(event.id)
    assert retried.status is DomainEventStatus.FAILED
    assert retried.attempts == 2


@pytest.mark.parametrize(
    ("attempts", "wait"),
    [
        (3, timedelta(minutes=5)),
        (5, timedelta(minutes=30)),
        (6, timedelta(minutes=60)),
        (7, timedelta(minutes=60)),
    ],
)
def test_failed_event_becomes_due_exactly_after_its_backoff(session, attempts, wait) -> None:
    event = _store_raw(session, "ROOF_LEAK", {"claimId": "claim-1"})
    failed_at = utcnow().replace(microsecond=0)
    _fail_repeatedly(session, event, attempts, at=failed_at)
    repository = DomainEventRepository(session)

    assert repository.list_due(now=failed_at + wait - timedelta(seconds=1), limit=10) == []
    assert [e.id for e in repository.list_due(now=failed_at + wait, limit=10)] == [event.id]


def test_poller_honours_the_capped_backoff(session) -> None:
    event = _store_raw(session, "ROOF_LEAK", {"claimId": "claim-1"})
    failed_at = utcnow().replace(microsecond=0)
    _fail_repeatedly(session, event, 6, at=failed_at)

    process_domain_events(session, now=failed_at + timedelta(minutes=59, seconds=59))
    assert DomainEventRepository(session).get(event.id).attempts == 6

    process_domain_events(session, now=failed_at + timedelta(minutes=60))
    retried = DomainEventRepository(session).get(event.id)
    assert retried.attempts == 7
    assert retried.status is DomainEventStatus.FAILED


def test_poller_waits_five_minutes_after_the_third_failure(session) -> None:
    event = _store_raw(session, "ROOF_LEAK", {"claimId": "claim-1"})
    failed_at = utcnow().replace(microsecond=0)
    _fail_repeatedly(session, event, 3, at=failed_at)

    process_domain_events(session, now=failed_at + timedelta(minutes=4, seconds=59))
    assert DomainEventRepository(session).get(event.id).attempts == 3

    process_domain_events(session, now=failed_at + timedelta(minutes=5))
    assert DomainEventRepository(session).get(event.id).attempts == 4


def test_missing_foreign_key_is_recorded(session) -> None:
    event = _store_raw(session, "CLAIM_CLOSED", {})

    process_domain_events(session)

    stored = DomainEventRepository(session).get(event.id)
    assert stored.status is DomainEventStatus.FAILED
    assert stored.last_error == "DomainEvent payload missing claimId"


def test_last_error_is_truncated(session, settings_env) -> None:
    settings_env(domain_event_last_error_max_length=10)
    event = _store_raw(session, "SOMETHING_MUCH_LONGER_THAN_TEN", {})

    process_domain_events(session)

    assert len(DomainEventRepository(session).get(event.id).last_error) == 10


def test_reprocessing_does_not_duplicate_notifications(session, make_user) -> None:
    make_user()
    event = _record_submitted(session)
    repository = DomainEventRepository(session)
    claimed_at = utcnow()
    assert repository.claim(repository.get(event.id), now=claimed_at)
    # The handler ran but the resolution was lost.
    ensure_notification_for_domain_event(
        session,
        build_notification_draft(repository.get(event.id)),
        domain_event_id=event.id,
    )
    assert repository.mark_failed(event.id, attempts=1, error="lost resolution", now=claimed_at)

    assert process_domain_events(session, now=claimed_at + timedelta(minutes=1)) == 1

    assert repository.get(event.id).status is DomainEventStatus.PROCESSED
    assert session.query(NotificationModel).count() == 1


def test_max_attempts_dead_letters_the_event(session, settings_env) -> None:
    settings_env(domain_event_max_attempts=2)
    event = _store_raw(session, "ROOF_LEAK", {})
    started = utcnow()

    process_domain_events(session, now=started)
    process_domain_events(session, now=started + timedelta(minutes=1))
    dead = DomainEventRepository(session).get(event.id)
    assert dead.status is DomainEventStatus.DEAD
    assert dead.attempts == 2

    process_domain_events(session, now=started + timedelta(hours=5))
    assert DomainEventRepository(session).get(event.id).attempts == 2


def test_stale_processing_claim_is_reclaimed(session, make_user, settings_env) -> None:
    settings_env(domain_event_claim_timeout_minutes=5)
    make_user()
    event = _record_submitted(session)
    repository = DomainEventRepository(session)
    started = utcnow()
    assert repository.claim(repository.get(event.id), now=started)

    assert process_domain_events(session, now=started + timedelta(minutes=1)) == 0
    assert process_domain_events(session, now=started + timedelta(minutes=6)) == 1

    stored = repository.get(event.id)
    assert stored.status is DomainEventStatus.PROCESSED
    assert stored.attempts == 2
    # The abandoned consumer can no longer resolve the event.
    assert not repository.mark_failed(event.id, attempts=1, error="late", now=utcnow())


def test_processing_claims_never_expire_by_default(session) -> None:
    event = _record_submitted(session)
    repository = DomainEventRepository(session)
    started = utcnow()
    repository.claim(repository.get(event.id), now=started)

    assert process_domain_events(session, now=started + timedelta(days=2)) == 0
    assert repository.get(event.id).status is DomainEventStatus.PROCESSING
