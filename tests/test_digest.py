"""Tests for the daily digest sweep."""

from __future__ import annotations

from datetime import datetime, timedelta

from homenotify.application.use_cases.deliveries import (
    DIGEST_LEASE_NAME,
    send_email_digests,
)
from homenotify.domain.entities import DeliveryChannel, DeliveryStatus, NotificationPriority
from homenotify.infrastructure.repositories import (
    JobLeaseRepository,
    NotificationDeliveryRepository,
)
from homenotify.utils import utcnow


def _email_id(notification) -> str:
    return next(d.id for d in notification.deliveries if d.channel is DeliveryChannel.EMAIL)


def test_digest_sends_one_email_per_user(session, make_user, make_notification, transport) -> None:
    make_user()
    notifications = [
        make_notification(priority=NotificationPriority.NORMAL, title=f"Reminder {i}")
        for i in range(3)
    ]

    summary = send_email_digests(
        session, transport=transport, now=datetime(2026, 3, 2, 14, 0, 0)
    )

    assert summary.users == 1
    assert summary.emails_sent == 1
    assert summary.deliveries_sent == 3
    assert len(transport.sent) == 1
    email = transport.sent[0]
    assert email.subject == "Your daily summary for March 2, 2026"
    for i in range(3):
        assert f"Reminder {i}" in email.html
    for notification in notifications:
        delivery = NotificationDeliveryRepository(session).get(_email_id(notification))
        assert delivery.status is DeliveryStatus.SENT


def test_digest_includes_high_priority_leftovers_and_caps_items(
    session, make_user, make_notification, transport
) -> None:
    make_user()
    make_notification(priority=NotificationPriority.HIGH)
    for _ in range(4):
        make_notification(priority=NotificationPriority.NORMAL)

    summary = send_email_digests(session, transport=transport, max_items=3)

    assert summary.deliveries_sent == 3
    remaining = NotificationDeliveryRepository(session).list_pending_email("user-1", limit=10)
    assert len(remaining) == 2


def test_per_user_failure_does_not_stop_the_sweep(
    session, make_user, make_notification, transport
) -> None:
    make_user("user-1", email="bad@example.com")
    make_user("user-2", email="good@example.com")
    bad = make_notification("user-1", priority=NotificationPriority.NORMAL)
    good = make_notification("user-2", priority=NotificationPriority.NORMAL)
    transport.fail_for.add("bad@example.com")

    summary = send_email_digests(session, transport=transport)

    assert summary.users == 2
    assert summary.emails_sent == 1
    assert summary.deliveries_failed == 1
    repository = NotificationDeliveryRepository(session)
    assert repository.get(_email_id(bad)).status is DeliveryStatus.FAILED
    assert repository.get(_email_id(good)).status is DeliveryStatus.SENT
    assert [email.recipient for email in transport.sent] == ["good@example.com"]


def test_unexpected_error_is_counted_and_leaves_deliveries_pending(
    session, make_user, make_notification, transport
) -> None:
    make_user("user-1", email="bad@example.com")
    make_user("user-2", email="good@example.com")
    bad = make_notification("user-1", priority=NotificationPriority.NORMAL)
    good = make_notification("user-2", priority=NotificationPriority.NORMAL)

    def flaky_transport(subject, html, recipient):
        if recipient == "bad@example.com":
            raise KeyError("template")
        transport(subject, html, recipient)

    summary = send_email_digests(session, transport=flaky_transport)

    assert summary.errors == 1
    assert summary.emails_sent == 1
    assert summary.deliveries_failed == 0
    repository = NotificationDeliveryRepository(session)
    assert repository.get(_email_id(bad)).status is DeliveryStatus.PENDING
    assert repository.get(_email_id(good)).status is DeliveryStatus.SENT


def test_overlapping_run_is_skipped(session, make_user, make_notification, transport) -> None:
    make_user()
    make_notification(priority=NotificationPriority.NORMAL)
    now = utcnow()
    leases = JobLeaseRepository(session)
    assert leases.acquire(DIGEST_LEASE_NAME, holder="other-run", now=now, ttl=timedelta(hours=1))

    summary = send_email_digests(session, transport=transport, now=now + timedelta(minutes=5))

    assert summary.skipped
    assert transport.sent == []

    later = send_email_digests(session, transport=transport, now=now + timedelta(hours=2))
    assert not later.skipped
    assert later.emails_sent == 1


def test_lease_is_released_after_the_run(session, transport) -> None:
    now = utcnow()

    send_email_digests(session, transport=transport, now=now, holder="run-a")

    lease = JobLeaseRepository(session).get(DIGEST_LEASE_NAME)
    assert lease.holder == "run-a"
    assert lease.expires_at <= now
    assert not send_email_digests(session, transport=transport, now=now, holder="run-b").skipped


def test_failed_deliveries_are_not_picked_up_again(session, make_user, make_notification, transport) -> None:
    make_user()
    make_notification(priority=NotificationPriority.NORMAL)
    transport.fail_all = True
    send_email_digests(session, transport=transport)

    transport.fail_all = False
    summary = send_email_digests(session, transport=transport)

    assert summary.users == 0
    assert transport.sent == []
